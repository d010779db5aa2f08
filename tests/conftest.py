# tests/conftest.py
import os
import tempfile

# Point the app at a throwaway database before filmservice is imported
_TMP_DIR = tempfile.mkdtemp(prefix="filmservice-tests-")
os.environ["DB_CONNECTION_STRING"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.sqlite')}"
os.environ["IMAGES_DIR"] = os.path.join(_TMP_DIR, "images")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest

from filmservice.database import Base, ENGINE
from filmservice.auth import issue_token
from filmservice.app import app
from filmservice import users_db, genres_db, movies_db

TEST_NAME = "Anna Test"
TEST_EMAIL = "anna_test@example.com"
TEST_PASSWORD = "password123"


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    yield


@pytest.fixture
def client():
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def user_id():
    return users_db.create(TEST_NAME, TEST_EMAIL, TEST_PASSWORD)


def headers_for(uid: int) -> dict:
    return {"Authorization": f"Bearer {issue_token(uid)}"}


@pytest.fixture
def auth_headers(user_id):
    return headers_for(user_id)


@pytest.fixture
def genres():
    """Three genres keyed by title -> id."""
    return {title: genres_db.create(title) for title in ("Drama", "Sci-Fi", "Comedy")}


def make_movie(title, genre_ids=(), **fields):
    data = {"title": title}
    data.update(fields)
    return movies_db.create(data, list(genre_ids))
