import datetime
import bcrypt
from sqlalchemy import (create_engine, event, Column, Integer, String, DateTime, Text, Boolean,
                        ForeignKey, Table, UniqueConstraint)
from sqlalchemy.orm import sessionmaker, relationship, declarative_base
from flask_login import UserMixin

from filmservice import config
from filmservice.logger import get_logger

logger = get_logger("database")

DB_URL = config.DB_CONNECTION_STRING


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form stored in DateTime columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def get_engine():
    """Return a fresh SQLAlchemy engine for the configured connection string."""
    connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
    engine = create_engine(DB_URL, echo=False, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


ENGINE = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=ENGINE, expire_on_commit=False)
Base = declarative_base()


movies_genres = Table(
    "movies_genres",
    Base.metadata,
    Column("movie_id", Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class Genre(Base):
    __tablename__ = "genres"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, unique=True)
    movies = relationship("Movie", secondary=movies_genres, back_populates="genres")


class Movie(Base):
    __tablename__ = "movies"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    release_year = Column(Integer, nullable=True)
    director = Column(String(255), nullable=True)
    rating = Column(Integer, nullable=False, default=0)
    is_watched = Column(Boolean, nullable=False, default=False)
    trailer_url = Column(String(1024), nullable=True)
    poster_url = Column(String(1024), nullable=True)
    genres = relationship("Genre", secondary=movies_genres, back_populates="movies",
                          order_by="Genre.id")


class WatchListEntry(Base):
    __tablename__ = "watch_list"
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True)
    added_at = Column(DateTime, default=utcnow, nullable=False)


class User(Base, UserMixin):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"
    id = Column(Integer, primary_key=True)
    jti = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(Integer, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, default=utcnow)


def init_db():
    # Create tables that don't exist yet
    Base.metadata.create_all(bind=ENGINE)
    logger.info("Database ready at %s", ENGINE.url.render_as_string(hide_password=True))


# ------------------ Password Helpers ------------------
def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string")
    pw_bytes = plain_password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode('utf-8')


def verify_password(plain_password: str, stored_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), stored_hash.encode('utf-8'))
    except (ValueError, TypeError, AttributeError):
        return False


# ------------------ Serializers ------------------
def genre_to_dict(genre: Genre) -> dict:
    return {"id": genre.id, "title": genre.title}


def movie_to_dict(movie: Movie, genres: list | None = None) -> dict:
    """Convert a Movie row into its JSON shape.

    ``genres`` overrides the relationship when the caller has already
    rebuilt the list from a joined result set.
    """
    if genres is None:
        genres = [genre_to_dict(g) for g in movie.genres]
    return {
        "id": movie.id,
        "title": movie.title,
        "description": movie.description,
        "releaseYear": movie.release_year,
        "director": movie.director,
        "rating": movie.rating,
        "isWatched": bool(movie.is_watched),
        "trailerUrl": movie.trailer_url,
        "posterUrl": movie.poster_url,
        "genres": genres,
    }


def user_to_dict(user: User) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email}


if __name__ == "__main__":
    init_db()
    print('Initialized DB at', DB_URL)
