# tests/test_auth.py
from datetime import timedelta

import jwt

from filmservice import config, users_db
from filmservice.auth import issue_token, decode_token, purge_revoked_tokens, bearer_token
from filmservice.database import SessionLocal, RevokedToken, utcnow
from conftest import TEST_EMAIL, TEST_PASSWORD


def sign_in(client, email=TEST_EMAIL, password=TEST_PASSWORD):
    return client.post("/auth/signIn", json={"email": email, "password": password})


def test_sign_in_returns_usable_token(client, user_id):
    r = sign_in(client)
    assert r.status_code == 200
    token = r.get_json()["token"]

    claims = decode_token(token)
    assert claims["sub"] == str(user_id)
    assert claims["exp"] - claims["iat"] == int(config.JWT_EXPIRES_IN.total_seconds())

    r = client.get("/users/userInfo", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.get_json()["id"] == user_id


def test_sign_in_email_is_case_insensitive(client, user_id):
    assert sign_in(client, email=TEST_EMAIL.upper()).status_code == 200


def test_sign_in_failures(client, user_id):
    r = sign_in(client, password="wrong")
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid credentials"}

    assert sign_in(client, email="ghost@example.com").status_code == 401

    r = client.post("/auth/signIn", data="nope")
    assert r.status_code == 400
    assert r.get_json() == {"error": "Invalid request payload"}

    assert client.post("/auth/signIn", json={"email": TEST_EMAIL}).status_code == 400


def test_missing_and_malformed_headers(client, user_id):
    r = client.get("/movies")
    assert r.status_code == 401
    assert r.get_json() == {"error": "Authorization header required"}

    r = client.get("/movies", headers={"Authorization": f"Token {issue_token(user_id)}"})
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid authorization header"}

    r = client.get("/movies", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid token"}


def test_expired_token_rejected(client, user_id):
    token = issue_token(user_id, expires_in=timedelta(seconds=-5))
    r = client.get("/movies", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.get_json() == {"error": "Invalid token"}


def test_token_signed_with_other_key_rejected(client, user_id):
    forged = jwt.encode({"sub": str(user_id), "exp": 9999999999, "jti": "x"}, "other-key", algorithm="HS256")
    r = client.get("/movies", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


def test_token_of_deleted_user_rejected(client, user_id):
    headers = {"Authorization": f"Bearer {issue_token(user_id)}"}
    users_db.delete(user_id)
    assert client.get("/genres", headers=headers).status_code == 401


def test_sign_out_revokes_token(client, user_id):
    token = sign_in(client).get_json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.post("/auth/signOut", headers=headers).status_code == 200

    r = client.get("/genres", headers=headers)
    assert r.status_code == 401
    assert r.get_json() == {"error": "Token has been revoked"}

    # a fresh sign-in still works
    fresh = sign_in(client).get_json()["token"]
    assert client.get("/genres", headers={"Authorization": f"Bearer {fresh}"}).status_code == 200


def test_sign_out_requires_auth(client):
    assert client.post("/auth/signOut").status_code == 401


def test_purge_revoked_tokens_only_drops_expired(client, user_id):
    live = sign_in(client).get_json()["token"]
    client.post("/auth/signOut", headers={"Authorization": f"Bearer {live}"})
    session = SessionLocal()
    try:
        session.add(RevokedToken(jti="old", user_id=user_id, expires_at=utcnow() - timedelta(days=1)))
        session.commit()
    finally:
        session.close()

    assert purge_revoked_tokens() == 1
    session = SessionLocal()
    try:
        remaining = [row.jti for row in session.query(RevokedToken).all()]
    finally:
        session.close()
    assert remaining == [decode_token(live)["jti"]]


def test_bearer_token_parsing():
    assert bearer_token("Bearer abc") == "abc"
    assert bearer_token("bearer abc") == "abc"
    assert bearer_token("Bearer") is None
    assert bearer_token("Bearer a b") is None
    assert bearer_token(None) is None


def test_public_routes_need_no_token(client):
    assert client.get("/health").get_json() == {"status": "ok"}
    assert client.get("/images/nothing.png").status_code == 404


def test_unknown_route_renders_json_error(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.get_json() == {"error": "Not Found"}


def test_sign_in_rejects_wrongly_typed_fields(client, user_id):
    for body in ({"email": 5, "password": TEST_PASSWORD},
                 {"email": [TEST_EMAIL], "password": TEST_PASSWORD},
                 {"email": TEST_EMAIL, "password": 123}):
        r = client.post("/auth/signIn", json=body)
        assert r.status_code == 400
        assert r.get_json() == {"error": "Invalid request payload"}
