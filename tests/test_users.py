# tests/test_users.py
import pytest

from filmservice import users_db
from conftest import TEST_EMAIL, TEST_NAME


def test_user_info_returns_token_owner(client, auth_headers, user_id):
    r = client.get("/users/userInfo", headers=auth_headers)
    assert r.status_code == 200
    assert r.get_json() == {"id": user_id, "name": TEST_NAME, "email": TEST_EMAIL}


def test_user_crud_via_api(client, auth_headers):
    r = client.post("/users", json={"name": "Jim", "email": "jim@example.com", "password": "pw-jim"},
                    headers=auth_headers)
    assert r.status_code == 200
    uid = r.get_json()["id"]

    r = client.get(f"/users/{uid}", headers=auth_headers)
    assert r.get_json() == {"id": uid, "name": "Jim", "email": "jim@example.com"}

    r = client.put(f"/users/{uid}", json={"name": "James", "email": "james@example.com"}, headers=auth_headers)
    assert r.status_code == 200
    assert users_db.find_by_id(uid)["name"] == "James"

    r = client.patch(f"/users/{uid}/changePassword", json={"password": "pw-new"}, headers=auth_headers)
    assert r.status_code == 200
    assert users_db.authenticate("james@example.com", "pw-new") is not None

    r = client.delete(f"/users/{uid}", headers=auth_headers)
    assert r.status_code == 200
    assert client.get(f"/users/{uid}", headers=auth_headers).status_code == 404


def test_list_users_never_exposes_password_hash(client, auth_headers, user_id):
    users_db.create("Kim", "kim@example.com", "pw")
    r = client.get("/users", headers=auth_headers)
    assert r.status_code == 200
    body = r.get_json()
    assert [u["email"] for u in body] == [TEST_EMAIL, "kim@example.com"]
    assert all(set(u) == {"id", "name", "email"} for u in body)


def test_user_validation_errors(client, auth_headers, user_id):
    assert client.get("/users/abc", headers=auth_headers).get_json() == {"error": "Invalid User Id"}
    assert client.get("/users/999", headers=auth_headers).status_code == 404

    r = client.post("/users", data="garbage", headers=auth_headers)
    assert r.status_code == 400
    assert r.get_json() == {"error": "Invalid payload"}

    r = client.post("/users", json={"name": "Dup", "email": TEST_EMAIL, "password": "x"}, headers=auth_headers)
    assert r.status_code == 400

    r = client.put(f"/users/{user_id}", data="garbage", headers=auth_headers)
    assert r.status_code == 400
    assert r.get_json() == {"error": "Could not update user"}

    r = client.patch(f"/users/{user_id}/changePassword", json={}, headers=auth_headers)
    assert r.status_code == 400
    assert r.get_json() == {"error": "Invalid payload"}

    assert client.put("/users/999", json={"name": "a", "email": "a@b.c"}, headers=auth_headers).status_code == 404
    assert client.patch("/users/999/changePassword", json={"password": "x"}, headers=auth_headers).status_code == 404
    assert client.delete("/users/999", headers=auth_headers).status_code == 404


def test_wrongly_typed_user_fields_are_rejected(client, auth_headers, user_id):
    r = client.post("/users", json={"name": 5, "email": "five@example.com", "password": "pw"}, headers=auth_headers)
    assert r.status_code == 400
    r = client.post("/users", json={"name": "Five", "email": ["five@example.com"], "password": "pw"},
                    headers=auth_headers)
    assert r.status_code == 400
    r = client.post("/users", json={"name": "Five", "email": "five@example.com", "password": 5}, headers=auth_headers)
    assert r.status_code == 400

    r = client.put(f"/users/{user_id}", json={"name": {"first": "A"}, "email": TEST_EMAIL}, headers=auth_headers)
    assert r.status_code == 400

    r = client.patch(f"/users/{user_id}/changePassword", json={"password": 12345}, headers=auth_headers)
    assert r.status_code == 400
    assert r.get_json() == {"error": "Invalid payload"}
    assert users_db.find_by_id(user_id)["name"] == TEST_NAME


def test_duplicate_email_caught_at_insert(monkeypatch, user_id):
    monkeypatch.setattr(users_db, "_email_taken", lambda *args, **kwargs: False)
    with pytest.raises(ValueError, match="already exists"):
        users_db.create("Twin", TEST_EMAIL, "pw")

    other = users_db.create("Other", "other@example.com", "pw")
    with pytest.raises(ValueError, match="already exists"):
        users_db.update(other, "Other", TEST_EMAIL)
    assert users_db.find_by_id(other)["email"] == "other@example.com"
