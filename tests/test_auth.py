import config
from conftest import bearer, make_user
from security import create_refresh_token


def register(client, username="alice", email="alice@x.com", password="pw123456"):
    return client.post("/api/auth/register", json={"username": username, "email": email, "password": password})


def test_register_login_profile(client):
    resp = register(client)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "user"
    assert "passwordHash" not in body["data"]["user"]

    resp = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "pw123456"})
    assert resp.status_code == 200
    token = resp.json()["data"]["token"]

    resp = client.get("/api/users/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    profile = resp.json()["data"]["user"]
    assert profile["username"] == "alice"
    assert profile["email"] == "alice@x.com"
    assert profile["role"] == "user"
    assert "password" not in profile
    assert "passwordHash" not in profile


def test_register_records_activity(client, db):
    register(client)
    activity = db["useractivity"].find_one({"action": "register"})
    assert activity is not None
    assert activity["details"]["username"] == "alice"
    assert "userAgent" in activity["details"]


def test_register_conflict(client):
    register(client)
    resp = register(client, email="other@x.com")
    assert resp.status_code == 409
    assert resp.json()["success"] is False


def test_register_validates_body(client):
    resp = client.post("/api/auth/register", json={"username": "al", "email": "nope", "password": "1"})
    assert resp.status_code == 400
    fields = {e["field"] for e in resp.json()["errors"]}
    assert {"username", "email", "password"} <= fields


def test_login_failures_share_one_message(client, user):
    wrong_password = client.post("/api/auth/login", json={"email": user["email"], "password": "bad-password"})
    unknown_email = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json()["message"] == unknown_email.json()["message"] == "Invalid credentials"


def test_login_updates_last_login(client, db, user):
    client.post("/api/auth/login", json={"email": user["email"], "password": "secret123"})
    assert db["user"].find_one({"_id": user["_id"]})["lastLogin"] is not None
    assert db["useractivity"].count_documents({"action": "login"}) == 1


def test_inactive_user_cannot_log_in(client, db):
    make_user(db, username="sleepy", email="sleepy@example.com", is_active=False)
    resp = client.post("/api/auth/login", json={"email": "sleepy@example.com", "password": "secret123"})
    assert resp.status_code == 401


def test_verify_token(client, user, user_headers):
    resp = client.get("/api/auth/verify-token", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["username"] == user["username"]

    resp = client.get("/api/auth/verify-token")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Access denied. No token provided."

    resp = client.get("/api/auth/verify-token", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token"


def test_expired_token(client, user, monkeypatch):
    monkeypatch.setattr(config, "ACCESS_TOKEN_EXPIRE_MINUTES", -1)
    resp = client.get("/api/auth/verify-token", headers=bearer(user))
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token expired"


def test_token_of_deactivated_user_is_rejected(client, db, user, user_headers):
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"isActive": False}})
    resp = client.get("/api/users/profile", headers=user_headers)
    assert resp.status_code == 401


def test_refresh_token_rotates(client, user):
    refresh = create_refresh_token(user)
    resp = client.post("/api/auth/refresh-token", json={"refreshToken": refresh})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["token"]
    assert data["refreshToken"] != refresh

    resp = client.get("/api/users/profile", headers={"Authorization": f"Bearer {data['token']}"})
    assert resp.status_code == 200


def test_refresh_rejects_access_token_and_missing_token(client, user):
    access = bearer(user)["Authorization"].split(" ", 1)[1]
    assert client.post("/api/auth/refresh-token", json={"refreshToken": access}).status_code == 401
    assert client.post("/api/auth/refresh-token", json={}).status_code == 400


def test_change_password(client, db, user, user_headers):
    resp = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "wrong-one", "newPassword": "newsecret"},
        headers=user_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Current password is incorrect"

    resp = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "secret123", "newPassword": "newsecret"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    assert client.post("/api/auth/login", json={"email": user["email"], "password": "newsecret"}).status_code == 200
    activity = db["useractivity"].find_one({"action": "update"})
    assert activity["details"]["field"] == "password"


def test_logout_requires_auth_and_logs(client, db, user_headers):
    assert client.post("/api/auth/logout").status_code == 401
    assert client.post("/api/auth/logout", headers=user_headers).status_code == 200
    assert db["useractivity"].count_documents({"action": "logout"}) == 1
