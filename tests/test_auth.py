from datetime import datetime, timedelta, timezone

import jwt

from app.ytgify.auth import ALGORITHM, generate_token
from app.ytgify.db import session_scope
from app.ytgify.models import JwtDenylist, User


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_register_returns_token_and_user(client):
    r = client.post(
        "/api/v1/auth/register",
        json={"user": {"email": "Alice@Example.com", "username": "alice", "password": "password123"}},
    )
    assert r.status_code == 201
    assert r.json["message"] == "Registration successful"
    assert r.json["user"]["email"] == "alice@example.com"
    assert r.json["user"]["display_name"] == "alice"
    assert r.json["user"]["preferences"]["default_privacy"] == "public"
    assert r.headers["Authorization"] == f"Bearer {r.json['token']}"


def test_register_validation_errors(client, register):
    register("alice")
    r = client.post(
        "/api/v1/auth/register",
        json={"user": {"email": "alice@example.com", "username": "a!", "password": "123"}},
    )
    assert r.status_code == 422
    assert r.json["error"] == "Registration failed"
    details = r.json["details"]
    assert "Email has already been taken" in details
    assert "Username only allows letters, numbers, and underscores" in details
    assert "Password is too short (minimum is 6 characters)" in details


def test_register_requires_user_param(client):
    r = client.post("/api/v1/auth/register", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.json["error"] == "Parameter missing"


def test_login_success_and_failure(client, register):
    register("alice")
    r = client.post("/api/v1/auth/login", json={"user": {"email": "alice@example.com", "password": "nope"}})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"

    r = client.post("/api/v1/auth/login", json={"user": {"email": "ALICE@example.com", "password": "password123"}})
    assert r.status_code == 200
    token = r.json["token"]
    me = client.get("/api/v1/auth/me", headers=_bearer(token))
    assert me.status_code == 200
    assert me.json["user"]["username"] == "alice"


def test_login_tracks_sign_in(app, client, register):
    register("alice")
    client.post("/api/v1/auth/login", json={"user": {"email": "alice@example.com", "password": "password123"}})
    with session_scope(app) as s:
        user = s.query(User).filter_by(username="alice").one()
        assert user.sign_in_count == 1
        assert user.last_sign_in_at is not None


def test_logout_revokes_token(app, client, register):
    _, headers = register("alice")
    r = client.delete("/api/v1/auth/logout", headers=headers)
    assert r.status_code == 200
    assert r.json["message"] == "Logout successful"

    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401
    with session_scope(app) as s:
        assert s.query(JwtDenylist).count() == 1


def test_refresh_issues_new_working_token(client, register):
    _, headers = register("alice")
    r = client.post("/api/v1/auth/refresh", headers=headers)
    assert r.status_code == 200
    new_token = r.json["token"]
    assert _bearer(new_token) != headers
    assert client.get("/api/v1/auth/me", headers=_bearer(new_token)).status_code == 200


def test_expired_token_rejected(app, client, register):
    register("alice")
    with app.app_context(), session_scope(app) as s:
        user = s.query(User).filter_by(username="alice").one()
        token = generate_token(user, now=datetime.now(timezone.utc) - timedelta(hours=1))
    assert client.get("/api/v1/auth/me", headers=_bearer(token)).status_code == 401


def test_token_claims(app, register):
    register("alice")
    with app.app_context(), session_scope(app) as s:
        user = s.query(User).filter_by(username="alice").one()
        token = generate_token(user)
        claims = jwt.decode(token, app.config["JWT_SECRET_KEY"], algorithms=[ALGORITHM])
        assert claims["sub"] == str(user.id)
        assert claims["ver"] == user.jti
        assert claims["exp"] - claims["iat"] == 15 * 60
        assert claims["jti"] != user.jti


def test_profile_update(client, register):
    _, headers = register("alice")
    r = client.patch(
        "/api/v1/auth/me",
        json={"user": {"display_name": "Alice A.", "bio": "clips", "default_privacy": "unlisted"}},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json["user"]["display_name"] == "Alice A."
    assert r.json["user"]["preferences"]["default_privacy"] == "unlisted"
    assert "token" not in r.json

    r = client.patch("/api/v1/auth/me", json={"user": {"bio": "x" * 501}}, headers=headers)
    assert r.status_code == 422


def test_password_change_rotates_tokens(client, register):
    _, headers = register("alice")
    r = client.patch(
        "/api/v1/auth/me",
        json={"user": {"password": "newpassword", "current_password": "wrong"}},
        headers=headers,
    )
    assert r.status_code == 422
    assert "Current password is invalid" in r.json["details"]

    r = client.patch(
        "/api/v1/auth/me",
        json={"user": {"password": "newpassword", "current_password": "password123"}},
        headers=headers,
    )
    assert r.status_code == 200
    fresh = _bearer(r.json["token"])

    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401
    assert client.get("/api/v1/auth/me", headers=fresh).status_code == 200
    r = client.post("/api/v1/auth/login", json={"user": {"email": "alice@example.com", "password": "newpassword"}})
    assert r.status_code == 200


def test_register_without_username_derives_one_from_email(client, register):
    register("jane_doe")
    r = client.post(
        "/api/v1/auth/register",
        json={"user": {"email": "Jane.Doe@example.com", "password": "password123"}},
    )
    assert r.status_code == 201
    assert r.json["user"]["username"] == "jane_doe_1"


def test_generate_username_from_email(app):
    from app.ytgify.modules.users.service import generate_username_from_email

    long_local = "a.very-long.mailbox.name.for.testing"
    with session_scope(app) as s:
        assert generate_username_from_email(s, "john.doe+gifs@example.com") == "john_doe_gifs"
        assert generate_username_from_email(s, "x@example.com") == "x__"

        capped = generate_username_from_email(s, f"{long_local}@example.com")
        assert capped == "a_very_long_mailbox_name_"
        assert len(capped) == 25

        s.add(User(email="one@example.com", username=capped, password_hash="x"))
        s.add(User(email="two@example.com", username="john_doe_gifs", password_hash="x"))
        s.add(User(email="three@example.com", username="john_doe_gifs_1", password_hash="x"))
        s.flush()

        assert generate_username_from_email(s, f"{long_local}@example.com") == "a_very_long_mailbox_nam_1"
        assert generate_username_from_email(s, "john.doe+gifs@example.com") == "john_doe_gifs_2"
