"""
Bearer-token authentication for the API (browser extension and web client).

Tokens are HS256 JWTs: `sub` (user id), `jti` (unique per token, denylisted on logout),
`ver` (the user's current `users.jti`; rotating it invalidates every outstanding token),
`iat` and `exp`.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import select

from app.ytgify.db import db_session
from app.ytgify.errors import Unauthorized
from app.ytgify.guards import require_current_user, require_login
from app.ytgify.models import JwtDenylist, User
from app.ytgify.modules.users.service import authenticate, register_user, update_profile
from app.ytgify.serializers import user_json
from app.ytgify.utils import json_body, require_param

ALGORITHM = "HS256"

bp = Blueprint("auth", __name__)


def generate_token(user: User, *, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    minutes = int(current_app.config.get("JWT_EXPIRATION_MINUTES") or 15)
    payload = {
        "sub": str(user.id),
        "jti": uuid.uuid4().hex,
        "ver": user.jti,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Raises jwt.InvalidTokenError (incl. ExpiredSignatureError) on a bad token."""
    return jwt.decode(
        token,
        current_app.config["JWT_SECRET_KEY"],
        algorithms=[ALGORITHM],
        options={"require": ["sub", "jti", "exp"]},
    )


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_revoked(s, jti: str) -> bool:
    return s.execute(select(JwtDenylist.id).where(JwtDenylist.jti == jti)).first() is not None


def load_current_user() -> None:
    """
    Loads g.current_user from the Authorization header.
    Also assigns a simple per-request request_id (for log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    g.current_user = None
    g.token_claims = None

    token = _bearer_token()
    if not token:
        return

    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError:
        current_app.logger.info("Expired token presented (request_id=%s)", g.request_id)
        return
    except jwt.InvalidTokenError as e:
        current_app.logger.info("Invalid token presented: %s (request_id=%s)", e, g.request_id)
        return

    s = db_session()
    if is_revoked(s, claims["jti"]):
        return
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        return
    user = s.get(User, user_id)
    if not user or not user.is_active:
        return
    if claims.get("ver") != user.jti:
        return
    g.current_user = user
    g.token_claims = claims


def _token_response(body: dict, token: str, status: int):
    resp = jsonify({**body, "token": token})
    resp.headers["Authorization"] = f"Bearer {token}"
    resp.status_code = status
    return resp


@bp.post("/auth/register")
def register():
    s = db_session()
    params = require_param(json_body(), "user")
    user = register_user(s, params)
    s.commit()
    current_app.logger.info("User registered user_id=%s username=%s", user.id, user.username)
    return _token_response(
        {"message": "Registration successful", "user": user_json(user)},
        generate_token(user),
        201,
    )


@bp.post("/auth/login")
def login():
    s = db_session()
    params = require_param(json_body(), "user")
    email = (params.get("email") or "").strip().lower()
    user = authenticate(s, email, params.get("password") or "", ip=request.remote_addr)
    if user is None:
        s.commit()
        current_app.logger.info("Login failed email=%s request_id=%s", email, getattr(g, "request_id", None))
        raise Unauthorized("Email or password is incorrect", error="Invalid credentials")
    s.commit()
    return _token_response(
        {"message": "Login successful", "user": user_json(user)},
        generate_token(user),
        200,
    )


@bp.delete("/auth/logout")
@require_login
def logout():
    s = db_session()
    claims = g.token_claims or {}
    jti = claims.get("jti")
    if jti and not is_revoked(s, jti):
        exp = claims.get("exp")
        s.add(
            JwtDenylist(
                jti=jti,
                exp=datetime.fromtimestamp(exp, timezone.utc).replace(tzinfo=None) if exp else None,
            )
        )
        s.commit()
    return jsonify({"message": "Logout successful"}), 200


@bp.post("/auth/refresh")
@require_login
def refresh():
    user = require_current_user()
    return _token_response({"message": "Token refreshed"}, generate_token(user), 200)


@bp.get("/auth/me")
@require_login
def me():
    return jsonify({"user": user_json(require_current_user())}), 200


@bp.patch("/auth/me")
@require_login
def me_update():
    s = db_session()
    user = require_current_user()
    params = require_param(json_body(), "user")
    rotated = update_profile(s, user, params)
    s.commit()
    body: dict = {"message": "Profile updated", "user": user_json(user)}
    if rotated:
        # Old tokens are dead now; hand back a fresh one.
        return _token_response(body, generate_token(user), 200)
    return jsonify(body), 200
