import io

import pytest
from PIL import Image

from app.ytgify import cache, create_app
from app.ytgify.db import create_schema


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-jwt-secret-0123456789abcdef0123456789")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://ytgify.test")
    monkeypatch.setenv("PROCESS_UPLOADS_INLINE", "1")
    monkeypatch.setenv("STREAM_RETRY_MS", "3000")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    cache.clear()
    app = create_app()
    create_schema(app)

    yield app

    cache.clear()
    app.extensions["sqlalchemy_engine"].dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def register(client):
    """Sign a user up; returns (user_json, auth_headers)."""

    def _register(username="alice", email=None, password="password123"):
        r = client.post(
            "/api/v1/auth/register",
            json={"user": {"email": email or f"{username}@example.com", "username": username, "password": password}},
        )
        assert r.status_code == 201, r.json
        return r.json["user"], {"Authorization": f"Bearer {r.json['token']}"}

    return _register


@pytest.fixture()
def create_gif(client):
    def _create(headers, **fields):
        fields.setdefault("title", "A clip")
        r = client.post("/api/v1/gifs", json={"gif": fields}, headers=headers)
        assert r.status_code == 201, r.json
        return r.json["gif"]

    return _create


def gif_bytes(frames=4, size=(32, 24), duration_ms=100):
    """A small animated GIF; every frame a different colour so Pillow keeps them all."""
    images = [Image.new("RGB", size, (i * 50 % 256, 80, 160)) for i in range(frames)]
    buf = io.BytesIO()
    images[0].save(buf, format="GIF", save_all=True, append_images=images[1:], duration=duration_ms, loop=0)
    return buf.getvalue()


@pytest.fixture()
def make_gif_bytes():
    return gif_bytes
