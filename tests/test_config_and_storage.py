from datetime import date

import pytest
from PIL import UnidentifiedImageError

from app.ytgify.config import check_production_config, load_config
from app.ytgify.modules.gifs.processing import extract_metadata
from app.ytgify.storage import LocalStorage, StorageError, build_storage_key

STRONG_SECRET = "s" * 40


def _prod(**overrides):
    cfg = {
        "ENV": "production",
        "DATABASE_URL": "postgresql://u:p@db/ytgify",
        "SECRET_KEY": "a-real-secret",
        "JWT_SECRET_KEY": STRONG_SECRET,
    }
    cfg.update(overrides)
    return cfg


def test_production_config_guardrails():
    check_production_config(_prod())
    check_production_config({"ENV": "development", "DATABASE_URL": "sqlite:///x.db"})

    with pytest.raises(RuntimeError, match="Postgres"):
        check_production_config(_prod(DATABASE_URL="sqlite:///prod.db"))
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        check_production_config(_prod(SECRET_KEY="change-me"))
    with pytest.raises(RuntimeError, match="JWT_SECRET_KEY must be set"):
        check_production_config(_prod(JWT_SECRET_KEY="changeme"))
    with pytest.raises(RuntimeError, match="too short"):
        check_production_config(_prod(JWT_SECRET_KEY="short-secret"))


def test_load_config_defaults(monkeypatch):
    for k in ("JWT_EXPIRATION_MINUTES", "MAX_UPLOAD_MB", "RATE_LIMIT_ENABLED", "PUBLIC_BASE_URL"):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("JWT_EXPIRATION_MINUTES", "not-a-number")
    cfg = load_config()
    assert cfg["JWT_EXPIRATION_MINUTES"] == 15
    assert cfg["MAX_CONTENT_LENGTH"] == 25 * 1024 * 1024
    assert cfg["RATE_LIMIT_ENABLED"] is True
    assert cfg["PUBLIC_BASE_URL"] == "https://ytgify.com"


def test_build_storage_key():
    key = build_storage_key("gifs", 7, "my clip (1).gif", upload_date=date(2026, 3, 4))
    prefix, owner, day, name = key.split("/")
    assert (prefix, owner, day) == ("gifs", "7", "2026-03-04")
    assert name.endswith("-my_clip_1.gif")
    assert build_storage_key("gifs", 7, "a.gif") != build_storage_key("gifs", 7, "a.gif")


def test_local_storage_roundtrip_and_escape(tmp_path):
    storage = LocalStorage(root=tmp_path)
    storage.put_bytes("gifs/1/a.gif", b"GIF89a")
    assert storage.exists("gifs/1/a.gif")
    assert storage.read_bytes("gifs/1/a.gif") == b"GIF89a"
    storage.delete("gifs/1/a.gif")
    assert not storage.exists("gifs/1/a.gif")
    with pytest.raises(StorageError):
        storage.put_bytes("../outside.gif", b"x")


def test_extract_metadata(make_gif_bytes):
    meta = extract_metadata(make_gif_bytes(frames=5, size=(20, 10), duration_ms=40))
    assert (meta.width, meta.height, meta.frame_count) == (20, 10, 5)
    assert meta.fps == 25
    assert meta.duration == 0.2


def test_extract_metadata_rejects_non_image():
    with pytest.raises(UnidentifiedImageError):
        extract_metadata(b"definitely not an image")
