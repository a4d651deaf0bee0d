import os
from dataclasses import dataclass


DEFAULT_JWT_SECRETS = ("", "changeme", "changeme-in-production")


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    jwt_secret_key: str
    jwt_expiration_minutes: int

    storage_backend: str
    storage_root: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    public_base_url: str
    rate_limit_enabled: bool
    process_uploads_inline: bool
    max_upload_mb: int
    stream_max_seconds: int
    stream_retry_ms: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getflag(name: str, default: str = "1") -> bool:
    return _getenv(name, default).lower() in ("1", "true", "yes", "on")


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///ytgify.db"),
        jwt_secret_key=_getenv("JWT_SECRET_KEY", "changeme-in-production"),
        jwt_expiration_minutes=_getint("JWT_EXPIRATION_MINUTES", 15),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        storage_root=_getenv("STORAGE_ROOT", "storage"),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "us-east-1"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        public_base_url=_getenv("PUBLIC_BASE_URL", "https://ytgify.com").rstrip("/"),
        rate_limit_enabled=_getflag("RATE_LIMIT_ENABLED", "1"),
        process_uploads_inline=_getflag("PROCESS_UPLOADS_INLINE", "1"),
        max_upload_mb=_getint("MAX_UPLOAD_MB", 25),
        stream_max_seconds=_getint("STREAM_MAX_SECONDS", 300),
        stream_retry_ms=_getint("STREAM_RETRY_MS", 3000),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "JWT_SECRET_KEY": s.jwt_secret_key,
        "JWT_EXPIRATION_MINUTES": s.jwt_expiration_minutes,
        "STORAGE_BACKEND": s.storage_backend,
        "STORAGE_ROOT": s.storage_root,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "PUBLIC_BASE_URL": s.public_base_url,
        "RATE_LIMIT_ENABLED": s.rate_limit_enabled,
        "PROCESS_UPLOADS_INLINE": s.process_uploads_inline,
        # GIF uploads; larger bodies get a 413
        "MAX_CONTENT_LENGTH": s.max_upload_mb * 1024 * 1024,
        # notification streams end after this long; clients reconnect after STREAM_RETRY_MS
        "STREAM_MAX_SECONDS": s.stream_max_seconds,
        "STREAM_RETRY_MS": s.stream_retry_ms,
    }


def check_production_config(config: dict) -> None:
    """Fail fast when a production deploy is missing required secrets."""
    env = (config.get("ENV") or "").strip().lower()
    if env not in ("prod", "production"):
        return
    db_url = str(config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    if not config.get("SECRET_KEY") or str(config["SECRET_KEY"]) in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
    jwt_secret = str(config.get("JWT_SECRET_KEY") or "")
    if jwt_secret in DEFAULT_JWT_SECRETS:
        raise RuntimeError("JWT_SECRET_KEY must be set in production (generate one with: openssl rand -hex 32).")
    if len(jwt_secret) < 32:
        raise RuntimeError(
            f"JWT_SECRET_KEY is too short ({len(jwt_secret)} chars). Must be at least 32 characters."
        )
