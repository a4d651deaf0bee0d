"""
Release step run before every deploy: schema upgrade, then the demo account.

Refuses to touch SQLite when ENV says production. Safe to run repeatedly.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _database_url() -> str:
    url = (os.environ.get("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is required for a release.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and url.startswith("sqlite"):
        raise RuntimeError("ENV=production with a SQLite DATABASE_URL; point it at Postgres.")
    return url


def migrate(db_url: str, revision: str = "head") -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, revision)


def run_release() -> None:
    db_url = _database_url()

    print("[release] alembic upgrade head", flush=True)
    migrate(db_url)

    from scripts.init_db import seed_only

    created = seed_only(database_url=db_url)
    print(f"[release] done (demo user {'created' if created else 'unchanged'})", flush=True)


if __name__ == "__main__":
    run_release()
