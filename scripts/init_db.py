"""
Seed a demo account so a fresh deploy has someone to log in as.

DEMO_PASSWORD turns the seed on; DEMO_EMAIL and DEMO_USERNAME default to demo@ytgify.com / demo.
An existing account with that email is left untouched.

Usage:
  python scripts/init_db.py
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path

from sqlalchemy import create_engine, or_, select
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ytgify.models import User  # noqa: E402


def seed_only(*, database_url: str | None = None) -> bool:
    """Returns True when the demo user was created."""
    password = os.environ.get("DEMO_PASSWORD") or ""
    if not password:
        print("[seed] DEMO_PASSWORD unset, skipping", flush=True)
        return False
    email = (os.environ.get("DEMO_EMAIL") or "demo@ytgify.com").strip().lower()
    username = (os.environ.get("DEMO_USERNAME") or "demo").strip()
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///ytgify.db").strip()

    # Plain engine: release runs before the Flask app exists.
    engine = create_engine(db_url, future=True)
    try:
        with Session(engine, expire_on_commit=False) as s, s.begin():
            taken = s.execute(
                select(User.id).where(or_(User.email == email, User.username == username))
            ).first()
            if taken is not None:
                print(f"[seed] {email} / {username} already taken, leaving it alone", flush=True)
                return False
            now = datetime.utcnow()
            s.add(
                User(
                    email=email,
                    username=username,
                    display_name=username,
                    password_hash=generate_password_hash(password),
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
    finally:
        engine.dispose()

    print(f"[seed] created demo user {username} <{email}>", flush=True)
    return True


if __name__ == "__main__":
    seed_only()
