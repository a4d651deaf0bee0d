from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from app.ytgify.modules.gifs.models import Gif


def _new_jti() -> str:
    return str(uuid.uuid4())


def default_preferences() -> dict:
    return {
        "default_privacy": "public",
        "default_upload_behavior": "show_options",
        "recently_used_tags": [],
    }


RECENT_TAGS_LIMIT = 10


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    # Tokens carry this value as "ver"; rotating it logs the user out everywhere.
    jti: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, default=_new_jti)

    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    twitter_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    youtube_channel: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Denormalized counters
    gifs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_likes_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    follower_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    following_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    preferences: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=default_preferences)

    sign_in_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_sign_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    last_sign_in_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    gifs: Mapped[list["Gif"]] = relationship(
        "Gif",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Gif.user_id",
        lazy="select",
    )

    @property
    def default_privacy(self) -> str:
        return (self.preferences or {}).get("default_privacy") or "public"

    @property
    def recently_used_tags(self) -> list[str]:
        return list((self.preferences or {}).get("recently_used_tags") or [])

    def set_preference(self, key: str, value) -> None:
        # Reassign so the JSON column is flagged dirty.
        prefs = dict(self.preferences or default_preferences())
        prefs[key] = value
        self.preferences = prefs

    def add_recent_tag(self, tag: str) -> None:
        tags = [t for t in self.recently_used_tags if t != tag]
        tags.insert(0, tag)
        self.set_preference("recently_used_tags", tags[:RECENT_TAGS_LIMIT])

    def rotate_jti(self) -> None:
        self.jti = _new_jti()


class JwtDenylist(Base):
    """Revoked token ids (logout). Rows past `exp` can be purged."""

    __tablename__ = "jwt_denylists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    jti: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    exp: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.ytgify.modules.gifs.models import Gif  # noqa: E402,F401
from app.ytgify.modules.hashtags.models import GifHashtag, Hashtag  # noqa: E402,F401
from app.ytgify.modules.likes.models import Like  # noqa: E402,F401
from app.ytgify.modules.comments.models import Comment  # noqa: E402,F401
from app.ytgify.modules.follows.models import Follow  # noqa: E402,F401
from app.ytgify.modules.collections.models import Collection, CollectionGif  # noqa: E402,F401
from app.ytgify.modules.notifications.models import Notification  # noqa: E402,F401
from app.ytgify.modules.analytics.models import ViewEvent  # noqa: E402,F401
from app.ytgify.modules.feed.models import TrendingSnapshot  # noqa: E402,F401
