from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ytgify.models import Base

if TYPE_CHECKING:
    from app.ytgify.models import User
    from app.ytgify.modules.hashtags.models import Hashtag


PRIVACY_PUBLIC = 0
PRIVACY_UNLISTED = 1
PRIVACY_PRIVATE = 2

PRIVACY_NAMES = {
    PRIVACY_PUBLIC: "public_access",
    PRIVACY_UNLISTED: "unlisted",
    PRIVACY_PRIVATE: "private_access",
}

# Accept both the stored enum names and the short names the extension sends.
PRIVACY_VALUES = {
    "public_access": PRIVACY_PUBLIC,
    "public": PRIVACY_PUBLIC,
    "unlisted": PRIVACY_UNLISTED,
    "private_access": PRIVACY_PRIVATE,
    "private": PRIVACY_PRIVATE,
}


class Gif(Base):
    __tablename__ = "gifs"
    __table_args__ = (
        Index("idx_gifs_user_created", "user_id", "created_at"),
        Index("idx_gifs_public_feed", "deleted_at", "privacy", "created_at"),
        Index("idx_gifs_popularity", "like_count", "view_count"),
        Index("idx_gifs_parent", "parent_gif_id"),
        Index("idx_gifs_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Source clip
    youtube_video_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    youtube_video_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    youtube_channel_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    youtube_timestamp_start: Mapped[float | None] = mapped_column(Float, nullable=True)
    youtube_timestamp_end: Mapped[float | None] = mapped_column(Float, nullable=True)

    # File metadata (filled in by processing)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    fps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resolution_width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resolution_height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    file_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)

    has_text_overlay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    text_overlay_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Remix lineage (adjacency list)
    is_remix: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_gif_id: Mapped[int | None] = mapped_column(ForeignKey("gifs.id", ondelete="SET NULL"), nullable=True)

    privacy: Mapped[int] = mapped_column(Integer, nullable=False, default=PRIVACY_PUBLIC)

    # Denormalized counters
    remix_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    share_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="gifs", foreign_keys=[user_id], lazy="selectin")
    parent_gif: Mapped["Gif | None"] = relationship("Gif", remote_side=[id], lazy="select")
    hashtags: Mapped[list["Hashtag"]] = relationship(
        "Hashtag",
        secondary="gif_hashtags",
        lazy="selectin",
        order_by="Hashtag.name",
        viewonly=True,
    )

    @property
    def privacy_name(self) -> str:
        return PRIVACY_NAMES.get(self.privacy, "public_access")

    @property
    def is_public(self) -> bool:
        return self.privacy == PRIVACY_PUBLIC

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def hashtag_names(self) -> list[str]:
        return [h.name for h in self.hashtags]

    def remixable_by(self, user: "User | None") -> bool:
        if self.privacy == PRIVACY_PUBLIC:
            return True
        return bool(user and user.id == self.user_id)

    def visible_to(self, user: "User | None") -> bool:
        if self.privacy != PRIVACY_PRIVATE:
            return True
        return bool(user and user.id == self.user_id)
