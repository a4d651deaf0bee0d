from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.ytgify.models import Base


class Hashtag(Base):
    __tablename__ = "hashtags"
    __table_args__ = (
        Index("idx_hashtags_usage_count", "usage_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)  # lowercase, no leading '#'
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    def __str__(self) -> str:
        return f"#{self.name}"


class GifHashtag(Base):
    __tablename__ = "gif_hashtags"
    __table_args__ = (
        UniqueConstraint("gif_id", "hashtag_id", name="uq_gif_hashtag"),
        Index("idx_gif_hashtags_hashtag", "hashtag_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    gif_id: Mapped[int] = mapped_column(ForeignKey("gifs.id", ondelete="CASCADE"), nullable=False)
    hashtag_id: Mapped[int] = mapped_column(ForeignKey("hashtags.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
