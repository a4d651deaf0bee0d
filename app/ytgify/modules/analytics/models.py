from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.ytgify.models import Base


class ViewEvent(Base):
    __tablename__ = "view_events"
    __table_args__ = (
        Index("idx_view_events_gif_created", "gif_id", "created_at"),
        Index("idx_view_events_viewer_gif_created", "viewer_id", "gif_id", "created_at"),
        Index("idx_view_events_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    gif_id: Mapped[int] = mapped_column(ForeignKey("gifs.id", ondelete="CASCADE"), nullable=False)
    viewer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    viewer_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Anonymous")  # "User" or "Anonymous"

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    referer: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
