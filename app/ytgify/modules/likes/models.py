from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ytgify.models import Base

if TYPE_CHECKING:
    from app.ytgify.models import User
    from app.ytgify.modules.gifs.models import Gif


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("user_id", "gif_id", name="uq_like_user_gif"),
        Index("idx_likes_gif", "gif_id"),
        Index("idx_likes_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    gif_id: Mapped[int] = mapped_column(ForeignKey("gifs.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", lazy="selectin")
    gif: Mapped["Gif"] = relationship("Gif", lazy="selectin")
