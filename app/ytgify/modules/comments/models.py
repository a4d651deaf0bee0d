from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ytgify.models import Base

if TYPE_CHECKING:
    from app.ytgify.models import User
    from app.ytgify.modules.gifs.models import Gif


DELETED_CONTENT = "[deleted]"


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("idx_comments_gif_created", "gif_id", "created_at"),
        Index("idx_comments_parent", "parent_comment_id"),
        Index("idx_comments_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    gif_id: Mapped[int] = mapped_column(ForeignKey("gifs.id", ondelete="CASCADE"), nullable=False)
    parent_comment_id: Mapped[int | None] = mapped_column(ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    reply_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", lazy="selectin")
    gif: Mapped["Gif"] = relationship("Gif", lazy="select")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
