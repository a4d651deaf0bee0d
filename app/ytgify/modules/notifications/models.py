from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ytgify.models import Base

if TYPE_CHECKING:
    from app.ytgify.models import User


ACTION_MESSAGES = {
    "like": "liked your GIF",
    "comment": "commented on your GIF",
    "follow": "started following you",
    "collection_add": "added your GIF to their collection",
    "remix": "remixed your GIF",
}


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_recipient_created", "recipient_id", "created_at"),
        Index("idx_notifications_recipient_read", "recipient_id", "read_at"),
        Index("idx_notifications_notifiable", "notifiable_type", "notifiable_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    actor_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Polymorphic pointer: "Like", "Comment", "Follow", "CollectionGif" or "Gif"
    notifiable_type: Mapped[str] = mapped_column(String(64), nullable=False)
    notifiable_id: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[str] = mapped_column(String(32), nullable=False)
    data: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    recipient: Mapped["User"] = relationship("User", foreign_keys=[recipient_id], lazy="select")
    actor: Mapped["User"] = relationship("User", foreign_keys=[actor_id], lazy="selectin")

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    @property
    def parsed_data(self) -> dict:
        if not self.data:
            return {}
        try:
            value = json.loads(self.data)
        except json.JSONDecodeError:
            return {}
        return value if isinstance(value, dict) else {}

    @property
    def message(self) -> str:
        actor_name = self.actor.username if self.actor else "Someone"
        suffix = ACTION_MESSAGES.get(self.action, self.action)
        return f"{actor_name} {suffix}"
