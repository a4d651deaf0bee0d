from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ytgify.models import Base

if TYPE_CHECKING:
    from app.ytgify.models import User
    from app.ytgify.modules.gifs.models import Gif


class Collection(Base):
    __tablename__ = "collections"
    __table_args__ = (
        Index("idx_collections_user_created", "user_id", "created_at"),
        Index("idx_collections_is_public", "is_public"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gifs_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", lazy="selectin")
    entries: Mapped[list["CollectionGif"]] = relationship(
        "CollectionGif",
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="CollectionGif.position",
        lazy="select",
    )

    def visible_to(self, viewer: "User | None") -> bool:
        return self.is_public or bool(viewer and viewer.id == self.user_id)


class CollectionGif(Base):
    __tablename__ = "collection_gifs"
    __table_args__ = (
        UniqueConstraint("collection_id", "gif_id", name="uq_collection_gif"),
        Index("idx_collection_gifs_position", "collection_id", "position"),
        Index("idx_collection_gifs_gif", "gif_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    collection_id: Mapped[int] = mapped_column(ForeignKey("collections.id", ondelete="CASCADE"), nullable=False)
    gif_id: Mapped[int] = mapped_column(ForeignKey("gifs.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    collection: Mapped["Collection"] = relationship("Collection", back_populates="entries", lazy="selectin")
    gif: Mapped["Gif"] = relationship("Gif", lazy="selectin")
