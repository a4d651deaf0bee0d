from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.ytgify.models import Base


class TrendingSnapshot(Base):
    """
    Latest scored trending list. Written by `run_job.py update_trending` (its own process)
    and read by the web process, so it lives in the database rather than the memory cache.
    """

    __tablename__ = "trending_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    gif_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
