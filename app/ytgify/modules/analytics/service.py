from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.ytgify.models import User
from app.ytgify.modules.analytics.models import ViewEvent
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.utils import bump_counter

UNIQUE_VIEW_WINDOW = timedelta(hours=24)
RETENTION = timedelta(days=30)


def record_view(
    s: Session,
    gif: Gif,
    *,
    viewer: User | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referer: str | None = None,
    now: datetime | None = None,
) -> ViewEvent:
    """
    Log a view. Only the first view per viewer (or per IP when anonymous) in a
    24 hour window is unique, and only unique views bump `gifs.view_count`.
    """
    now = now or datetime.utcnow()
    since = now - UNIQUE_VIEW_WINDOW
    seen = select(ViewEvent.id).where(ViewEvent.gif_id == gif.id, ViewEvent.created_at >= since)
    if viewer is not None:
        seen = seen.where(ViewEvent.viewer_id == viewer.id)
    else:
        seen = seen.where(ViewEvent.viewer_id.is_(None), ViewEvent.ip_address == ip_address)
    is_unique = s.execute(seen.limit(1)).first() is None

    ev = ViewEvent(
        gif_id=gif.id,
        viewer_id=viewer.id if viewer else None,
        viewer_type="User" if viewer else "Anonymous",
        ip_address=ip_address,
        user_agent=(user_agent or None) and user_agent[:512],
        referer=(referer or None) and referer[:1024],
        is_unique=is_unique,
        created_at=now,
    )
    s.add(ev)
    s.flush()
    if is_unique:
        bump_counter(s, Gif, gif.id, "view_count", 1)
    return ev


def unique_viewers_count(s: Session, gif: Gif) -> int:
    return s.execute(
        select(func.count(ViewEvent.id)).where(ViewEvent.gif_id == gif.id, ViewEvent.is_unique.is_(True))
    ).scalar_one()


def total_views_count(s: Session, gif: Gif) -> int:
    return s.execute(select(func.count(ViewEvent.id)).where(ViewEvent.gif_id == gif.id)).scalar_one()


def views_by_day(s: Session, gif: Gif, *, days: int = 7, now: datetime | None = None) -> dict[str, int]:
    """Views per calendar day (ISO date -> count), zero-filled, oldest first."""
    now = now or datetime.utcnow()
    start = (now - timedelta(days=days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
    counts: dict[date, int] = {}
    for (created_at,) in s.execute(
        select(ViewEvent.created_at).where(ViewEvent.gif_id == gif.id, ViewEvent.created_at >= start)
    ):
        d = created_at.date()
        counts[d] = counts.get(d, 0) + 1
    return {
        (start.date() + timedelta(days=i)).isoformat(): counts.get(start.date() + timedelta(days=i), 0)
        for i in range(days)
    }


def top_referrers(s: Session, gif: Gif, *, limit: int = 10) -> dict[str, int]:
    rows = s.execute(
        select(ViewEvent.referer, func.count(ViewEvent.id).label("n"))
        .where(ViewEvent.gif_id == gif.id, ViewEvent.referer.isnot(None))
        .group_by(ViewEvent.referer)
        .order_by(func.count(ViewEvent.id).desc(), ViewEvent.referer.asc())
        .limit(limit)
    ).all()
    return {referer: n for referer, n in rows}


def gif_report(s: Session, gif: Gif, *, days: int = 7) -> dict:
    return {
        "gif_id": gif.id,
        "view_count": gif.view_count,
        "unique_viewers": unique_viewers_count(s, gif),
        "total_views": total_views_count(s, gif),
        "views_by_day": views_by_day(s, gif, days=days),
        "top_referrers": top_referrers(s, gif),
    }


def cleanup_old_view_events(s: Session, *, now: datetime | None = None) -> int:
    cutoff = (now or datetime.utcnow()) - RETENTION
    result = s.execute(delete(ViewEvent).where(ViewEvent.created_at < cutoff))
    return result.rowcount or 0
