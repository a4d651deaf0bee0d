"""
Maintenance and post-upload jobs. Each job takes an app (for config and the session
factory) and is run from `scripts/run_job.py` by cron or by hand.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from flask import Flask
from sqlalchemy import delete, func, select

from app.ytgify.db import session_scope
from app.ytgify.models import JwtDenylist, User
from app.ytgify.modules.analytics.service import cleanup_old_view_events
from app.ytgify.modules.feed.service import refresh_scored_trending
from app.ytgify.modules.follows.models import Follow
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.modules.gifs.processing import process_gif as _process_gif
from app.ytgify.modules.gifs.processing import process_remix as _process_remix
from app.ytgify.storage import storage_from_config

logger = logging.getLogger(__name__)

ACTIVE_USER_WINDOW = timedelta(days=90)


def process_gif(app: Flask, gif_id: int) -> bool:
    with session_scope(app) as s:
        gif = s.get(Gif, gif_id)
        if gif is None:
            logger.warning("process_gif: Gif %s not found", gif_id)
            return False
        return _process_gif(s, storage_from_config(app.config), gif)


def process_remix(app: Flask, remix_id: int, source_id: int) -> bool:
    with session_scope(app) as s:
        remix = s.get(Gif, remix_id)
        source = s.get(Gif, source_id)
        if remix is None or source is None:
            logger.error("process_remix: record not found (remix=%s source=%s)", remix_id, source_id)
            return False
        _process_remix(s, remix, source)
        return True


def update_trending(app: Flask, *, now: datetime | None = None) -> list[int]:
    with session_scope(app) as s:
        ids = refresh_scored_trending(s, now=now)
    logger.info("Updated trending GIFs: %s cached", len(ids))
    return ids


def _recount_user(s, user: User) -> None:
    live = (Gif.user_id == user.id, Gif.deleted_at.is_(None))
    user.gifs_count = s.execute(select(func.count(Gif.id)).where(*live)).scalar_one()
    user.total_likes_received = s.execute(select(func.coalesce(func.sum(Gif.like_count), 0)).where(*live)).scalar_one()
    user.follower_count = s.execute(
        select(func.count(Follow.id)).where(Follow.following_id == user.id)
    ).scalar_one()
    user.following_count = s.execute(
        select(func.count(Follow.id)).where(Follow.follower_id == user.id)
    ).scalar_one()


def update_engagement_stats(app: Flask, *, now: datetime | None = None) -> int:
    """Recompute denormalized counters for users who posted in the last 90 days."""
    since = (now or datetime.utcnow()) - ACTIVE_USER_WINDOW
    with session_scope(app) as s:
        user_ids = s.execute(select(Gif.user_id).where(Gif.created_at > since).distinct()).scalars().all()
        for user_id in user_ids:
            user = s.get(User, user_id)
            if user is not None:
                _recount_user(s, user)
    logger.info("Updated engagement stats for %s active users", len(user_ids))
    return len(user_ids)


def cleanup_view_events(app: Flask, *, now: datetime | None = None) -> int:
    with session_scope(app) as s:
        deleted = cleanup_old_view_events(s, now=now)
    logger.info("Cleaned up %s old view events", deleted)
    return deleted


def cleanup_jwt_denylist(app: Flask, *, now: datetime | None = None) -> int:
    cutoff = now or datetime.utcnow()
    with session_scope(app) as s:
        result = s.execute(delete(JwtDenylist).where(JwtDenylist.exp.isnot(None), JwtDenylist.exp < cutoff))
        deleted = result.rowcount or 0
    logger.info("Purged %s expired denylist entries", deleted)
    return deleted


JOBS = {
    "process_gif": process_gif,
    "process_remix": process_remix,
    "update_trending": update_trending,
    "update_engagement_stats": update_engagement_stats,
    "cleanup_view_events": cleanup_view_events,
    "cleanup_jwt_denylist": cleanup_jwt_denylist,
}
