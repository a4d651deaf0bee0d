from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.ytgify import cache
from app.ytgify.models import User
from app.ytgify.modules.feed.models import TrendingSnapshot
from app.ytgify.modules.follows.models import Follow
from app.ytgify.modules.gifs.models import PRIVACY_PUBLIC, Gif
from app.ytgify.modules.hashtags.models import GifHashtag, Hashtag
from app.ytgify.utils import offset_for

logger = logging.getLogger(__name__)

TRENDING_CACHE_SECONDS = 15 * 60
TRENDING_WINDOW = timedelta(days=7)
SCORED_TRENDING_WINDOW = timedelta(days=30)
SCORED_TRENDING_LIMIT = 100
SCORED_TRENDING_KEY = "trending_gifs"

LIKE_WEIGHT = 3
VIEW_WEIGHT = 1
COMMENT_WEIGHT = 2
AGE_EXPONENT = 1.5


def public_gifs():
    return select(Gif).where(Gif.deleted_at.is_(None), Gif.privacy == PRIVACY_PUBLIC)


def trending_scope(now: datetime | None = None):
    """Public GIFs from the last 7 days, most liked then most viewed."""
    now = now or datetime.utcnow()
    return (
        public_gifs()
        .where(Gif.created_at > now - TRENDING_WINDOW)
        .order_by(Gif.like_count.desc(), Gif.view_count.desc(), Gif.created_at.desc(), Gif.id.desc())
    )


def trending_score(gif: Gif, now: datetime | None = None) -> float:
    """
    engagement / age_hours ** 1.5, where engagement = 3*likes + views + 2*comments.
    Ages under an hour count as one hour.
    """
    now = now or datetime.utcnow()
    engagement = (
        LIKE_WEIGHT * (gif.like_count or 0)
        + VIEW_WEIGHT * (gif.view_count or 0)
        + COMMENT_WEIGHT * (gif.comment_count or 0)
    )
    age_hours = max((now - gif.created_at).total_seconds() / 3600.0, 1.0)
    return engagement / (age_hours ** AGE_EXPONENT)


def compute_trending_ids(s: Session, *, now: datetime | None = None, limit: int = SCORED_TRENDING_LIMIT) -> list[int]:
    now = now or datetime.utcnow()
    candidates = s.execute(public_gifs().where(Gif.created_at > now - SCORED_TRENDING_WINDOW)).scalars().all()
    ranked = sorted(candidates, key=lambda g: (trending_score(g, now), g.created_at, g.id), reverse=True)
    return [g.id for g in ranked[:limit]]


def load_in_order(s: Session, ids: list[int]) -> list[Gif]:
    """Fetch public, non-deleted GIFs by id, keeping the order of `ids`."""
    if not ids:
        return []
    by_id = {g.id: g for g in s.execute(public_gifs().where(Gif.id.in_(ids))).scalars()}
    return [by_id[i] for i in ids if i in by_id]


def _page(s: Session, query, page: int, per_page: int) -> list[Gif]:
    return list(s.execute(query.offset(offset_for(page, per_page)).limit(per_page)).scalars())


def public_count(s: Session) -> int:
    return s.execute(
        select(func.count(Gif.id)).where(Gif.deleted_at.is_(None), Gif.privacy == PRIVACY_PUBLIC)
    ).scalar_one()


def count_of(s: Session, query) -> int:
    return s.execute(select(func.count()).select_from(query.order_by(None).subquery())).scalar_one()


def scored_trending_ids(s: Session, *, now: datetime | None = None) -> list[int]:
    """
    The scored top list: memory cache, then the snapshot the trending job stored, then
    computed on the spot. On-demand results stay in this process only.
    """
    ids = cache.read(SCORED_TRENDING_KEY)
    if ids is not None:
        return ids
    now = now or datetime.utcnow()
    snapshot = _snapshot(s)
    if snapshot is not None and snapshot.computed_at > now - timedelta(seconds=TRENDING_CACHE_SECONDS):
        ids = [int(i) for i in snapshot.gif_ids]
        age = (now - snapshot.computed_at).total_seconds()
        cache.write(SCORED_TRENDING_KEY, ids, expires_in=TRENDING_CACHE_SECONDS - age)
        return ids
    ids = compute_trending_ids(s, now=now)
    cache.write(SCORED_TRENDING_KEY, ids, expires_in=TRENDING_CACHE_SECONDS)
    return ids


def trending(s: Session, *, page: int = 1, per_page: int = 20) -> tuple[list[Gif], int]:
    scored = scored_trending_ids(s)
    start = offset_for(page, per_page)
    return load_in_order(s, scored[start:start + per_page]), len(scored)


def popular(s: Session, *, page: int = 1, per_page: int = 20) -> list[Gif]:
    query = public_gifs().order_by(Gif.like_count.desc(), Gif.view_count.desc(), Gif.id.desc())
    ids = cache.fetch(
        f"feed/popular/page_{page}/per_{per_page}",
        lambda: [g.id for g in _page(s, query, page, per_page)],
        expires_in=TRENDING_CACHE_SECONDS,
    )
    return load_in_order(s, ids)


def recent(s: Session, *, page: int = 1, per_page: int = 20) -> list[Gif]:
    return _page(s, public_gifs().order_by(Gif.created_at.desc(), Gif.id.desc()), page, per_page)


def generate_public(s: Session, *, page: int = 1, per_page: int = 20) -> list[Gif]:
    return _page(s, trending_scope(), page, per_page)


def following_ids(s: Session, user: User) -> list[int]:
    return list(s.execute(select(Follow.following_id).where(Follow.follower_id == user.id)).scalars())


def following_query(ids: list[int]):
    return public_gifs().where(Gif.user_id.in_(ids)).order_by(Gif.created_at.desc(), Gif.id.desc())


def following(s: Session, user: User, *, page: int = 1, per_page: int = 20) -> tuple[list[Gif], int]:
    ids = following_ids(s, user)
    if not ids:
        return [], 0
    total = s.execute(
        select(func.count(Gif.id)).where(
            Gif.deleted_at.is_(None), Gif.privacy == PRIVACY_PUBLIC, Gif.user_id.in_(ids)
        )
    ).scalar_one()
    return _page(s, following_query(ids), page, per_page), total


def generate_for_user(s: Session, user: User, *, page: int = 1, per_page: int = 20, rng: random.Random | None = None) -> list[Gif]:
    """
    Half a page of followed creators' newest GIFs plus half a page of trending GIFs from
    everyone else, shuffled together. Users who follow nobody get the trending feed.
    """
    ids = following_ids(s, user)
    if not ids:
        return _page(s, trending_scope(), page, per_page)

    follow_limit = (per_page + 1) // 2
    trending_limit = per_page // 2
    followed = list(
        s.execute(
            following_query(ids).offset(offset_for(page, follow_limit)).limit(follow_limit)
        ).scalars()
    )
    others: list[Gif] = []
    if trending_limit:
        others = list(
            s.execute(
                trending_scope()
                .where(Gif.user_id.notin_(ids + [user.id]))
                .offset(offset_for(page, trending_limit))
                .limit(trending_limit)
            ).scalars()
        )
    mixed = followed + others
    (rng or random).shuffle(mixed)
    return mixed[:per_page]


def personal_feed_total(s: Session, user: User) -> int:
    """Size of both halves of `generate_for_user`, or of the trending scope for non-followers."""
    ids = following_ids(s, user)
    if not ids:
        return count_of(s, trending_scope())
    others = trending_scope().where(Gif.user_id.notin_(ids + [user.id]))
    return count_of(s, following_query(ids)) + count_of(s, others)


def by_hashtag(s: Session, hashtag: Hashtag, *, page: int = 1, per_page: int = 20) -> tuple[list[Gif], int]:
    query = (
        public_gifs()
        .join(GifHashtag, GifHashtag.gif_id == Gif.id)
        .where(GifHashtag.hashtag_id == hashtag.id)
    )
    total = s.execute(select(func.count()).select_from(query.subquery())).scalar_one()
    gifs = _page(s, query.order_by(Gif.created_at.desc(), Gif.id.desc()), page, per_page)
    return gifs, total


def _snapshot(s: Session) -> TrendingSnapshot | None:
    return s.execute(
        select(TrendingSnapshot).where(TrendingSnapshot.name == SCORED_TRENDING_KEY)
    ).scalar_one_or_none()


def refresh_scored_trending(s: Session, *, now: datetime | None = None) -> list[int]:
    """Score, then store the top list where every process can read it."""
    ids = compute_trending_ids(s, now=now)
    snapshot = _snapshot(s)
    if snapshot is None:
        snapshot = TrendingSnapshot(name=SCORED_TRENDING_KEY)
        s.add(snapshot)
    snapshot.gif_ids = ids
    snapshot.computed_at = datetime.utcnow()
    s.flush()
    cache.write(SCORED_TRENDING_KEY, ids, expires_in=TRENDING_CACHE_SECONDS)
    return ids


def clear_trending_cache(s: Session | None = None) -> None:
    cache.delete(SCORED_TRENDING_KEY)
    cache.delete_matched("feed/popular/")
    if s is not None:
        s.execute(delete(TrendingSnapshot).where(TrendingSnapshot.name == SCORED_TRENDING_KEY))
