from __future__ import annotations

import logging
import re
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.ytgify import cache
from app.ytgify.errors import NotFound
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.modules.hashtags.models import GifHashtag, Hashtag
from app.ytgify.utils import bump_counter, offset_for, parameterize

logger = logging.getLogger(__name__)

HASHTAG_RE = re.compile(r"#(\w+)")
TRENDING_HASHTAGS_CACHE_SECONDS = 60 * 60
SEARCH_LIMIT_MAX = 20


def normalize_name(name: str | None) -> str:
    return (name or "").strip().lower().removeprefix("#")


def find_or_create_by_name(s: Session, name: str | None) -> Hashtag | None:
    normalized = normalize_name(name)
    if not normalized:
        return None
    slug = parameterize(normalized)
    if not slug:
        return None
    existing = s.execute(select(Hashtag).where(Hashtag.slug == slug)).scalar_one_or_none()
    if existing:
        return existing
    now = datetime.utcnow()
    hashtag = Hashtag(name=normalized, slug=slug, usage_count=0, created_at=now, updated_at=now)
    try:
        with s.begin_nested():
            s.add(hashtag)
            s.flush()
    except IntegrityError:
        # Lost a race with another writer; use theirs.
        return s.execute(select(Hashtag).where(Hashtag.slug == slug)).scalar_one_or_none()
    clear_hashtag_cache()
    return hashtag


def parse_from_text(s: Session, text: str | None) -> list[Hashtag]:
    if not text:
        return []
    names: list[str] = []
    for tag in HASHTAG_RE.findall(text):
        tag = tag.lower()
        if tag not in names:
            names.append(tag)
    return [h for h in (find_or_create_by_name(s, n) for n in names) if h is not None]


def _gif_hashtag_ids(s: Session, gif: Gif) -> set[int]:
    return set(s.execute(select(GifHashtag.hashtag_id).where(GifHashtag.gif_id == gif.id)).scalars())


def add_hashtag(s: Session, gif: Gif, hashtag_or_name: Hashtag | str) -> bool:
    hashtag = hashtag_or_name if isinstance(hashtag_or_name, Hashtag) else find_or_create_by_name(s, hashtag_or_name)
    if hashtag is None or hashtag.id in _gif_hashtag_ids(s, gif):
        return False
    s.add(GifHashtag(gif_id=gif.id, hashtag_id=hashtag.id))
    s.flush()
    bump_counter(s, Hashtag, hashtag.id, "usage_count", 1)
    s.expire(gif, ["hashtags"])
    clear_hashtag_cache()
    return True


def remove_hashtag(s: Session, gif: Gif, hashtag_or_name: Hashtag | str) -> bool:
    if isinstance(hashtag_or_name, Hashtag):
        hashtag = hashtag_or_name
    else:
        hashtag = s.execute(
            select(Hashtag).where(Hashtag.name == normalize_name(hashtag_or_name))
        ).scalar_one_or_none()
    if hashtag is None:
        return False
    link = s.execute(
        select(GifHashtag).where(GifHashtag.gif_id == gif.id, GifHashtag.hashtag_id == hashtag.id)
    ).scalar_one_or_none()
    if link is None:
        return False
    s.delete(link)
    s.flush()
    bump_counter(s, Hashtag, hashtag.id, "usage_count", -1)
    s.expire(gif, ["hashtags"])
    clear_hashtag_cache()
    return True


def set_hashtags(s: Session, gif: Gif, hashtags: list[Hashtag]) -> None:
    """Replace the GIF's hashtags, keeping usage counts in step."""
    wanted = {h.id: h for h in hashtags}
    current = _gif_hashtag_ids(s, gif)
    for hashtag_id in current - wanted.keys():
        remove_hashtag(s, gif, s.get(Hashtag, hashtag_id))
    for hashtag_id in wanted.keys() - current:
        add_hashtag(s, gif, wanted[hashtag_id])


def set_hashtag_names(s: Session, gif: Gif, names) -> list[Hashtag]:
    if isinstance(names, str):
        names = [n for n in re.split(r"[,\s]+", names) if n]
    seen: list[str] = []
    for n in names or []:
        normalized = normalize_name(str(n))
        if normalized and normalized not in seen:
            seen.append(normalized)
    hashtags = [h for h in (find_or_create_by_name(s, n) for n in seen) if h is not None]
    set_hashtags(s, gif, hashtags)
    return hashtags


def get_hashtag(s: Session, slug_or_id: str) -> Hashtag:
    hashtag = s.execute(select(Hashtag).where(Hashtag.slug == slug_or_id.lower())).scalar_one_or_none()
    if hashtag is None and slug_or_id.isdigit():
        hashtag = s.get(Hashtag, int(slug_or_id))
    if hashtag is None:
        raise NotFound(f"Couldn't find Hashtag '{slug_or_id}'")
    return hashtag


def trending_query():
    return select(Hashtag).where(Hashtag.usage_count > 0).order_by(Hashtag.usage_count.desc(), Hashtag.name.asc())


def trending(s: Session, *, limit: int = 10, offset: int = 0) -> list[Hashtag]:
    return list(s.execute(trending_query().offset(offset).limit(limit)).scalars())


def trending_count(s: Session) -> int:
    return s.execute(select(func.count(Hashtag.id)).where(Hashtag.usage_count > 0)).scalar_one()


def cached_trending_ids(s: Session, *, limit: int = 10, offset: int = 0) -> list[int]:
    return cache.fetch(
        f"feed/trending_hashtags/offset_{offset}/limit_{limit}",
        lambda: [h.id for h in trending(s, limit=limit, offset=offset)],
        expires_in=TRENDING_HASHTAGS_CACHE_SECONDS,
    )


def cached_trending(s: Session, *, limit: int = 10, offset: int = 0) -> list[Hashtag]:
    """Trending hashtags, held for an hour or until a hashtag write clears them."""
    ids = cached_trending_ids(s, limit=limit, offset=offset)
    if not ids:
        return []
    by_id = {h.id: h for h in s.execute(select(Hashtag).where(Hashtag.id.in_(ids))).scalars()}
    return [by_id[i] for i in ids if i in by_id]


def search(s: Session, query: str, *, limit: int = 10) -> list[Hashtag]:
    query = normalize_name(query)
    limit = min(max(limit, 1), SEARCH_LIMIT_MAX)
    if not query:
        return cached_trending(s, limit=limit)
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return list(
        s.execute(
            select(Hashtag)
            .where(func.lower(Hashtag.name).like(f"{escaped}%", escape="\\"))
            .order_by(Hashtag.usage_count.desc(), Hashtag.name.asc())
            .limit(limit)
        ).scalars()
    )


def clear_hashtag_cache() -> None:
    cache.delete_matched("feed/trending_hashtags/")


def list_alphabetical(s: Session, *, page: int = 1, per_page: int = 20) -> tuple[list[Hashtag], int]:
    total = s.execute(select(func.count(Hashtag.id))).scalar_one()
    rows = s.execute(
        select(Hashtag).order_by(Hashtag.name.asc()).offset(offset_for(page, per_page)).limit(per_page)
    ).scalars()
    return list(rows), total
