from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.ytgify.errors import NotFound
from app.ytgify.models import User
from app.ytgify.modules.gifs.models import PRIVACY_PUBLIC, Gif
from app.ytgify.modules.likes.models import Like
from app.ytgify.modules.notifications.service import notify_like
from app.ytgify.utils import bump_counter, offset_for

logger = logging.getLogger(__name__)


def find_like(s: Session, user: User, gif: Gif) -> Like | None:
    return s.execute(select(Like).where(Like.user_id == user.id, Like.gif_id == gif.id)).scalar_one_or_none()


def has_liked(s: Session, user: User | None, gif: Gif) -> bool:
    if user is None:
        return False
    return find_like(s, user, gif) is not None


def liked_ids(s: Session, user: User | None, gif_ids: list[int]) -> set[int]:
    if user is None or not gif_ids:
        return set()
    return set(s.execute(select(Like.gif_id).where(Like.user_id == user.id, Like.gif_id.in_(gif_ids))).scalars())


def like_gif(s: Session, user: User, gif: Gif) -> Like:
    existing = find_like(s, user, gif)
    if existing is not None:
        return existing
    like = Like(user_id=user.id, gif_id=gif.id, created_at=datetime.utcnow())
    try:
        with s.begin_nested():
            s.add(like)
            s.flush()
    except IntegrityError:
        # Double-click race: the other request already liked it.
        return find_like(s, user, gif)
    bump_counter(s, Gif, gif.id, "like_count", 1)
    bump_counter(s, User, gif.user_id, "total_likes_received", 1)
    notify_like(s, like)
    return like


def unlike(s: Session, like: Like) -> None:
    gif_id, owner_id = like.gif_id, like.gif.user_id
    s.delete(like)
    s.flush()
    bump_counter(s, Gif, gif_id, "like_count", -1)
    bump_counter(s, User, owner_id, "total_likes_received", -1)


def toggle_like(s: Session, user: User, gif: Gif) -> bool:
    """Returns True when the GIF is now liked."""
    existing = find_like(s, user, gif)
    if existing is not None:
        unlike(s, existing)
        return False
    like_gif(s, user, gif)
    return True


def remove_like(s: Session, user: User, gif: Gif, like_id: int) -> None:
    like = s.get(Like, like_id)
    if like is None or like.user_id != user.id or like.gif_id != gif.id:
        raise NotFound(f"Couldn't find Like with id={like_id}")
    unlike(s, like)


def liked_gifs(
    s: Session, user: User, *, viewer: User | None = None, page: int = 1, per_page: int = 20
) -> tuple[list[Gif], int]:
    """GIFs `user` liked, most recent like first. Non-public GIFs show only to their owner."""
    conds = [Like.user_id == user.id, Gif.deleted_at.is_(None)]
    if viewer is None:
        conds.append(Gif.privacy == PRIVACY_PUBLIC)
    else:
        conds.append(or_(Gif.privacy == PRIVACY_PUBLIC, Gif.user_id == viewer.id))
    total = s.execute(select(func.count(Like.id)).join(Gif, Gif.id == Like.gif_id).where(*conds)).scalar_one()
    gifs = s.execute(
        select(Gif)
        .join(Like, Like.gif_id == Gif.id)
        .where(*conds)
        .order_by(Like.created_at.desc(), Like.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(gifs), total
