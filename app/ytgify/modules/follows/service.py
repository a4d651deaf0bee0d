from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.ytgify.errors import ValidationError
from app.ytgify.models import User
from app.ytgify.modules.follows.models import Follow
from app.ytgify.modules.notifications.service import notify_follow
from app.ytgify.utils import bump_counter, offset_for


def find_follow(s: Session, follower: User, followed: User) -> Follow | None:
    return s.execute(
        select(Follow).where(Follow.follower_id == follower.id, Follow.following_id == followed.id)
    ).scalar_one_or_none()


def is_following(s: Session, follower: User | None, followed: User) -> bool:
    if follower is None:
        return False
    return find_follow(s, follower, followed) is not None


def follow(s: Session, follower: User, followed: User) -> Follow:
    if follower.id == followed.id:
        raise ValidationError("Cannot follow yourself", error="Cannot follow yourself")
    existing = find_follow(s, follower, followed)
    if existing is not None:
        return existing
    rel = Follow(follower_id=follower.id, following_id=followed.id, created_at=datetime.utcnow())
    try:
        with s.begin_nested():
            s.add(rel)
            s.flush()
    except IntegrityError:
        return find_follow(s, follower, followed)
    bump_counter(s, User, follower.id, "following_count", 1)
    bump_counter(s, User, followed.id, "follower_count", 1)
    notify_follow(s, rel)
    return rel


def unfollow(s: Session, follower: User, followed: User) -> bool:
    rel = find_follow(s, follower, followed)
    if rel is None:
        return False
    s.delete(rel)
    s.flush()
    bump_counter(s, User, follower.id, "following_count", -1)
    bump_counter(s, User, followed.id, "follower_count", -1)
    return True


def toggle_follow(s: Session, follower: User, followed: User) -> bool:
    """Returns True when `follower` now follows `followed`."""
    if follower.id == followed.id:
        raise ValidationError("Cannot follow yourself", error="Cannot follow yourself")
    if unfollow(s, follower, followed):
        return False
    follow(s, follower, followed)
    return True


def _page_users(s: Session, user_col, where, page: int, per_page: int) -> tuple[list[User], int]:
    total = s.execute(select(func.count(Follow.id)).where(where)).scalar_one()
    users = s.execute(
        select(User)
        .join(Follow, user_col == User.id)
        .where(where)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(users), total


def followers(s: Session, user: User, *, page: int = 1, per_page: int = 20) -> tuple[list[User], int]:
    return _page_users(s, Follow.follower_id, Follow.following_id == user.id, page, per_page)


def following(s: Session, user: User, *, page: int = 1, per_page: int = 20) -> tuple[list[User], int]:
    return _page_users(s, Follow.following_id, Follow.follower_id == user.id, page, per_page)
