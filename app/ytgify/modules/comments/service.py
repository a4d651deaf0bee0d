from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.ytgify.errors import NotFound, ValidationError
from app.ytgify.models import User
from app.ytgify.modules.comments.models import DELETED_CONTENT, Comment
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.modules.notifications.service import notify_comment
from app.ytgify.utils import bump_counter, offset_for

logger = logging.getLogger(__name__)

CONTENT_MAX = 2000
REPLY_PREVIEW_LIMIT = 3


def validate_content(content: str | None) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Content can't be blank")
    if len(content) > CONTENT_MAX:
        raise ValidationError(f"Content is too long (maximum is {CONTENT_MAX} characters)")
    return content


def get_comment(s: Session, comment_id: int) -> Comment:
    comment = s.get(Comment, comment_id)
    if comment is None or comment.is_deleted:
        raise NotFound(f"Couldn't find Comment with id={comment_id}")
    return comment


def create_comment(s: Session, user: User, gif: Gif, params: dict) -> Comment:
    content = validate_content(params.get("content"))
    parent: Comment | None = None
    parent_id = params.get("parent_comment_id")
    if parent_id:
        try:
            parent = s.get(Comment, int(parent_id))
        except (TypeError, ValueError):
            parent = None
        if parent is None or parent.is_deleted:
            raise ValidationError("Parent comment must exist")
        if parent.gif_id != gif.id:
            raise ValidationError("Parent comment must belong to the same GIF")

    now = datetime.utcnow()
    comment = Comment(
        user_id=user.id,
        gif_id=gif.id,
        parent_comment_id=parent.id if parent else None,
        content=content,
        created_at=now,
        updated_at=now,
    )
    s.add(comment)
    s.flush()
    bump_counter(s, Gif, gif.id, "comment_count", 1)
    if parent is not None:
        bump_counter(s, Comment, parent.id, "reply_count", 1)
    notify_comment(s, comment)
    return comment


def update_comment(s: Session, comment: Comment, params: dict) -> Comment:
    comment.content = validate_content(params.get("content"))
    comment.updated_at = datetime.utcnow()
    s.flush()
    return comment


def soft_delete_comment(s: Session, comment: Comment) -> None:
    if comment.is_deleted:
        return
    comment.content = DELETED_CONTENT
    comment.deleted_at = datetime.utcnow()
    comment.updated_at = comment.deleted_at
    s.flush()
    bump_counter(s, Gif, comment.gif_id, "comment_count", -1)
    if comment.parent_comment_id is not None:
        bump_counter(s, Comment, comment.parent_comment_id, "reply_count", -1)
    logger.info("Comment soft-deleted id=%s gif_id=%s", comment.id, comment.gif_id)


def recent_replies(s: Session, comment: Comment, *, limit: int = REPLY_PREVIEW_LIMIT) -> list[Comment]:
    return list(
        s.execute(
            select(Comment)
            .where(Comment.parent_comment_id == comment.id, Comment.deleted_at.is_(None))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .limit(limit)
        ).scalars()
    )


def list_top_level(
    s: Session, gif: Gif, *, page: int = 1, per_page: int = 20
) -> tuple[list[tuple[Comment, list[Comment]]], int]:
    """Top-level comments newest first, each paired with its newest replies."""
    conds = [Comment.gif_id == gif.id, Comment.parent_comment_id.is_(None), Comment.deleted_at.is_(None)]
    total = s.execute(select(func.count(Comment.id)).where(*conds)).scalar_one()
    comments = s.execute(
        select(Comment)
        .where(*conds)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return [(c, recent_replies(s, c) if c.reply_count > 0 else []) for c in comments], total
