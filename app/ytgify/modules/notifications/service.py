from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.ytgify import broadcast
from app.ytgify.errors import NotFound
from app.ytgify.models import User
from app.ytgify.modules.notifications.models import Notification
from app.ytgify.utils import iso

logger = logging.getLogger(__name__)

INDEX_LIMIT = 50


def create_notification(
    s: Session,
    *,
    recipient: User,
    actor: User,
    notifiable_type: str,
    notifiable_id: int,
    action: str,
    data: dict | None = None,
) -> Notification | None:
    """
    Persist and broadcast a notification. Self-notifications are skipped.
    Never raises: a failed notification must not fail the like/comment/follow that caused it.
    """
    if recipient.id == actor.id:
        return None
    try:
        with s.begin_nested():
            n = Notification(
                recipient_id=recipient.id,
                actor_id=actor.id,
                notifiable_type=notifiable_type,
                notifiable_id=notifiable_id,
                action=action,
                data=json.dumps(data, sort_keys=True) if data else None,
                created_at=datetime.utcnow(),
            )
            n.actor = actor
            s.add(n)
            s.flush()
    except Exception:
        logger.exception(
            "Failed to create %s notification (recipient_id=%s actor_id=%s)", action, recipient.id, actor.id
        )
        return None
    broadcast_notification(n)
    return n


def broadcast_payload(n: Notification) -> dict:
    return {
        "id": n.id,
        "message": n.message,
        "actor_name": n.actor.username,
        "action": n.action,
        "created_at": iso(n.created_at),
        "read": n.is_read,
    }


def broadcast_notification(n: Notification) -> None:
    try:
        delivered = broadcast.publish(n.recipient_id, broadcast_payload(n))
    except Exception:
        logger.exception("Failed to broadcast notification id=%s", n.id)
        return
    logger.debug("Broadcast notification id=%s to %s subscriber(s)", n.id, delivered)


def notify_like(s: Session, like) -> Notification | None:
    return create_notification(
        s, recipient=like.gif.user, actor=like.user, notifiable_type="Like", notifiable_id=like.id, action="like"
    )


def notify_comment(s: Session, comment) -> Notification | None:
    return create_notification(
        s,
        recipient=comment.gif.user,
        actor=comment.user,
        notifiable_type="Comment",
        notifiable_id=comment.id,
        action="comment",
    )


def notify_follow(s: Session, follow) -> Notification | None:
    return create_notification(
        s,
        recipient=follow.following,
        actor=follow.follower,
        notifiable_type="Follow",
        notifiable_id=follow.id,
        action="follow",
    )


def notify_collection_add(s: Session, entry) -> Notification | None:
    return create_notification(
        s,
        recipient=entry.gif.user,
        actor=entry.collection.user,
        notifiable_type="CollectionGif",
        notifiable_id=entry.id,
        action="collection_add",
        data={"collection_name": entry.collection.name},
    )


def notify_remix(s: Session, remix) -> Notification | None:
    parent = remix.parent_gif
    if parent is None:
        return None
    return create_notification(
        s, recipient=parent.user, actor=remix.user, notifiable_type="Gif", notifiable_id=remix.id, action="remix"
    )


def list_for(s: Session, user: User, *, limit: int = INDEX_LIMIT) -> list[Notification]:
    return list(
        s.execute(
            select(Notification)
            .where(Notification.recipient_id == user.id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).scalars()
    )


def unread_count(s: Session, user: User) -> int:
    return s.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == user.id, Notification.read_at.is_(None)
        )
    ).scalar_one()


def mark_as_read(s: Session, user: User, notification_id: int) -> Notification:
    n = s.get(Notification, notification_id)
    if n is None or n.recipient_id != user.id:
        raise NotFound(f"Couldn't find Notification with id={notification_id}")
    if n.read_at is None:
        n.read_at = datetime.utcnow()
    return n


def mark_all_as_read(s: Session, user: User) -> int:
    result = s.execute(
        update(Notification)
        .where(Notification.recipient_id == user.id, Notification.read_at.is_(None))
        .values(read_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0
