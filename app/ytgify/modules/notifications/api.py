from __future__ import annotations

import json
import queue
import time

from flask import Blueprint, Response, current_app, jsonify

from app.ytgify import broadcast
from app.ytgify.db import db_session
from app.ytgify.guards import require_current_user, require_login
from app.ytgify.modules.notifications.service import list_for, mark_all_as_read, mark_as_read, unread_count
from app.ytgify.serializers import notification_json

bp = Blueprint("notifications", __name__)

STREAM_KEEPALIVE_SECONDS = 15


@bp.get("/notifications")
@require_login
def notifications_index():
    s = db_session()
    user = require_current_user()
    rows = list_for(s, user)
    return jsonify({"notifications": [notification_json(n) for n in rows], "unread_count": unread_count(s, user)}), 200


@bp.post("/notifications/<int:notification_id>/read")
@require_login
def notifications_mark_read(notification_id: int):
    s = db_session()
    user = require_current_user()
    n = mark_as_read(s, user, notification_id)
    s.commit()
    return jsonify({"notification": notification_json(n), "unread_count": unread_count(s, user)}), 200


@bp.post("/notifications/read_all")
@require_login
def notifications_mark_all_read():
    s = db_session()
    user = require_current_user()
    updated = mark_all_as_read(s, user)
    s.commit()
    return jsonify({"message": "All notifications marked as read", "updated": updated, "unread_count": 0}), 200


def _sse(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


@bp.get("/notifications/stream")
@require_login
def notifications_stream():
    """
    Server-Sent Events: one `notification` event per new notification for the caller,
    plus a comment line every few seconds to keep proxies from closing the connection.

    The stream closes after STREAM_MAX_SECONDS; the `retry:` field tells EventSource
    clients how long to wait before reconnecting.
    """
    user_id = require_current_user().id
    max_seconds = float(current_app.config.get("STREAM_MAX_SECONDS", 300))
    retry_ms = int(current_app.config.get("STREAM_RETRY_MS", 3000))
    logger = current_app.logger
    sub = broadcast.subscribe(user_id)
    logger.info("Notification stream opened user_id=%s", user_id)

    def generate():
        deadline = time.monotonic() + max_seconds
        try:
            yield f"retry: {retry_ms}\n: connected\n\n"
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    yield ": reconnect\n\n"
                    logger.info("Notification stream expired user_id=%s", user_id)
                    return
                try:
                    payload = sub.get(timeout=min(STREAM_KEEPALIVE_SECONDS, remaining))
                except queue.Empty:
                    if deadline > time.monotonic():
                        yield ": keepalive\n\n"
                    continue
                yield _sse("notification", payload)
        finally:
            broadcast.unsubscribe(user_id, sub)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
