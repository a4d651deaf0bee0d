"""
In-process notification fan-out.

Each live client (the `/notifications/stream` SSE endpoint) subscribes a queue for one
user id; `publish` pushes a payload onto every queue for that user. Payloads for users
with no subscribers are dropped.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections import defaultdict

logger = logging.getLogger(__name__)

_MAX_PENDING = 100

_lock = threading.Lock()
_subscribers: dict[int, list[queue.Queue]] = defaultdict(list)


def subscribe(user_id: int) -> queue.Queue:
    q: queue.Queue = queue.Queue(maxsize=_MAX_PENDING)
    with _lock:
        _subscribers[user_id].append(q)
    return q


def unsubscribe(user_id: int, q: queue.Queue) -> None:
    with _lock:
        subs = _subscribers.get(user_id)
        if not subs:
            return
        if q in subs:
            subs.remove(q)
        if not subs:
            _subscribers.pop(user_id, None)


def subscriber_count(user_id: int) -> int:
    with _lock:
        return len(_subscribers.get(user_id) or [])


def publish(user_id: int, payload: dict) -> int:
    """Deliver to every subscriber of `user_id`; returns how many received it."""
    with _lock:
        targets = list(_subscribers.get(user_id) or [])
    delivered = 0
    for q in targets:
        try:
            q.put_nowait(payload)
            delivered += 1
        except queue.Full:
            logger.warning("Notification stream backlog full for user_id=%s; dropping event", user_id)
    return delivered
