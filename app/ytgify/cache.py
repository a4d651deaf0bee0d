"""
Small per-process TTL cache for feed pages and trending lists.

Keys are plain strings ("feed/trending/page_1/per_20"); `delete_matched` drops every key
under a prefix so writers can invalidate a whole family of pages at once.
"""
from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

_lock = threading.Lock()
_entries: dict[str, tuple[float, Any]] = {}


def read(key: str) -> Any | None:
    with _lock:
        hit = _entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if expires_at <= time.monotonic():
            _entries.pop(key, None)
            return None
        return value


def write(key: str, value: Any, *, expires_in: float) -> None:
    with _lock:
        _entries[key] = (time.monotonic() + expires_in, value)


def fetch(key: str, fn: Callable[[], Any], *, expires_in: float) -> Any:
    value = read(key)
    if value is not None:
        return value
    value = fn()
    write(key, value, expires_in=expires_in)
    return value


def delete(key: str) -> None:
    with _lock:
        _entries.pop(key, None)


def delete_matched(prefix: str) -> int:
    with _lock:
        doomed = [k for k in _entries if k.startswith(prefix)]
        for k in doomed:
            del _entries[k]
    return len(doomed)


def clear() -> None:
    with _lock:
        _entries.clear()
