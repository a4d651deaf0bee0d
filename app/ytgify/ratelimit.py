"""
Request throttling for the JSON API.

Per-process sliding windows keyed by (rule, discriminator). A rule's discriminator returns
None when the rule does not apply to the request. Localhost is always allowed.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from flask import Flask, Request, g, jsonify, request

logger = logging.getLogger(__name__)

SAFELIST_IPS = ("127.0.0.1", "::1")


@dataclass(frozen=True)
class Throttle:
    name: str
    limit: int
    period: int  # seconds
    discriminator: Callable[[Request, int | None], str | None]


def _is_write(req: Request) -> bool:
    return req.method in ("POST", "PUT", "PATCH")


def _api_auth_ip(req: Request, user_id: int | None) -> str | None:
    if req.path.startswith("/api/v1/auth") and req.method in ("POST", "PUT"):
        return req.remote_addr
    return None


def _uploads_user(req: Request, user_id: int | None) -> str | None:
    if req.path.rstrip("/") == "/api/v1/gifs" and req.method == "POST" and user_id:
        return str(user_id)
    return None


def _comments_user(req: Request, user_id: int | None) -> str | None:
    if req.path.endswith("/comments") and _is_write(req) and user_id:
        return str(user_id)
    return None


def _api_user(req: Request, user_id: int | None) -> str | None:
    if req.path.startswith("/api/v1/") and user_id:
        return str(user_id)
    return None


def _api_ip(req: Request, user_id: int | None) -> str | None:
    if req.path.startswith("/api/v1/"):
        return req.remote_addr
    return None


DEFAULT_THROTTLES: tuple[Throttle, ...] = (
    Throttle("api/auth/ip", 5, 60, _api_auth_ip),
    Throttle("uploads/user", 10, 3600, _uploads_user),
    Throttle("comments/user", 10, 60, _comments_user),
    Throttle("api/user", 300, 300, _api_user),
    Throttle("api/ip", 100, 300, _api_ip),
)


class RateLimiter:
    SWEEP_EVERY = 60.0  # seconds between passes that drop idle keys

    def __init__(self, throttles: tuple[Throttle, ...] = DEFAULT_THROTTLES):
        self.throttles = throttles
        self._periods = {rule.name: rule.period for rule in throttles}
        self._hits: dict[tuple[str, str], list[float]] = defaultdict(list)
        self._lock = threading.Lock()
        self._last_sweep = 0.0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            cutoff = now - self._periods.get(key[0], 0)
            bucket = [t for t in self._hits[key] if t > cutoff]
            if bucket:
                self._hits[key] = bucket
            else:
                del self._hits[key]
        self._last_sweep = now

    def check(self, req: Request, user_id: int | None, now: float | None = None) -> tuple[Throttle, float] | None:
        """
        Returns (rule, seconds_until_reset) for the first matching rule that is over its
        limit, recording nothing. Otherwise records the request against every matching rule.
        """
        if req.remote_addr in SAFELIST_IPS:
            return None
        now = time.time() if now is None else now
        with self._lock:
            if now - self._last_sweep >= self.SWEEP_EVERY:
                self._sweep(now)
            matched: list[tuple[str, str]] = []
            for rule in self.throttles:
                key = rule.discriminator(req, user_id)
                if key is None:
                    continue
                slot = (rule.name, key)
                bucket = [t for t in self._hits.get(slot, ()) if t > now - rule.period]
                if len(bucket) >= rule.limit:
                    self._hits[slot] = bucket
                    return rule, max(bucket[0] + rule.period - now, 0.0)
                if bucket:
                    self._hits[slot] = bucket
                else:
                    self._hits.pop(slot, None)
                matched.append(slot)
            for slot in matched:
                self._hits[slot].append(now)
        return None


def init_rate_limiting(app: Flask, limiter: RateLimiter | None = None) -> RateLimiter:
    limiter = limiter or RateLimiter()
    app.extensions["rate_limiter"] = limiter

    @app.before_request
    def _throttle():  # type: ignore[no-redef]
        if not app.config.get("RATE_LIMIT_ENABLED"):
            return None
        user = getattr(g, "current_user", None)
        hit = limiter.check(request, user.id if user else None)
        if hit is None:
            return None
        rule, retry_in = hit
        logger.warning(
            "[rate-limit] throttle: %s - IP: %s, Path: %s, request_id=%s",
            rule.name,
            request.remote_addr,
            request.path,
            getattr(g, "request_id", None),
        )
        retry_after = max(int(math.ceil(retry_in)), 1)
        resp = jsonify({"error": "Rate limit exceeded. Please try again later.", "retry_after": retry_after})
        resp.status_code = 429
        resp.headers["RateLimit-Limit"] = str(rule.limit)
        resp.headers["RateLimit-Remaining"] = "0"
        resp.headers["RateLimit-Reset"] = str(int(time.time()) + retry_after)
        resp.headers["Retry-After"] = str(retry_after)
        return resp

    return limiter
