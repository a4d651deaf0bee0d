from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g

from app.ytgify.errors import Forbidden, Unauthorized
from app.ytgify.models import User


def current_user() -> User | None:
    return getattr(g, "current_user", None)


def require_current_user() -> User:
    user = current_user()
    if not user or not user.is_active:
        raise Unauthorized()
    return user


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        require_current_user()
        return fn(*args, **kwargs)

    return wrapped


def ensure_owner(owner_id: int, user: User | None = None) -> None:
    user = user or require_current_user()
    if user.id != owner_id:
        raise Forbidden()
