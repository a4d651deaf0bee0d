from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from flask import request
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.ytgify.errors import ParameterMissing

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def page_params() -> tuple[int, int]:
    """Read `page` (>= 1) and `per_page` (1..100) from the query string."""
    page = max(_int_arg("page", 1), 1)
    per_page = min(max(_int_arg("per_page", DEFAULT_PER_PAGE), 1), MAX_PER_PAGE)
    return page, per_page


def offset_for(page: int, per_page: int) -> int:
    return (page - 1) * per_page


def pagination_meta(page: int, per_page: int, total: int) -> dict:
    return {"page": page, "per_page": per_page, "total": total}


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def require_param(payload: dict, key: str) -> dict:
    """Return the nested object under `key` (e.g. `{"gif": {...}}`) or raise 400."""
    value = payload.get(key)
    if not isinstance(value, dict):
        raise ParameterMissing(f"param is missing or the value is empty: {key}")
    return value


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_float(value: Any) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return float(value)


def parameterize(text: str) -> str:
    """Lowercase, ASCII, `-`-separated slug."""
    s = re.sub(r"[^a-z0-9_\-]+", "-", (text or "").strip().lower())
    s = re.sub(r"-{2,}", "-", s)
    return s.strip("-")


def bump_counter(s: Session, model, row_id: int, column: str, delta: int) -> None:
    """
    Atomic `col = col + delta` in SQL. Decrements never go below zero.
    """
    col = getattr(model, column)
    stmt = update(model).where(model.id == row_id)
    if delta < 0:
        stmt = stmt.where(col >= -delta)
    s.execute(stmt.values({column: col + delta}).execution_options(synchronize_session="fetch"))


def iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def nested_params(root: str) -> dict:
    """
    `{root: {...}}` from a JSON body, or the `root[field]` / `root[field][]` fields of a
    multipart form (uploads send their metadata that way).
    """
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return require_param(payload, root)
    prefix = f"{root}["
    out: dict = {}
    for key in request.form.keys():
        if not (key.startswith(prefix) and key.endswith("]")):
            continue
        name = key[len(prefix):-1]
        if name.endswith("]["):
            out[name[:-2]] = request.form.getlist(key)
        else:
            out[name] = request.form.get(key)
    if not out and not request.files:
        raise ParameterMissing(f"param is missing or the value is empty: {root}")
    return out


def uploaded_file(root: str):
    f = request.files.get(f"{root}[file]") or request.files.get("file")
    if f is None or not f.filename:
        return None
    return f
