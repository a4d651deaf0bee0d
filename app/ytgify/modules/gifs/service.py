from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.ytgify.errors import Forbidden, NotFound, ValidationError
from app.ytgify.models import User
from app.ytgify.modules.feed.service import clear_trending_cache
from app.ytgify.modules.gifs.models import PRIVACY_PUBLIC, PRIVACY_VALUES, Gif
from app.ytgify.modules.gifs.processing import process_gif, process_remix
from app.ytgify.modules.hashtags import service as hashtags
from app.ytgify.modules.notifications.service import notify_remix
from app.ytgify.storage import Storage, build_storage_key
from app.ytgify.utils import bump_counter, clean_str, offset_for, parse_bool, parse_float

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/gif", "image/webp", "video/mp4", "video/webm")
TITLE_MAX = 100
DESCRIPTION_MAX = 2000
MAX_FPS = 60

# Remix editor defaults when the source has not been processed yet.
REMIX_DEFAULT_WIDTH = 500
REMIX_DEFAULT_HEIGHT = 500
REMIX_DEFAULT_FPS = 15


def parse_privacy(value: Any, default: int = PRIVACY_PUBLIC) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, int) and value in PRIVACY_VALUES.values():
        return value
    key = str(value).strip().lower()
    if key not in PRIVACY_VALUES:
        raise ValidationError("Privacy is not included in the list")
    return PRIVACY_VALUES[key]


def _parse_overlay_json(value: Any) -> dict | None:
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        raise ValidationError("Text overlay data is invalid") from None
    if not isinstance(parsed, dict):
        raise ValidationError("Text overlay data is invalid")
    return parsed


def _number(params: dict, key: str, label: str, errors: list[str]) -> float | None:
    try:
        return parse_float(params.get(key))
    except (TypeError, ValueError):
        errors.append(f"{label} is not a number")
        return None


def _validate_text(title: str | None, description: str | None, errors: list[str]) -> None:
    if title and len(title) > TITLE_MAX:
        errors.append(f"Title is too long (maximum is {TITLE_MAX} characters)")
    if description and len(description) > DESCRIPTION_MAX:
        errors.append(f"Description is too long (maximum is {DESCRIPTION_MAX} characters)")


def _validate_clip(start: float | None, end: float | None, fps: float | None, duration: float | None, errors: list[str]) -> None:
    if start is not None and start < 0:
        errors.append("Youtube timestamp start must be greater than or equal to 0")
    if start is not None and end is not None and end <= start:
        errors.append(f"Youtube timestamp end must be greater than {start}")
    if duration is not None and duration <= 0:
        errors.append("Duration must be greater than 0")
    if fps is not None and not (0 < fps <= MAX_FPS):
        errors.append(f"Fps must be greater than 0 and less than or equal to {MAX_FPS}")


def _validate_upload(upload) -> str:
    content_type = (getattr(upload, "mimetype", None) or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError("File must be a GIF, WebP, MP4 or WebM")
    return content_type


def _store_upload(storage: Storage, user: User, upload, content_type: str) -> tuple[str, int]:
    data = upload.read()
    if not data:
        raise ValidationError("File can't be blank")
    key = build_storage_key("gifs", user.id, upload.filename or "upload.gif")
    storage.put_bytes(key, data, content_type=content_type)
    return key, len(data)


def _remember_tags(user: User, names: list[str]) -> None:
    # Walk backwards so the first tag ends up most recent.
    for name in reversed(names):
        user.add_recent_tag(name)


def _apply_hashtags(s: Session, gif: Gif, user: User, params: dict) -> None:
    names = params.get("hashtag_names")
    if names:
        tags = hashtags.set_hashtag_names(s, gif, names)
    else:
        text = " ".join(t for t in (gif.title, gif.description) if t)
        tags = hashtags.parse_from_text(s, text)
        hashtags.set_hashtags(s, gif, tags)
    _remember_tags(user, [h.name for h in tags])


def get_gif(s: Session, gif_id: int) -> Gif:
    """Non-deleted GIF by id, or NotFound."""
    gif = s.get(Gif, gif_id)
    if gif is None or gif.is_deleted:
        raise NotFound(f"Couldn't find Gif with id={gif_id}")
    return gif


def get_gif_for_view(s: Session, gif_id: int, viewer: User | None) -> Gif:
    gif = get_gif(s, gif_id)
    # Private GIFs do not exist for anyone but their owner.
    if not gif.visible_to(viewer):
        raise NotFound(f"Couldn't find Gif with id={gif_id}")
    return gif


def resolve_parent(s: Session, parent_id: Any, user: User) -> Gif:
    try:
        parent = s.get(Gif, int(parent_id))
    except (TypeError, ValueError):
        parent = None
    if parent is None or parent.is_deleted:
        raise ValidationError("Parent gif must exist")
    if not parent.remixable_by(user):
        raise Forbidden("This GIF cannot be remixed")
    return parent


def create_gif(
    s: Session,
    user: User,
    params: dict,
    *,
    upload=None,
    storage: Storage | None = None,
    process_inline: bool = False,
) -> Gif:
    errors: list[str] = []
    title = clean_str(params.get("title"))
    description = clean_str(params.get("description"))
    _validate_text(title, description, errors)
    start = _number(params, "youtube_timestamp_start", "Youtube timestamp start", errors)
    end = _number(params, "youtube_timestamp_end", "Youtube timestamp end", errors)
    duration = _number(params, "duration", "Duration", errors)
    fps = _number(params, "fps", "Fps", errors)
    if start is not None and end is not None:
        duration = end - start
    _validate_clip(start, end, fps, duration, errors)
    if errors:
        raise ValidationError(errors, error="GIF creation failed")

    privacy = parse_privacy(params.get("privacy"), PRIVACY_VALUES.get(user.default_privacy, PRIVACY_PUBLIC))
    overlay = _parse_overlay_json(params.get("text_overlay_data"))
    parent = resolve_parent(s, params["parent_gif_id"], user) if params.get("parent_gif_id") else None

    content_type = _validate_upload(upload) if upload is not None else None

    now = datetime.utcnow()
    gif = Gif(
        user_id=user.id,
        title=title,
        description=description,
        youtube_video_url=clean_str(params.get("youtube_video_url")),
        youtube_video_title=clean_str(params.get("youtube_video_title")),
        youtube_channel_name=clean_str(params.get("youtube_channel_name")),
        youtube_timestamp_start=start,
        youtube_timestamp_end=end,
        duration=duration,
        fps=int(fps) if fps is not None else None,
        has_text_overlay=parse_bool(params.get("has_text_overlay"), default=bool(overlay)),
        text_overlay_data=overlay,
        parent_gif_id=parent.id if parent else None,
        is_remix=parent is not None,
        privacy=privacy,
        created_at=now,
        updated_at=now,
    )
    if upload is not None:
        if storage is None:
            raise RuntimeError("storage is required to accept uploads")
        gif.file_key, gif.file_size = _store_upload(storage, user, upload, content_type)
        gif.content_type = content_type
    s.add(gif)
    s.flush()

    _apply_hashtags(s, gif, user, params)
    bump_counter(s, User, user.id, "gifs_count", 1)
    if parent is not None:
        bump_counter(s, Gif, parent.id, "remix_count", 1)
        notify_remix(s, gif)

    if upload is not None and process_inline:
        process_gif(s, storage, gif)

    clear_trending_cache(s)
    logger.info("Gif created id=%s user_id=%s privacy=%s", gif.id, user.id, gif.privacy_name)
    return gif


def update_gif(s: Session, gif: Gif, params: dict) -> Gif:
    errors: list[str] = []
    title = clean_str(params.get("title")) if "title" in params else gif.title
    description = clean_str(params.get("description")) if "description" in params else gif.description
    _validate_text(title, description, errors)
    if errors:
        raise ValidationError(errors, error="GIF update failed")

    gif.title = title
    gif.description = description
    if "privacy" in params:
        gif.privacy = parse_privacy(params.get("privacy"), gif.privacy)
    if "text_overlay_data" in params:
        gif.text_overlay_data = _parse_overlay_json(params.get("text_overlay_data"))
    if "has_text_overlay" in params:
        gif.has_text_overlay = parse_bool(params.get("has_text_overlay"))
    if params.get("hashtag_names"):
        names = hashtags.set_hashtag_names(s, gif, params["hashtag_names"])
        _remember_tags(gif.user, [h.name for h in names])
    gif.updated_at = datetime.utcnow()
    s.flush()
    clear_trending_cache(s)
    return gif


def soft_delete_gif(s: Session, gif: Gif) -> None:
    if gif.is_deleted:
        return
    gif.deleted_at = datetime.utcnow()
    gif.updated_at = gif.deleted_at
    s.flush()
    bump_counter(s, User, gif.user_id, "gifs_count", -1)
    clear_trending_cache(s)
    logger.info("Gif soft-deleted id=%s user_id=%s", gif.id, gif.user_id)


def list_gifs(
    s: Session,
    *,
    user_id: int | None = None,
    kind: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Gif], int]:
    """Public, non-deleted GIFs newest first; `kind` is "original" or "remix"."""
    conds = [Gif.deleted_at.is_(None), Gif.privacy == PRIVACY_PUBLIC]
    if user_id is not None:
        conds.append(Gif.user_id == user_id)
    if kind == "original":
        conds.append(Gif.is_remix.is_(False))
    elif kind == "remix":
        conds.append(Gif.is_remix.is_(True))
    total = s.execute(select(func.count(Gif.id)).where(*conds)).scalar_one()
    gifs = s.execute(
        select(Gif)
        .where(*conds)
        .order_by(Gif.created_at.desc(), Gif.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(gifs), total


def public_url(gif: Gif, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/gifs/{gif.id}"


def share_gif(s: Session, gif: Gif, base_url: str) -> str:
    bump_counter(s, Gif, gif.id, "share_count", 1)
    return public_url(gif, base_url)


# --- Remixes -----------------------------------------------------------------


def get_remix_source(s: Session, gif_id: int, user: User) -> Gif:
    gif = get_gif(s, gif_id)
    if not gif.remixable_by(user):
        raise Forbidden("This GIF cannot be remixed")
    return gif


def remix_params(gif: Gif, file_url: str | None) -> dict:
    return {
        "id": gif.id,
        "file_url": file_url,
        "title": gif.title,
        "width": gif.resolution_width or REMIX_DEFAULT_WIDTH,
        "height": gif.resolution_height or REMIX_DEFAULT_HEIGHT,
        "fps": gif.fps or REMIX_DEFAULT_FPS,
        "duration": gif.duration,
    }


def _clamp(value: Any, default, low, high, cast):
    if value is None or value == "":
        return default
    try:
        number = cast(value)
    except (TypeError, ValueError):
        return default
    return min(max(number, low), high)


def parse_text_overlay(raw: Any) -> dict | None:
    """
    Normalise the remix editor's overlay settings, filling defaults and clamping sizes and
    relative positions. Returns None when no overlay was sent.
    """
    data = _parse_overlay_json(raw)
    if not data:
        return None
    position = data.get("position") if isinstance(data.get("position"), dict) else {}
    return {
        "text": str(data.get("text") or "").strip(),
        "font_family": data.get("font_family") or "Arial",
        "font_size": _clamp(data.get("font_size"), 48, 12, 120, int),
        "font_weight": data.get("font_weight") or "bold",
        "color": data.get("color") or "#ffffff",
        "outline_color": data.get("outline_color") or "#000000",
        "outline_width": _clamp(data.get("outline_width"), 2, 0, 10, int),
        "position": {
            "x": _clamp(position.get("x"), 0.5, 0.0, 1.0, float),
            "y": _clamp(position.get("y"), 0.9, 0.0, 1.0, float),
        },
    }


def create_remix(
    s: Session,
    user: User,
    source: Gif,
    params: dict,
    *,
    upload=None,
    storage: Storage | None = None,
) -> Gif:
    errors: list[str] = []
    title = clean_str(params.get("title"))
    description = clean_str(params.get("description"))
    _validate_text(title, description, errors)
    if errors:
        raise ValidationError(errors, error="Remix creation failed")
    overlay = parse_text_overlay(params.get("text_overlay_data"))
    privacy = parse_privacy(params.get("privacy"), PRIVACY_PUBLIC)
    content_type = _validate_upload(upload) if upload is not None else None

    now = datetime.utcnow()
    remix = Gif(
        user_id=user.id,
        title=title,
        description=description,
        youtube_video_url=source.youtube_video_url,
        youtube_video_title=source.youtube_video_title,
        youtube_channel_name=source.youtube_channel_name,
        parent_gif_id=source.id,
        is_remix=True,
        has_text_overlay=overlay is not None,
        text_overlay_data=overlay,
        privacy=privacy,
        created_at=now,
        updated_at=now,
    )
    if upload is not None:
        if storage is None:
            raise RuntimeError("storage is required to accept uploads")
        remix.file_key, remix.file_size = _store_upload(storage, user, upload, content_type)
        remix.content_type = content_type
    s.add(remix)
    s.flush()

    _apply_hashtags(s, remix, user, params)
    bump_counter(s, User, user.id, "gifs_count", 1)
    bump_counter(s, Gif, source.id, "remix_count", 1)
    process_remix(s, remix, source)
    notify_remix(s, remix)
    clear_trending_cache(s)
    logger.info("Remix created id=%s parent_id=%s user_id=%s", remix.id, source.id, user.id)
    return remix


def list_remixes(s: Session, gif: Gif, *, page: int = 1, per_page: int = 20) -> tuple[list[Gif], int]:
    conds = [Gif.parent_gif_id == gif.id, Gif.deleted_at.is_(None), Gif.privacy == PRIVACY_PUBLIC]
    total = s.execute(select(func.count(Gif.id)).where(*conds)).scalar_one()
    remixes = s.execute(
        select(Gif)
        .where(*conds)
        .order_by(Gif.created_at.desc(), Gif.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(remixes), total


def user_gifs(
    s: Session, owner: User, *, viewer: User | None = None, page: int = 1, per_page: int = 20
) -> tuple[list[Gif], int]:
    """An owner sees all their non-deleted GIFs; everyone else sees the public ones."""
    conds = [Gif.user_id == owner.id, Gif.deleted_at.is_(None)]
    if viewer is None or viewer.id != owner.id:
        conds.append(Gif.privacy == PRIVACY_PUBLIC)
    total = s.execute(select(func.count(Gif.id)).where(*conds)).scalar_one()
    gifs = s.execute(
        select(Gif)
        .where(*conds)
        .order_by(Gif.created_at.desc(), Gif.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(gifs), total
