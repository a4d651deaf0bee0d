from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.ytgify.errors import Forbidden, NotFound, ValidationError
from app.ytgify.models import User
from app.ytgify.modules.collections.models import Collection, CollectionGif
from app.ytgify.modules.gifs.models import PRIVACY_PRIVATE, Gif
from app.ytgify.modules.notifications.service import notify_collection_add
from app.ytgify.utils import bump_counter, clean_str, offset_for, parse_bool

logger = logging.getLogger(__name__)

NAME_MAX = 100
DESCRIPTION_MAX = 500


def get_collection(s: Session, collection_id: int) -> Collection:
    collection = s.get(Collection, collection_id)
    if collection is None:
        raise NotFound(f"Couldn't find Collection with id={collection_id}")
    return collection


def get_visible_collection(s: Session, collection_id: int, viewer: User | None) -> Collection:
    collection = get_collection(s, collection_id)
    if not collection.visible_to(viewer):
        raise Forbidden("This collection is private")
    return collection


def _name_taken(s: Session, user_id: int, name: str, *, exclude_id: int | None = None) -> bool:
    q = select(Collection.id).where(Collection.user_id == user_id, func.lower(Collection.name) == name.lower())
    if exclude_id is not None:
        q = q.where(Collection.id != exclude_id)
    return s.execute(q).first() is not None


def _validate(s: Session, user_id: int, name: str | None, description: str | None, *, exclude_id: int | None = None) -> list[str]:
    errors = []
    if not name:
        errors.append("Name can't be blank")
    elif len(name) > NAME_MAX:
        errors.append(f"Name is too long (maximum is {NAME_MAX} characters)")
    elif _name_taken(s, user_id, name, exclude_id=exclude_id):
        errors.append("Name has already been taken")
    if description and len(description) > DESCRIPTION_MAX:
        errors.append(f"Description is too long (maximum is {DESCRIPTION_MAX} characters)")
    return errors


def create_collection(s: Session, user: User, params: dict) -> Collection:
    name = clean_str(params.get("name"))
    description = clean_str(params.get("description"))
    errors = _validate(s, user.id, name, description)
    if errors:
        raise ValidationError(errors, message="Collection creation failed")
    now = datetime.utcnow()
    collection = Collection(
        user_id=user.id,
        name=name,
        description=description,
        is_public=parse_bool(params.get("is_public")),
        created_at=now,
        updated_at=now,
    )
    s.add(collection)
    s.flush()
    return collection


def update_collection(s: Session, collection: Collection, params: dict) -> Collection:
    name = clean_str(params.get("name")) if "name" in params else collection.name
    description = clean_str(params.get("description")) if "description" in params else collection.description
    errors = _validate(s, collection.user_id, name, description, exclude_id=collection.id)
    if errors:
        raise ValidationError(errors, message="Collection update failed")
    collection.name = name
    collection.description = description
    if "is_public" in params:
        collection.is_public = parse_bool(params.get("is_public"))
    collection.updated_at = datetime.utcnow()
    s.flush()
    return collection


def delete_collection(s: Session, collection: Collection) -> None:
    s.delete(collection)
    s.flush()


def list_collections(
    s: Session, owner: User, *, viewer: User | None = None, page: int = 1, per_page: int = 20
) -> tuple[list[Collection], int]:
    """Newest first. Private collections are listed only for their owner."""
    conds = [Collection.user_id == owner.id]
    if viewer is None or viewer.id != owner.id:
        conds.append(Collection.is_public.is_(True))
    total = s.execute(select(func.count(Collection.id)).where(*conds)).scalar_one()
    rows = s.execute(
        select(Collection)
        .where(*conds)
        .order_by(Collection.created_at.desc(), Collection.id.desc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(rows), total


def collection_gifs(
    s: Session, collection: Collection, *, viewer: User | None = None, page: int = 1, per_page: int = 20
) -> tuple[list[Gif], int]:
    """GIFs in position order, skipping deleted ones and other people's private ones."""
    conds = [CollectionGif.collection_id == collection.id, Gif.deleted_at.is_(None)]
    if viewer is None:
        conds.append(Gif.privacy != PRIVACY_PRIVATE)
    else:
        conds.append(or_(Gif.privacy != PRIVACY_PRIVATE, Gif.user_id == viewer.id))
    total = s.execute(
        select(func.count(CollectionGif.id)).join(Gif, Gif.id == CollectionGif.gif_id).where(*conds)
    ).scalar_one()
    gifs = s.execute(
        select(Gif)
        .join(CollectionGif, CollectionGif.gif_id == Gif.id)
        .where(*conds)
        .order_by(CollectionGif.position.asc(), CollectionGif.id.asc())
        .offset(offset_for(page, per_page))
        .limit(per_page)
    ).scalars()
    return list(gifs), total


def _entry(s: Session, collection: Collection, gif_id: int) -> CollectionGif | None:
    return s.execute(
        select(CollectionGif).where(CollectionGif.collection_id == collection.id, CollectionGif.gif_id == gif_id)
    ).scalar_one_or_none()


def add_gif(s: Session, collection: Collection, gif: Gif, *, position: int | None = None) -> CollectionGif:
    if _entry(s, collection, gif.id) is not None:
        raise ValidationError("GIF is already in this collection", message="GIF is already in this collection")
    if position is None:
        current_max = s.execute(
            select(func.max(CollectionGif.position)).where(CollectionGif.collection_id == collection.id)
        ).scalar_one()
        position = 0 if current_max is None else current_max + 1
    elif position < 0:
        raise ValidationError("Position must be greater than or equal to 0")
    entry = CollectionGif(collection_id=collection.id, gif_id=gif.id, position=position, added_at=datetime.utcnow())
    s.add(entry)
    s.flush()
    bump_counter(s, Collection, collection.id, "gifs_count", 1)
    notify_collection_add(s, entry)
    return entry


def remove_gif(s: Session, collection: Collection, gif_id: int) -> None:
    entry = _entry(s, collection, gif_id)
    if entry is None:
        raise NotFound("GIF is not in this collection", error="Not found")
    s.delete(entry)
    s.flush()
    bump_counter(s, Collection, collection.id, "gifs_count", -1)


def reorder(s: Session, collection: Collection, gif_ids: list) -> None:
    """Set each listed GIF's position to its index. Unknown ids are ignored."""
    entries = {
        e.gif_id: e
        for e in s.execute(select(CollectionGif).where(CollectionGif.collection_id == collection.id)).scalars()
    }
    for index, raw_id in enumerate(gif_ids or []):
        try:
            entry = entries.get(int(raw_id))
        except (TypeError, ValueError):
            continue
        if entry is not None:
            entry.position = index
    s.flush()
