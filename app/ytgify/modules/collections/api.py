from __future__ import annotations

from flask import Blueprint, jsonify

from app.ytgify.db import db_session
from app.ytgify.errors import ParameterMissing
from app.ytgify.guards import current_user, ensure_owner, require_current_user, require_login
from app.ytgify.modules.collections.service import (
    add_gif,
    collection_gifs,
    create_collection,
    delete_collection,
    get_collection,
    get_visible_collection,
    list_collections,
    remove_gif,
    reorder,
    update_collection,
)
from app.ytgify.modules.gifs.service import get_gif_for_view
from app.ytgify.modules.users.service import resolve_user
from app.ytgify.serializers import collection_json, gif_json
from app.ytgify.utils import json_body, page_params, pagination_meta, require_param

bp = Blueprint("collections", __name__)


def _collections_page(rows, page: int, per_page: int, total: int):
    return jsonify(
        {"collections": [collection_json(c) for c in rows], "pagination": pagination_meta(page, per_page, total)}
    )


def _owned_collection(s, collection_id: int):
    collection = get_collection(s, collection_id)
    ensure_owner(collection.user_id)
    return collection


@bp.get("/collections")
@require_login
def collections_index():
    s = db_session()
    me = require_current_user()
    page, per_page = page_params()
    rows, total = list_collections(s, me, viewer=me, page=page, per_page=per_page)
    return _collections_page(rows, page, per_page, total), 200


@bp.get("/users/<user_ref>/collections")
def user_collections_index(user_ref: str):
    s = db_session()
    owner = resolve_user(s, user_ref)
    page, per_page = page_params()
    rows, total = list_collections(s, owner, viewer=current_user(), page=page, per_page=per_page)
    return _collections_page(rows, page, per_page, total), 200


@bp.get("/collections/<int:collection_id>")
def collections_show(collection_id: int):
    s = db_session()
    viewer = current_user()
    collection = get_visible_collection(s, collection_id, viewer)
    page, per_page = page_params()
    gifs, total = collection_gifs(s, collection, viewer=viewer, page=page, per_page=per_page)
    return jsonify(
        {
            "collection": collection_json(collection),
            "gifs": [gif_json(g) for g in gifs],
            "pagination": pagination_meta(page, per_page, total),
        }
    ), 200


@bp.post("/collections")
@require_login
def collections_create():
    s = db_session()
    collection = create_collection(s, require_current_user(), require_param(json_body(), "collection"))
    s.commit()
    return jsonify({"collection": collection_json(collection)}), 201


@bp.route("/collections/<int:collection_id>", methods=["PATCH", "PUT"])
@require_login
def collections_update(collection_id: int):
    s = db_session()
    collection = _owned_collection(s, collection_id)
    update_collection(s, collection, require_param(json_body(), "collection"))
    s.commit()
    return jsonify({"collection": collection_json(collection)}), 200


@bp.delete("/collections/<int:collection_id>")
@require_login
def collections_delete(collection_id: int):
    s = db_session()
    delete_collection(s, _owned_collection(s, collection_id))
    s.commit()
    return "", 204


@bp.post("/collections/<int:collection_id>/add_gif")
@require_login
def collections_add_gif(collection_id: int):
    s = db_session()
    collection = _owned_collection(s, collection_id)
    gif_id = json_body().get("gif_id")
    if gif_id is None:
        raise ParameterMissing("param is missing or the value is empty: gif_id")
    try:
        gif_id = int(gif_id)
    except (TypeError, ValueError):
        raise ParameterMissing("gif_id must be an integer") from None
    gif = get_gif_for_view(s, gif_id, require_current_user())
    add_gif(s, collection, gif)
    s.commit()
    s.refresh(collection)
    return jsonify(
        {
            "message": "GIF added to collection",
            "collection": collection_json(collection),
            "gifs_count": collection.gifs_count,
        }
    ), 200


@bp.delete("/collections/<int:collection_id>/remove_gif/<int:gif_id>")
@require_login
def collections_remove_gif(collection_id: int, gif_id: int):
    s = db_session()
    collection = _owned_collection(s, collection_id)
    remove_gif(s, collection, gif_id)
    s.commit()
    s.refresh(collection)
    return jsonify({"message": "GIF removed from collection", "gifs_count": collection.gifs_count}), 200


@bp.patch("/collections/<int:collection_id>/reorder")
@require_login
def collections_reorder(collection_id: int):
    s = db_session()
    collection = _owned_collection(s, collection_id)
    gif_ids = json_body().get("gif_ids")
    if not isinstance(gif_ids, list):
        raise ParameterMissing("param is missing or the value is empty: gif_ids")
    reorder(s, collection, gif_ids)
    s.commit()
    return jsonify({"message": "Collection reordered"}), 200
