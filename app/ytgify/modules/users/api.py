from __future__ import annotations

import mimetypes

from flask import Blueprint, current_app, jsonify, send_file

from app.ytgify.db import db_session
from app.ytgify.errors import NotFound, ValidationError
from app.ytgify.guards import current_user, ensure_owner, require_login
from app.ytgify.modules.follows.service import is_following
from app.ytgify.modules.gifs.service import user_gifs
from app.ytgify.modules.likes.service import liked_gifs
from app.ytgify.modules.users.service import get_user_by_username, set_avatar
from app.ytgify.serializers import gif_json, public_profile_json, user_json
from app.ytgify.storage import StorageError, storage_from_config
from app.ytgify.utils import page_params, pagination_meta, uploaded_file

bp = Blueprint("users", __name__)


@bp.get("/users/<username>")
def user_profile(username: str):
    s = db_session()
    user = get_user_by_username(s, username)
    viewer = current_user()
    data = public_profile_json(user)
    data["is_following"] = is_following(s, viewer, user)
    return jsonify({"user": data}), 200


@bp.get("/users/<username>/gifs")
def user_gifs_index(username: str):
    s = db_session()
    user = get_user_by_username(s, username)
    page, per_page = page_params()
    gifs, total = user_gifs(s, user, viewer=current_user(), page=page, per_page=per_page)
    return jsonify({"gifs": [gif_json(g) for g in gifs], "pagination": pagination_meta(page, per_page, total)}), 200


@bp.get("/users/<username>/liked")
def user_liked_index(username: str):
    s = db_session()
    user = get_user_by_username(s, username)
    page, per_page = page_params()
    gifs, total = liked_gifs(s, user, viewer=current_user(), page=page, per_page=per_page)
    return jsonify({"gifs": [gif_json(g) for g in gifs], "pagination": pagination_meta(page, per_page, total)}), 200


@bp.get("/users/<username>/avatar")
def user_avatar(username: str):
    s = db_session()
    user = get_user_by_username(s, username)
    if not user.avatar_key:
        raise NotFound("This user has no avatar")
    storage = storage_from_config(current_app.config)
    mimetype = mimetypes.guess_type(user.avatar_key)[0] or "application/octet-stream"
    try:
        fobj = storage.open(user.avatar_key)
    except (FileNotFoundError, StorageError):
        raise NotFound("This user has no avatar")
    return send_file(fobj, mimetype=mimetype, max_age=3600)


@bp.put("/users/<username>/avatar")
@require_login
def user_avatar_update(username: str):
    s = db_session()
    user = get_user_by_username(s, username)
    ensure_owner(user.id)
    upload = uploaded_file("avatar")
    if upload is None:
        raise ValidationError("Avatar can't be blank")
    set_avatar(s, storage_from_config(current_app.config), user, upload)
    s.commit()
    return jsonify({"message": "Avatar updated", "user": user_json(user)}), 200
