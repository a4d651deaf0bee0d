from __future__ import annotations

from flask import Blueprint, jsonify

from app.ytgify.db import db_session
from app.ytgify.guards import current_user, ensure_owner, require_current_user, require_login
from app.ytgify.modules.comments.service import (
    create_comment,
    get_comment,
    list_top_level,
    soft_delete_comment,
    update_comment,
)
from app.ytgify.modules.gifs.service import get_gif_for_view
from app.ytgify.serializers import comment_json
from app.ytgify.utils import json_body, page_params, pagination_meta, require_param

bp = Blueprint("comments", __name__)


@bp.get("/gifs/<int:gif_id>/comments")
def comments_index(gif_id: int):
    s = db_session()
    gif = get_gif_for_view(s, gif_id, current_user())
    page, per_page = page_params()
    rows, total = list_top_level(s, gif, page=page, per_page=per_page)
    return jsonify(
        {
            "comments": [comment_json(c, replies=replies) for c, replies in rows],
            "pagination": pagination_meta(page, per_page, total),
        }
    ), 200


@bp.post("/gifs/<int:gif_id>/comments")
@require_login
def comments_create(gif_id: int):
    s = db_session()
    user = require_current_user()
    gif = get_gif_for_view(s, gif_id, user)
    comment = create_comment(s, user, gif, require_param(json_body(), "comment"))
    s.commit()
    return jsonify({"message": "Comment created successfully", "comment": comment_json(comment)}), 201


@bp.route("/comments/<int:comment_id>", methods=["PATCH", "PUT"])
@require_login
def comments_update(comment_id: int):
    s = db_session()
    comment = get_comment(s, comment_id)
    ensure_owner(comment.user_id)
    update_comment(s, comment, require_param(json_body(), "comment"))
    s.commit()
    return jsonify({"message": "Comment updated successfully", "comment": comment_json(comment)}), 200


@bp.delete("/comments/<int:comment_id>")
@require_login
def comments_delete(comment_id: int):
    s = db_session()
    comment = get_comment(s, comment_id)
    ensure_owner(comment.user_id)
    soft_delete_comment(s, comment)
    s.commit()
    return jsonify({"message": "Comment deleted successfully"}), 200
