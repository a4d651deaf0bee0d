from __future__ import annotations

from flask import Blueprint, jsonify

from app.ytgify.db import db_session
from app.ytgify.guards import require_current_user, require_login
from app.ytgify.modules.gifs.service import get_gif_for_view
from app.ytgify.modules.likes.service import remove_like, toggle_like

bp = Blueprint("likes", __name__)


@bp.post("/gifs/<int:gif_id>/likes")
@require_login
def likes_toggle(gif_id: int):
    s = db_session()
    user = require_current_user()
    gif = get_gif_for_view(s, gif_id, user)
    liked = toggle_like(s, user, gif)
    s.commit()
    s.refresh(gif)
    message = "GIF liked successfully" if liked else "Like removed successfully"
    return jsonify({"message": message, "liked": liked, "like_count": gif.like_count}), 201 if liked else 200


@bp.delete("/gifs/<int:gif_id>/likes/<int:like_id>")
@require_login
def likes_delete(gif_id: int, like_id: int):
    s = db_session()
    user = require_current_user()
    gif = get_gif_for_view(s, gif_id, user)
    remove_like(s, user, gif, like_id)
    s.commit()
    s.refresh(gif)
    return jsonify({"message": "Like removed successfully", "liked": False, "like_count": gif.like_count}), 200
