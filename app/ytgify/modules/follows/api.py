from __future__ import annotations

from flask import Blueprint, jsonify

from app.ytgify.db import db_session
from app.ytgify.guards import require_current_user, require_login
from app.ytgify.modules.follows.service import followers, following, toggle_follow
from app.ytgify.modules.users.service import resolve_user
from app.ytgify.serializers import user_summary
from app.ytgify.utils import page_params, pagination_meta

bp = Blueprint("follows", __name__)


@bp.route("/users/<user_ref>/follow", methods=["POST", "DELETE"])
@require_login
def follow_toggle(user_ref: str):
    s = db_session()
    me = require_current_user()
    target = resolve_user(s, user_ref)
    now_following = toggle_follow(s, me, target)
    s.commit()
    s.refresh(target)
    s.refresh(me)
    return jsonify(
        {
            "message": "Followed successfully" if now_following else "Unfollowed successfully",
            "following": now_following,
            "follower_count": target.follower_count,
            "following_count": me.following_count,
        }
    ), 200


def _users_page(users, page: int, per_page: int, total: int):
    return jsonify({"users": [user_summary(u) for u in users], "pagination": pagination_meta(page, per_page, total)})


@bp.get("/users/<user_ref>/followers")
def followers_index(user_ref: str):
    s = db_session()
    user = resolve_user(s, user_ref)
    page, per_page = page_params()
    users, total = followers(s, user, page=page, per_page=per_page)
    return _users_page(users, page, per_page, total), 200


@bp.get("/users/<user_ref>/following")
def following_index(user_ref: str):
    s = db_session()
    user = resolve_user(s, user_ref)
    page, per_page = page_params()
    users, total = following(s, user, page=page, per_page=per_page)
    return _users_page(users, page, per_page, total), 200
