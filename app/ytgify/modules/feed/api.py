from __future__ import annotations

from flask import Blueprint, jsonify

from app.ytgify.db import db_session
from app.ytgify.guards import current_user, require_current_user, require_login
from app.ytgify.modules.feed import service as feed
from app.ytgify.modules.likes.service import liked_ids
from app.ytgify.serializers import gifs_json
from app.ytgify.utils import page_params, pagination_meta

bp = Blueprint("feed", __name__)


def _feed_response(s, gifs, page: int, per_page: int, total: int):
    viewer = current_user()
    liked = liked_ids(s, viewer, [g.id for g in gifs]) if viewer else None
    return jsonify({"gifs": gifs_json(gifs, liked), "pagination": pagination_meta(page, per_page, total)})


@bp.get("/feed")
@require_login
def feed_index():
    s = db_session()
    page, per_page = page_params()
    user = require_current_user()
    gifs = feed.generate_for_user(s, user, page=page, per_page=per_page)
    return _feed_response(s, gifs, page, per_page, feed.personal_feed_total(s, user)), 200


@bp.get("/feed/public")
def feed_public():
    s = db_session()
    page, per_page = page_params()
    gifs = feed.generate_public(s, page=page, per_page=per_page)
    return _feed_response(s, gifs, page, per_page, feed.count_of(s, feed.trending_scope())), 200


@bp.get("/feed/trending")
def feed_trending():
    s = db_session()
    page, per_page = page_params()
    # Total is the length of the scored top list, capped at its limit.
    gifs, total = feed.trending(s, page=page, per_page=per_page)
    return _feed_response(s, gifs, page, per_page, total), 200


@bp.get("/feed/recent")
def feed_recent():
    s = db_session()
    page, per_page = page_params()
    gifs = feed.recent(s, page=page, per_page=per_page)
    return _feed_response(s, gifs, page, per_page, feed.public_count(s)), 200


@bp.get("/feed/popular")
def feed_popular():
    s = db_session()
    page, per_page = page_params()
    gifs = feed.popular(s, page=page, per_page=per_page)
    return _feed_response(s, gifs, page, per_page, feed.public_count(s)), 200


@bp.get("/feed/following")
@require_login
def feed_following():
    s = db_session()
    page, per_page = page_params()
    gifs, total = feed.following(s, require_current_user(), page=page, per_page=per_page)
    return _feed_response(s, gifs, page, per_page, total), 200
