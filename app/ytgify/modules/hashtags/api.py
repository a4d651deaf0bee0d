from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.ytgify.db import db_session
from app.ytgify.modules.feed.service import by_hashtag
from app.ytgify.modules.hashtags.service import (
    SEARCH_LIMIT_MAX,
    get_hashtag,
    list_alphabetical,
    normalize_name,
    cached_trending,
    search,
    trending_count,
)
from app.ytgify.serializers import gif_json, hashtag_json
from app.ytgify.utils import offset_for, page_params, pagination_meta

bp = Blueprint("hashtags", __name__)


@bp.get("/hashtags")
def hashtags_index():
    s = db_session()
    page, per_page = page_params()
    rows, total = list_alphabetical(s, page=page, per_page=per_page)
    return jsonify({"hashtags": [hashtag_json(h) for h in rows], "pagination": pagination_meta(page, per_page, total)}), 200


@bp.get("/hashtags/trending")
def hashtags_trending():
    s = db_session()
    page, per_page = page_params()
    rows = cached_trending(s, limit=per_page, offset=offset_for(page, per_page))
    return jsonify(
        {"hashtags": [hashtag_json(h) for h in rows], "pagination": pagination_meta(page, per_page, trending_count(s))}
    ), 200


@bp.get("/hashtags/search")
def hashtags_search():
    s = db_session()
    query = normalize_name(request.args.get("q"))
    limit = min(request.args.get("limit", default=10, type=int) or 10, SEARCH_LIMIT_MAX)
    rows = search(s, query, limit=limit)
    return jsonify({"hashtags": [hashtag_json(h, with_created=False) for h in rows], "query": query}), 200


@bp.get("/hashtags/<slug_or_id>")
def hashtags_show(slug_or_id: str):
    s = db_session()
    hashtag = get_hashtag(s, slug_or_id)
    page, per_page = page_params()
    gifs, total = by_hashtag(s, hashtag, page=page, per_page=per_page)
    return jsonify(
        {
            "hashtag": hashtag_json(hashtag),
            "gifs": [gif_json(g) for g in gifs],
            "pagination": pagination_meta(page, per_page, total),
        }
    ), 200
