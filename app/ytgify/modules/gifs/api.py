from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, send_file

from app.ytgify.db import db_session
from app.ytgify.errors import NotFound
from app.ytgify.guards import current_user, ensure_owner, require_current_user, require_login
from app.ytgify.modules.analytics.service import gif_report, record_view
from app.ytgify.modules.gifs.service import (
    create_gif,
    create_remix,
    get_gif,
    get_gif_for_view,
    get_remix_source,
    list_gifs,
    list_remixes,
    remix_params,
    share_gif,
    soft_delete_gif,
    update_gif,
)
from app.ytgify.modules.likes.service import has_liked, liked_ids
from app.ytgify.serializers import gif_file_url, gif_json, gifs_json
from app.ytgify.storage import StorageError, storage_from_config
from app.ytgify.utils import nested_params, page_params, pagination_meta, uploaded_file

bp = Blueprint("gifs", __name__)


def _gifs_page(s, gifs, page: int, per_page: int, total: int):
    viewer = current_user()
    liked = liked_ids(s, viewer, [g.id for g in gifs]) if viewer else None
    return jsonify({"gifs": gifs_json(gifs, liked), "pagination": pagination_meta(page, per_page, total)})


@bp.get("/gifs")
def gifs_index():
    s = db_session()
    page, per_page = page_params()
    user_id = request.args.get("user_id", type=int)
    gifs, total = list_gifs(s, user_id=user_id, kind=request.args.get("type"), page=page, per_page=per_page)
    return _gifs_page(s, gifs, page, per_page, total), 200


@bp.get("/gifs/<int:gif_id>")
def gifs_show(gif_id: int):
    s = db_session()
    viewer = current_user()
    gif = get_gif_for_view(s, gif_id, viewer)
    if viewer is None or viewer.id != gif.user_id:
        record_view(
            s,
            gif,
            viewer=viewer,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
            referer=request.headers.get("Referer"),
        )
        s.commit()
        s.refresh(gif)
    return jsonify({"gif": gif_json(gif, detailed=True, liked=has_liked(s, viewer, gif))}), 200


@bp.post("/gifs")
@require_login
def gifs_create():
    s = db_session()
    user = require_current_user()
    params = nested_params("gif")
    upload = uploaded_file("gif")
    gif = create_gif(
        s,
        user,
        params,
        upload=upload,
        storage=storage_from_config(current_app.config) if upload is not None else None,
        process_inline=bool(current_app.config.get("PROCESS_UPLOADS_INLINE")),
    )
    s.commit()
    s.refresh(gif)
    return jsonify({"message": "GIF created successfully", "gif": gif_json(gif)}), 201


@bp.route("/gifs/<int:gif_id>", methods=["PATCH", "PUT"])
@require_login
def gifs_update(gif_id: int):
    s = db_session()
    gif = get_gif(s, gif_id)
    ensure_owner(gif.user_id)
    update_gif(s, gif, nested_params("gif"))
    s.commit()
    return jsonify({"message": "GIF updated successfully", "gif": gif_json(gif)}), 200


@bp.delete("/gifs/<int:gif_id>")
@require_login
def gifs_delete(gif_id: int):
    s = db_session()
    gif = get_gif(s, gif_id)
    ensure_owner(gif.user_id)
    soft_delete_gif(s, gif)
    s.commit()
    return jsonify({"message": "GIF deleted successfully"}), 200


@bp.post("/gifs/<int:gif_id>/share")
def gifs_share(gif_id: int):
    s = db_session()
    gif = get_gif_for_view(s, gif_id, current_user())
    url = share_gif(s, gif, current_app.config["PUBLIC_BASE_URL"])
    s.commit()
    s.refresh(gif)
    return jsonify({"share_url": url, "share_count": gif.share_count}), 200


@bp.get("/gifs/<int:gif_id>/file")
def gif_file(gif_id: int):
    s = db_session()
    gif = get_gif_for_view(s, gif_id, current_user())
    if not gif.file_key:
        raise NotFound("This GIF has no file")
    storage = storage_from_config(current_app.config)
    try:
        fobj = storage.open(gif.file_key)
    except (FileNotFoundError, StorageError):
        current_app.logger.warning("Gif %s file missing from storage key=%s", gif.id, gif.file_key)
        raise NotFound("This GIF's file is no longer available")
    return send_file(fobj, mimetype=gif.content_type or "image/gif", max_age=3600)


@bp.get("/gifs/<int:gif_id>/analytics")
@require_login
def gifs_analytics(gif_id: int):
    s = db_session()
    gif = get_gif(s, gif_id)
    ensure_owner(gif.user_id)
    days = min(max(request.args.get("days", default=7, type=int) or 7, 1), 90)
    return jsonify({"analytics": gif_report(s, gif, days=days)}), 200


# ---------- Remixes ----------
@bp.get("/gifs/<int:gif_id>/remix")
@require_login
def remix_new(gif_id: int):
    s = db_session()
    source = get_remix_source(s, gif_id, require_current_user())
    return jsonify(remix_params(source, gif_file_url(source))), 200


@bp.post("/gifs/<int:gif_id>/remixes")
@require_login
def remix_create(gif_id: int):
    s = db_session()
    user = require_current_user()
    source = get_remix_source(s, gif_id, user)
    upload = uploaded_file("remix")
    remix = create_remix(
        s,
        user,
        source,
        nested_params("remix"),
        upload=upload,
        storage=storage_from_config(current_app.config) if upload is not None else None,
    )
    s.commit()
    s.refresh(remix)
    return jsonify({"message": "Remix created", "gif": gif_json(remix, detailed=True)}), 201


@bp.get("/gifs/<int:gif_id>/remixes")
def remix_index(gif_id: int):
    s = db_session()
    gif = get_gif_for_view(s, gif_id, current_user())
    page, per_page = page_params()
    remixes, total = list_remixes(s, gif, page=page, per_page=per_page)
    return _gifs_page(s, remixes, page, per_page, total), 200
