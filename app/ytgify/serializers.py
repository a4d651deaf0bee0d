"""
JSON shapes returned by the API. Kept in one place so feeds, profiles and collections
render GIFs and users identically.
"""
from __future__ import annotations

from flask import url_for

from app.ytgify.models import User
from app.ytgify.modules.collections.models import Collection
from app.ytgify.modules.comments.models import Comment
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.modules.hashtags.models import Hashtag
from app.ytgify.modules.notifications.models import Notification
from app.ytgify.utils import iso


def avatar_url(user: User) -> str | None:
    if not user.avatar_key:
        return None
    return url_for("users.user_avatar", username=user.username)


def user_summary(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "avatar_url": avatar_url(user),
        "is_verified": user.is_verified,
    }


def user_json(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "display_name": user.display_name,
        "bio": user.bio,
        "website": user.website,
        "twitter_handle": user.twitter_handle,
        "youtube_channel": user.youtube_channel,
        "avatar_url": avatar_url(user),
        "is_verified": user.is_verified,
        "gifs_count": user.gifs_count,
        "total_likes_received": user.total_likes_received,
        "follower_count": user.follower_count,
        "following_count": user.following_count,
        "preferences": user.preferences or {},
        "created_at": iso(user.created_at),
        "updated_at": iso(user.updated_at),
    }


def public_profile_json(user: User) -> dict:
    data = user_json(user)
    data.pop("email", None)
    data.pop("preferences", None)
    return data


def gif_file_url(gif: Gif) -> str | None:
    if not gif.file_key:
        return None
    return url_for("gifs.gif_file", gif_id=gif.id)


def gif_json(gif: Gif, *, detailed: bool = False, liked: bool | None = None) -> dict:
    file_url = gif_file_url(gif)
    data = {
        "id": gif.id,
        "title": gif.title,
        "description": gif.description,
        "file_url": file_url,
        # Animated GIFs are served as-is; no separate thumbnail rendition.
        "thumbnail_url": file_url,
        "privacy": gif.privacy_name,
        "duration": gif.duration,
        "fps": gif.fps,
        "resolution_width": gif.resolution_width,
        "resolution_height": gif.resolution_height,
        "file_size": gif.file_size,
        "has_text_overlay": gif.has_text_overlay,
        "is_remix": gif.is_remix,
        "remix_count": gif.remix_count,
        "view_count": gif.view_count,
        "like_count": gif.like_count,
        "comment_count": gif.comment_count,
        "share_count": gif.share_count,
        "created_at": iso(gif.created_at),
        "updated_at": iso(gif.updated_at),
        "hashtag_names": gif.hashtag_names,
        "user": user_summary(gif.user),
    }
    if detailed:
        data.update(
            {
                "youtube_video_url": gif.youtube_video_url,
                "youtube_video_title": gif.youtube_video_title,
                "youtube_channel_name": gif.youtube_channel_name,
                "youtube_timestamp_start": gif.youtube_timestamp_start,
                "youtube_timestamp_end": gif.youtube_timestamp_end,
                "text_overlay_data": gif.text_overlay_data,
                "parent_gif_id": gif.parent_gif_id,
            }
        )
    if detailed or liked is not None:
        data["liked_by_current_user"] = bool(liked)
    return data


def gifs_json(gifs: list[Gif], liked: set[int] | None = None) -> list[dict]:
    """`liked` holds the viewer's liked ids; anonymous viewers pass None and get no flag."""
    return [gif_json(g, liked=None if liked is None else g.id in liked) for g in gifs]


def comment_json(comment: Comment, replies: list[Comment] | None = None) -> dict:
    data = {
        "id": comment.id,
        "gif_id": comment.gif_id,
        "parent_comment_id": comment.parent_comment_id,
        "content": comment.content,
        "reply_count": comment.reply_count,
        "like_count": comment.like_count,
        "is_deleted": comment.is_deleted,
        "created_at": iso(comment.created_at),
        "updated_at": iso(comment.updated_at),
        "user": user_summary(comment.user),
    }
    if replies is not None:
        data["replies"] = [comment_json(r) for r in replies]
    return data


def collection_json(collection: Collection) -> dict:
    return {
        "id": collection.id,
        "name": collection.name,
        "description": collection.description,
        "is_public": collection.is_public,
        "gifs_count": collection.gifs_count,
        "created_at": iso(collection.created_at),
        "updated_at": iso(collection.updated_at),
        "user": {
            "id": collection.user.id,
            "username": collection.user.username,
            "display_name": collection.user.display_name,
            "is_verified": collection.user.is_verified,
        },
    }


def hashtag_json(hashtag: Hashtag, *, with_created: bool = True) -> dict:
    data = {
        "id": hashtag.id,
        "name": hashtag.name,
        "slug": hashtag.slug,
        "usage_count": hashtag.usage_count,
    }
    if with_created:
        data["created_at"] = iso(hashtag.created_at)
    return data


def notification_json(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "action": notification.action,
        "message": notification.message,
        "read": notification.is_read,
        "data": notification.parsed_data,
        "notifiable_type": notification.notifiable_type,
        "notifiable_id": notification.notifiable_id,
        "created_at": iso(notification.created_at),
        "actor": {
            "id": notification.actor.id,
            "username": notification.actor.username,
            "avatar_url": avatar_url(notification.actor),
        },
    }
