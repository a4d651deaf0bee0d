"""Initial schema: users, gifs, social graph, collections, hashtags, notifications, views.

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a7c1e2d3f4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("jti", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(50), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("twitter_handle", sa.String(64), nullable=True),
        sa.Column("youtube_channel", sa.String(255), nullable=True),
        sa.Column("avatar_key", sa.String(512), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("gifs_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_likes_received", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("follower_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("preferences", sa.JSON(), nullable=True),
        sa.Column("sign_in_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_sign_in_at", sa.DateTime(), nullable=True),
        sa.Column("last_sign_in_ip", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("jti"),
    )
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "jwt_denylists",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("jti", sa.String(64), nullable=False),
        sa.Column("exp", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("jti"),
    )

    op.create_table(
        "gifs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("youtube_video_url", sa.String(512), nullable=True),
        sa.Column("youtube_video_title", sa.String(255), nullable=True),
        sa.Column("youtube_channel_name", sa.String(255), nullable=True),
        sa.Column("youtube_timestamp_start", sa.Float(), nullable=True),
        sa.Column("youtube_timestamp_end", sa.Float(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("fps", sa.Integer(), nullable=True),
        sa.Column("resolution_width", sa.Integer(), nullable=True),
        sa.Column("resolution_height", sa.Integer(), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("file_key", sa.String(512), nullable=True),
        sa.Column("content_type", sa.String(128), nullable=True),
        sa.Column("has_text_overlay", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("text_overlay_data", sa.JSON(), nullable=True),
        sa.Column("is_remix", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("parent_gif_id", sa.Integer(), nullable=True),
        sa.Column("privacy", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("remix_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("share_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_gif_id"], ["gifs.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_gifs_user_created", "gifs", ["user_id", "created_at"])
    op.create_index("idx_gifs_public_feed", "gifs", ["deleted_at", "privacy", "created_at"])
    op.create_index("idx_gifs_popularity", "gifs", ["like_count", "view_count"])
    op.create_index("idx_gifs_parent", "gifs", ["parent_gif_id"])
    op.create_index("idx_gifs_created_at", "gifs", ["created_at"])

    op.create_table(
        "hashtags",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index("idx_hashtags_usage_count", "hashtags", ["usage_count"])

    op.create_table(
        "gif_hashtags",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gif_id", sa.Integer(), nullable=False),
        sa.Column("hashtag_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["gif_id"], ["gifs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["hashtag_id"], ["hashtags.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("gif_id", "hashtag_id", name="uq_gif_hashtag"),
    )
    op.create_index("idx_gif_hashtags_hashtag", "gif_hashtags", ["hashtag_id"])

    op.create_table(
        "likes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("gif_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["gif_id"], ["gifs.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "gif_id", name="uq_like_user_gif"),
    )
    op.create_index("idx_likes_gif", "likes", ["gif_id"])
    op.create_index("idx_likes_created_at", "likes", ["created_at"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("gif_id", sa.Integer(), nullable=False),
        sa.Column("parent_comment_id", sa.Integer(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reply_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["gif_id"], ["gifs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_comment_id"], ["comments.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_comments_gif_created", "comments", ["gif_id", "created_at"])
    op.create_index("idx_comments_parent", "comments", ["parent_comment_id"])
    op.create_index("idx_comments_user", "comments", ["user_id"])

    op.create_table(
        "follows",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("follower_id", sa.Integer(), nullable=False),
        sa.Column("following_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["follower_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["following_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follow_pair"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_no_self_follow"),
    )
    op.create_index("idx_follows_following", "follows", ["following_id"])
    op.create_index("idx_follows_created_at", "follows", ["created_at"])

    op.create_table(
        "collections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("gifs_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_collections_user_created", "collections", ["user_id", "created_at"])
    op.create_index("idx_collections_is_public", "collections", ["is_public"])

    op.create_table(
        "collection_gifs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("gif_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["collection_id"], ["collections.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["gif_id"], ["gifs.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("collection_id", "gif_id", name="uq_collection_gif"),
    )
    op.create_index("idx_collection_gifs_position", "collection_gifs", ["collection_id", "position"])
    op.create_index("idx_collection_gifs_gif", "collection_gifs", ["gif_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("recipient_id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("notifiable_type", sa.String(64), nullable=False),
        sa.Column("notifiable_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("data", sa.Text(), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_notifications_recipient_created", "notifications", ["recipient_id", "created_at"])
    op.create_index("idx_notifications_recipient_read", "notifications", ["recipient_id", "read_at"])
    op.create_index("idx_notifications_notifiable", "notifications", ["notifiable_type", "notifiable_id"])

    op.create_table(
        "view_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("gif_id", sa.Integer(), nullable=False),
        sa.Column("viewer_id", sa.Integer(), nullable=True),
        sa.Column("viewer_type", sa.String(32), nullable=False, server_default="Anonymous"),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("referer", sa.String(1024), nullable=True),
        sa.Column("is_unique", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["gif_id"], ["gifs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["viewer_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_view_events_gif_created", "view_events", ["gif_id", "created_at"])
    op.create_index("idx_view_events_viewer_gif_created", "view_events", ["viewer_id", "gif_id", "created_at"])
    op.create_index("idx_view_events_created_at", "view_events", ["created_at"])


def downgrade() -> None:
    for table in (
        "view_events",
        "notifications",
        "collection_gifs",
        "collections",
        "follows",
        "comments",
        "likes",
        "gif_hashtags",
        "hashtags",
        "gifs",
        "jwt_denylists",
        "users",
    ):
        op.drop_table(table)
