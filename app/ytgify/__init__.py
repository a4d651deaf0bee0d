import logging
import os

from dotenv import load_dotenv
from flask import Flask, request

from app.ytgify.auth import bp as auth_bp, load_current_user
from app.ytgify.config import check_production_config, load_config
from app.ytgify.db import init_db, teardown_db_session
from app.ytgify.errors import register_error_handlers
from app.ytgify.modules.collections.api import bp as collections_bp
from app.ytgify.modules.comments.api import bp as comments_bp
from app.ytgify.modules.feed.api import bp as feed_bp
from app.ytgify.modules.follows.api import bp as follows_bp
from app.ytgify.modules.gifs.api import bp as gifs_bp
from app.ytgify.modules.hashtags.api import bp as hashtags_bp
from app.ytgify.modules.likes.api import bp as likes_bp
from app.ytgify.modules.notifications.api import bp as notifications_bp
from app.ytgify.modules.users.api import bp as users_bp
from app.ytgify.ratelimit import init_rate_limiting
from app.ytgify.routes import bp as routes_bp

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
HEALTH_PATHS = ("/health", "/healthz", "/up")
API_BLUEPRINTS = (
    auth_bp,
    gifs_bp,
    likes_bp,
    comments_bp,
    follows_bp,
    users_bp,
    collections_bp,
    hashtags_bp,
    feed_bp,
    notifications_bp,
)
S3_REQUIRED = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")


def _reset_pool_after_fork(app: Flask) -> None:
    # gunicorn forks after create_app(); pooled sockets must not cross the fork.
    if not hasattr(os, "register_at_fork"):
        return

    def _child() -> None:
        engine = app.extensions.get("sqlalchemy_engine")
        if engine is not None:
            engine.dispose(close=False)

    os.register_at_fork(after_in_child=_child)


def _check_storage(app: Flask) -> None:
    if app.config.get("STORAGE_BACKEND") != "s3":
        return
    missing = [k for k in S3_REQUIRED if not app.config.get(k)]
    if missing:
        # Uploads fail until these are set; reads of existing rows still work.
        logger.error("STORAGE_BACKEND=s3 but %s unset", ", ".join(missing))


def _before_request_user():
    if request.path.startswith(HEALTH_PATHS):
        return None
    return load_current_user()


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.json.sort_keys = False

    check_production_config(app.config)
    init_db(app)
    _reset_pool_after_fork(app)
    _check_storage(app)

    app.register_blueprint(routes_bp)
    for bp in API_BLUEPRINTS:
        app.register_blueprint(bp, url_prefix=API_PREFIX)

    # Throttles key on the user loaded here, so this hook goes first.
    app.before_request(_before_request_user)
    init_rate_limiting(app)
    app.teardown_appcontext(teardown_db_session)
    register_error_handlers(app)

    logger.info("ytgify app ready (env=%s, storage=%s)", app.config["ENV"], app.config["STORAGE_BACKEND"])
    return app
