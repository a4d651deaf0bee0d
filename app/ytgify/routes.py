import logging

from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.ytgify.db import db_session

logger = logging.getLogger(__name__)

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Readiness: the app is up and the database answers."""
    try:
        db_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        return {"ok": False, "database": "unreachable"}, 503
    return {"ok": True, "database": "ok"}


@bp.get("/healthz")
@bp.get("/up")
def liveness():
    # No DB access; load balancers poll this.
    return "ok", 200
