import os
import subprocess
import sys
from datetime import datetime, timedelta
from pathlib import Path

from app.ytgify import cache, jobs
from app.ytgify.db import session_scope
from app.ytgify.models import JwtDenylist, User
from app.ytgify.modules.analytics.models import ViewEvent
from app.ytgify.modules.feed import service as feed_service
from app.ytgify.modules.feed.service import SCORED_TRENDING_KEY
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.storage import storage_from_config

ROOT = Path(__file__).resolve().parents[1]


def test_update_trending_caches_ids(app, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice)
    cache.clear()
    assert jobs.update_trending(app) == [gif["id"]]
    assert cache.read(SCORED_TRENDING_KEY) == [gif["id"]]


def test_update_engagement_stats_recounts(app, client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=bob)
    client.post("/api/v1/users/alice/follow", headers=bob)

    with session_scope(app) as s:
        user = s.query(User).filter_by(username="alice").one()
        user.gifs_count = 99
        user.total_likes_received = 0
        user.follower_count = 7

    assert jobs.update_engagement_stats(app) == 1
    with session_scope(app) as s:
        user = s.query(User).filter_by(username="alice").one()
        assert user.gifs_count == 1
        assert user.total_likes_received == 1
        assert user.follower_count == 1
        assert user.following_count == 0


def test_cleanup_view_events(app, client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice)
    client.get(f"/api/v1/gifs/{gif['id']}")
    with session_scope(app) as s:
        s.add(ViewEvent(gif_id=gif["id"], viewer_type="Anonymous", created_at=datetime.utcnow() - timedelta(days=31)))

    assert jobs.cleanup_view_events(app) == 1
    with session_scope(app) as s:
        assert s.query(ViewEvent).count() == 1


def test_cleanup_jwt_denylist(app):
    now = datetime.utcnow()
    with session_scope(app) as s:
        s.add(JwtDenylist(jti="expired", exp=now - timedelta(minutes=1)))
        s.add(JwtDenylist(jti="live", exp=now + timedelta(minutes=10)))

    assert jobs.cleanup_jwt_denylist(app) == 1
    with session_scope(app) as s:
        assert [row.jti for row in s.query(JwtDenylist).all()] == ["live"]


def test_process_gif_job(app, register, create_gif, make_gif_bytes):
    _, alice = register("alice")
    gif = create_gif(alice)
    data = make_gif_bytes(frames=2, size=(16, 16), duration_ms=50)
    storage_from_config(app.config).put_bytes("gifs/test/clip.gif", data, content_type="image/gif")
    with session_scope(app) as s:
        row = s.get(Gif, gif["id"])
        row.file_key = "gifs/test/clip.gif"
        row.content_type = "image/gif"

    assert jobs.process_gif(app, gif["id"]) is True
    with session_scope(app) as s:
        row = s.get(Gif, gif["id"])
        assert (row.resolution_width, row.resolution_height) == (16, 16)
        assert row.fps == 20
        assert row.duration == 0.1
        assert row.file_size == len(data)

    assert jobs.process_gif(app, 9999) is False


def test_update_trending_script_feeds_web_processes(app, client, register, create_gif, monkeypatch):
    _, alice = register("alice")
    gif = create_gif(alice)
    done = subprocess.run(
        [sys.executable, "scripts/run_job.py", "update_trending"],
        cwd=ROOT,
        env=os.environ.copy(),
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert done.returncode == 0, done.stderr
    assert "update_trending: [" in done.stdout

    # The web process never scored anything itself.
    cache.clear()

    def _no_scoring(*args, **kwargs):
        raise AssertionError("trending was rescored in the web process")

    monkeypatch.setattr(feed_service, "compute_trending_ids", _no_scoring)
    r = client.get("/api/v1/feed/trending").json
    assert [g["id"] for g in r["gifs"]] == [gif["id"]]
    assert r["pagination"]["total"] == 1
