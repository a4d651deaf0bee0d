"""Tests for GIF upload, visibility, editing, sharing and views."""
import io

from app.ytgify.db import session_scope
from app.ytgify.models import User, default_preferences
from app.ytgify.modules.analytics.models import ViewEvent
from app.ytgify.modules.gifs.models import Gif
from app.ytgify.storage import storage_from_config


def test_create_gif_from_json(client, register):
    _, headers = register("alice")
    r = client.post(
        "/api/v1/gifs",
        json={
            "gif": {
                "title": "Best moment #Cats #funny",
                "youtube_video_url": "https://www.youtube.com/watch?v=abc",
                "youtube_timestamp_start": 10,
                "youtube_timestamp_end": 13.5,
                "fps": 15,
            }
        },
        headers=headers,
    )
    assert r.status_code == 201
    gif = r.json["gif"]
    assert r.json["message"] == "GIF created successfully"
    assert gif["duration"] == 3.5
    assert gif["privacy"] == "public_access"
    assert gif["hashtag_names"] == ["cats", "funny"]
    assert gif["file_url"] is None
    assert gif["user"]["username"] == "alice"

    me = client.get("/api/v1/auth/me", headers=headers).json["user"]
    assert me["gifs_count"] == 1
    assert me["preferences"]["recently_used_tags"] == ["cats", "funny"]


def test_create_gif_validation(client, register):
    _, headers = register("alice")
    r = client.post(
        "/api/v1/gifs",
        json={"gif": {"title": "x" * 101, "youtube_timestamp_start": 5, "youtube_timestamp_end": 2}},
        headers=headers,
    )
    assert r.status_code == 422
    assert r.json["error"] == "GIF creation failed"
    assert "Title is too long (maximum is 100 characters)" in r.json["details"]

    r = client.post("/api/v1/gifs", json={"gif": {"title": "ok", "privacy": "secret"}}, headers=headers)
    assert r.status_code == 422


def test_create_requires_login(client):
    r = client.post("/api/v1/gifs", json={"gif": {"title": "anon"}})
    assert r.status_code == 401


def test_multipart_upload_extracts_metadata(client, register, make_gif_bytes):
    _, headers = register("alice")
    data = make_gif_bytes(frames=4, size=(40, 30), duration_ms=100)
    r = client.post(
        "/api/v1/gifs",
        data={
            "gif[title]": "Uploaded",
            "gif[hashtag_names][]": ["Loop", "cats"],
            "gif[file]": (io.BytesIO(data), "clip.gif", "image/gif"),
        },
        headers=headers,
        content_type="multipart/form-data",
    )
    assert r.status_code == 201, r.json
    gif = r.json["gif"]
    assert gif["resolution_width"] == 40
    assert gif["resolution_height"] == 30
    assert gif["fps"] == 10
    assert gif["duration"] == 0.4
    assert gif["file_size"] == len(data)
    assert gif["hashtag_names"] == ["cats", "loop"]
    assert gif["file_url"] == f"/api/v1/gifs/{gif['id']}/file"

    f = client.get(gif["file_url"])
    assert f.status_code == 200
    assert f.mimetype == "image/gif"
    assert f.data == data


def test_upload_rejects_unknown_content_type(client, register):
    _, headers = register("alice")
    r = client.post(
        "/api/v1/gifs",
        data={"gif[title]": "Doc", "gif[file]": (io.BytesIO(b"%PDF-1.4"), "doc.pdf", "application/pdf")},
        headers=headers,
        content_type="multipart/form-data",
    )
    assert r.status_code == 422


def test_private_gif_hidden_from_others(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice, title="secret", privacy="private")

    assert client.get(f"/api/v1/gifs/{gif['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/v1/gifs/{gif['id']}", headers=bob).status_code == 404
    assert client.get(f"/api/v1/gifs/{gif['id']}").status_code == 404

    listing = client.get("/api/v1/gifs").json
    assert listing["gifs"] == []
    assert listing["pagination"]["total"] == 0


def test_unlisted_gif_viewable_but_not_listed(client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice, title="link only", privacy="unlisted")
    assert client.get(f"/api/v1/gifs/{gif['id']}").status_code == 200
    assert client.get("/api/v1/gifs").json["gifs"] == []


def test_default_privacy_preference_applies(client, register, create_gif):
    _, alice = register("alice")
    client.patch("/api/v1/auth/me", json={"user": {"default_privacy": "private"}}, headers=alice)
    gif = create_gif(alice, title="quiet")
    assert gif["privacy"] == "private_access"


def test_list_gifs_filters(client, register, create_gif):
    alice_user, alice = register("alice")
    _, bob = register("bob")
    original = create_gif(alice, title="original")
    create_gif(bob, title="bob's", parent_gif_id=original["id"])

    r = client.get("/api/v1/gifs", query_string={"type": "remix"})
    assert [g["title"] for g in r.json["gifs"]] == ["bob's"]
    r = client.get("/api/v1/gifs", query_string={"type": "original"})
    assert [g["title"] for g in r.json["gifs"]] == ["original"]
    r = client.get("/api/v1/gifs", query_string={"user_id": alice_user["id"]})
    assert r.json["pagination"]["total"] == 1


def test_update_and_delete_owner_only(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice, title="before")

    r = client.patch(f"/api/v1/gifs/{gif['id']}", json={"gif": {"title": "after"}}, headers=bob)
    assert r.status_code == 403

    r = client.patch(
        f"/api/v1/gifs/{gif['id']}",
        json={"gif": {"title": "after", "hashtag_names": ["edited"]}},
        headers=alice,
    )
    assert r.status_code == 200
    assert r.json["gif"]["title"] == "after"
    assert r.json["gif"]["hashtag_names"] == ["edited"]

    assert client.delete(f"/api/v1/gifs/{gif['id']}", headers=bob).status_code == 403
    r = client.delete(f"/api/v1/gifs/{gif['id']}", headers=alice)
    assert r.status_code == 200
    assert client.get(f"/api/v1/gifs/{gif['id']}", headers=alice).status_code == 404
    assert client.get("/api/v1/auth/me", headers=alice).json["user"]["gifs_count"] == 0


def test_share_increments_counter(client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice)
    r = client.post(f"/api/v1/gifs/{gif['id']}/share")
    assert r.status_code == 200
    assert r.json["share_url"] == f"https://ytgify.test/gifs/{gif['id']}"
    assert r.json["share_count"] == 1


def test_views_are_unique_per_viewer_per_day(app, client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    url = f"/api/v1/gifs/{gif['id']}"

    assert client.get(url, headers=alice).json["gif"]["view_count"] == 0
    assert client.get(url).json["gif"]["view_count"] == 1
    assert client.get(url).json["gif"]["view_count"] == 1
    assert client.get(url, headers=bob).json["gif"]["view_count"] == 2
    assert client.get(url, headers=bob).json["gif"]["view_count"] == 2

    with session_scope(app) as s:
        events = s.query(ViewEvent).filter_by(gif_id=gif["id"]).all()
        assert len(events) == 4
        assert sum(1 for e in events if e.is_unique) == 2


def test_analytics_owner_only(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    client.get(f"/api/v1/gifs/{gif['id']}", headers={**bob, "Referer": "https://twitter.com/x"})

    assert client.get(f"/api/v1/gifs/{gif['id']}/analytics", headers=bob).status_code == 403
    r = client.get(f"/api/v1/gifs/{gif['id']}/analytics", headers=alice, query_string={"days": 3})
    assert r.status_code == 200
    report = r.json["analytics"]
    assert report["unique_viewers"] == 1
    assert report["total_views"] == 1
    assert len(report["views_by_day"]) == 3
    assert sum(report["views_by_day"].values()) == 1
    assert report["top_referrers"] == {"https://twitter.com/x": 1}


def test_file_missing_is_404(client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice)
    assert client.get(f"/api/v1/gifs/{gif['id']}/file").status_code == 404


def test_gif_detail_reports_like_state(app, client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=bob)
    detail = client.get(f"/api/v1/gifs/{gif['id']}", headers=bob).json["gif"]
    assert detail["liked_by_current_user"] is True
    assert detail["like_count"] == 1
    with session_scope(app) as s:
        assert s.query(User).filter_by(username="alice").one().total_likes_received == 1


def test_recent_tags_keep_ten_newest_without_duplicates():
    user = User(username="alice", preferences=default_preferences())
    for i in range(12):
        user.add_recent_tag(f"tag{i}")
    user.add_recent_tag("tag5")

    tags = user.recently_used_tags
    assert len(tags) == 10
    assert tags[0] == "tag5"
    assert tags[1:4] == ["tag11", "tag10", "tag9"]
    assert tags.count("tag5") == 1
    assert "tag0" not in tags and "tag1" not in tags


def test_recent_tags_across_uploads(client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, hashtag_names=[f"t{i}" for i in range(8)])
    create_gif(alice, hashtag_names=["t3", "new1", "new2", "new3"])

    tags = client.get("/api/v1/auth/me", headers=alice).json["user"]["preferences"]["recently_used_tags"]
    assert tags[:4] == ["t3", "new1", "new2", "new3"]
    assert len(tags) == 10
    assert len(set(tags)) == 10


def test_file_gone_from_storage_is_404(app, client, register, make_gif_bytes):
    _, headers = register("alice")
    r = client.post(
        "/api/v1/gifs",
        data={"gif[title]": "Uploaded", "gif[file]": (io.BytesIO(make_gif_bytes()), "clip.gif", "image/gif")},
        headers=headers,
        content_type="multipart/form-data",
    )
    gif = r.json["gif"]
    with session_scope(app) as s:
        key = s.get(Gif, gif["id"]).file_key
    storage_from_config(app.config).delete(key)

    missing = client.get(gif["file_url"])
    assert missing.status_code == 404
    assert missing.json["error"] == "Record not found"


def test_listing_flags_liked_gifs_for_the_viewer(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    liked = create_gif(alice, title="liked")
    create_gif(alice, title="other")
    client.post(f"/api/v1/gifs/{liked['id']}/likes", headers=bob)

    flags = {g["title"]: g["liked_by_current_user"] for g in client.get("/api/v1/gifs", headers=bob).json["gifs"]}
    assert flags == {"liked": True, "other": False}

    anonymous = client.get("/api/v1/gifs").json["gifs"]
    assert all("liked_by_current_user" not in g for g in anonymous)

    feed = client.get("/api/v1/feed/recent", headers=bob).json["gifs"]
    assert [g["liked_by_current_user"] for g in feed] == [False, True]
