from app.ytgify.db import session_scope
from app.ytgify.modules.likes.models import Like


def test_toggle_like(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    url = f"/api/v1/gifs/{gif['id']}/likes"

    r = client.post(url, headers=bob)
    assert r.status_code == 201
    assert r.json == {"message": "GIF liked successfully", "liked": True, "like_count": 1}

    r = client.post(url, headers=bob)
    assert r.status_code == 200
    assert r.json["liked"] is False
    assert r.json["like_count"] == 0
    assert client.get("/api/v1/auth/me", headers=alice).json["user"]["total_likes_received"] == 0


def test_like_requires_login(client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice)
    assert client.post(f"/api/v1/gifs/{gif['id']}/likes").status_code == 401


def test_cannot_like_someone_elses_private_gif(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice, privacy="private")
    assert client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=bob).status_code == 404


def test_delete_like_by_id(app, client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=bob)
    with session_scope(app) as s:
        like_id = s.query(Like).filter_by(gif_id=gif["id"]).one().id

    assert client.delete(f"/api/v1/gifs/{gif['id']}/likes/{like_id}", headers=alice).status_code == 404
    r = client.delete(f"/api/v1/gifs/{gif['id']}/likes/{like_id}", headers=bob)
    assert r.status_code == 200
    assert r.json["like_count"] == 0


def test_like_notifies_owner_but_not_self(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=alice)
    client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=bob)

    body = client.get("/api/v1/notifications", headers=alice).json
    assert body["unread_count"] == 1
    assert body["notifications"][0]["message"] == "bob liked your GIF"


def test_liked_gifs_listing(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    first = create_gif(alice, title="first")
    second = create_gif(alice, title="second")
    hidden = create_gif(alice, title="hidden", privacy="private")
    for gif in (first, second):
        client.post(f"/api/v1/gifs/{gif['id']}/likes", headers=bob)
    client.post(f"/api/v1/gifs/{hidden['id']}/likes", headers=alice)

    r = client.get("/api/v1/users/bob/liked")
    assert [g["title"] for g in r.json["gifs"]] == ["second", "first"]
    assert client.get("/api/v1/users/alice/liked").json["gifs"] == []
    assert [g["title"] for g in client.get("/api/v1/users/alice/liked", headers=alice).json["gifs"]] == ["hidden"]
