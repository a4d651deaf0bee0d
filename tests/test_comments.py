def _comment(client, gif_id, headers, content, parent_id=None):
    body = {"content": content}
    if parent_id is not None:
        body["parent_comment_id"] = parent_id
    return client.post(f"/api/v1/gifs/{gif_id}/comments", json={"comment": body}, headers=headers)


def test_comment_and_reply(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)

    r = _comment(client, gif["id"], bob, "great clip")
    assert r.status_code == 201
    top = r.json["comment"]
    assert top["user"]["username"] == "bob"

    r = _comment(client, gif["id"], alice, "thanks!", parent_id=top["id"])
    assert r.status_code == 201

    listing = client.get(f"/api/v1/gifs/{gif['id']}/comments").json
    assert listing["pagination"]["total"] == 1
    assert listing["comments"][0]["reply_count"] == 1
    assert [c["content"] for c in listing["comments"][0]["replies"]] == ["thanks!"]

    detail = client.get(f"/api/v1/gifs/{gif['id']}", headers=alice).json["gif"]
    assert detail["comment_count"] == 2

    notes = client.get("/api/v1/notifications", headers=alice).json["notifications"]
    assert [n["action"] for n in notes] == ["comment"]


def test_comment_validation(client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice)
    assert _comment(client, gif["id"], alice, "   ").status_code == 422
    assert _comment(client, gif["id"], alice, "x" * 2001).status_code == 422
    assert _comment(client, gif["id"], alice, "ok", parent_id=9999).status_code == 422


def test_reply_must_belong_to_same_gif(client, register, create_gif):
    _, alice = register("alice")
    one = create_gif(alice, title="one")
    two = create_gif(alice, title="two")
    parent = _comment(client, one["id"], alice, "on one").json["comment"]
    r = _comment(client, two["id"], alice, "wrong gif", parent_id=parent["id"])
    assert r.status_code == 422


def test_edit_and_delete_owner_only(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice)
    comment = _comment(client, gif["id"], bob, "first").json["comment"]
    url = f"/api/v1/comments/{comment['id']}"

    assert client.patch(url, json={"comment": {"content": "hijack"}}, headers=alice).status_code == 403
    r = client.patch(url, json={"comment": {"content": "edited"}}, headers=bob)
    assert r.status_code == 200
    assert r.json["comment"]["content"] == "edited"

    assert client.delete(url, headers=alice).status_code == 403
    assert client.delete(url, headers=bob).status_code == 200
    assert client.delete(url, headers=bob).status_code == 404

    listing = client.get(f"/api/v1/gifs/{gif['id']}/comments").json
    assert listing["comments"] == []
    detail = client.get(f"/api/v1/gifs/{gif['id']}", headers=alice).json["gif"]
    assert detail["comment_count"] == 0
