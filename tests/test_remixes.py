from app.ytgify.modules.gifs.service import parse_text_overlay


def test_remix_editor_params_use_defaults(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice, title="source")
    r = client.get(f"/api/v1/gifs/{gif['id']}/remix", headers=bob)
    assert r.status_code == 200
    assert r.json["width"] == 500
    assert r.json["height"] == 500
    assert r.json["fps"] == 15
    assert r.json["file_url"] is None


def test_private_gif_cannot_be_remixed_by_others(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    gif = create_gif(alice, title="mine", privacy="unlisted")
    r = client.get(f"/api/v1/gifs/{gif['id']}/remix", headers=bob)
    assert r.status_code == 403
    assert r.json["message"] == "This GIF cannot be remixed"
    assert client.get(f"/api/v1/gifs/{gif['id']}/remix", headers=alice).status_code == 200


def test_create_remix(client, register, create_gif):
    _, alice = register("alice")
    _, bob = register("bob")
    source = create_gif(
        alice,
        title="source",
        youtube_video_url="https://www.youtube.com/watch?v=abc",
        youtube_timestamp_start=1,
        youtube_timestamp_end=3,
        fps=12,
    )
    r = client.post(
        f"/api/v1/gifs/{source['id']}/remixes",
        json={
            "remix": {
                "title": "with caption",
                "text_overlay_data": {"text": "  hi  ", "font_size": 500, "position": {"x": 2, "y": -1}},
            }
        },
        headers=bob,
    )
    assert r.status_code == 201
    remix = r.json["gif"]
    assert r.json["message"] == "Remix created"
    assert remix["is_remix"] is True
    assert remix["parent_gif_id"] == source["id"]
    assert remix["youtube_video_url"] == "https://www.youtube.com/watch?v=abc"
    assert remix["duration"] == 2
    assert remix["fps"] == 12
    assert remix["has_text_overlay"] is True
    overlay = remix["text_overlay_data"]
    assert overlay["text"] == "hi"
    assert overlay["font_size"] == 120
    assert overlay["position"] == {"x": 1.0, "y": 0.0}

    src = client.get(f"/api/v1/gifs/{source['id']}", headers=alice).json["gif"]
    assert src["remix_count"] == 1

    listing = client.get(f"/api/v1/gifs/{source['id']}/remixes").json
    assert [g["id"] for g in listing["gifs"]] == [remix["id"]]

    notes = client.get("/api/v1/notifications", headers=alice).json["notifications"]
    assert notes[0]["action"] == "remix"
    assert notes[0]["message"] == "bob remixed your GIF"


def test_parse_text_overlay_defaults():
    assert parse_text_overlay(None) is None
    assert parse_text_overlay("") is None
    overlay = parse_text_overlay('{"text": "yo", "outline_width": 99}')
    assert overlay["font_family"] == "Arial"
    assert overlay["font_size"] == 48
    assert overlay["outline_width"] == 10
    assert overlay["color"] == "#ffffff"
    assert overlay["position"] == {"x": 0.5, "y": 0.9}
