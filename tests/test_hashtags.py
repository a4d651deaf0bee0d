import time

from app.ytgify import cache
from app.ytgify.db import session_scope
from app.ytgify.modules.hashtags.models import Hashtag
from app.ytgify.modules.hashtags.service import TRENDING_HASHTAGS_CACHE_SECONDS
from app.ytgify.utils import parameterize


def test_trending_and_search(client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="#cats #dogs")
    create_gif(alice, title="#cats again")
    create_gif(alice, title="#catnip")

    trending = client.get("/api/v1/hashtags/trending").json["hashtags"]
    assert [h["name"] for h in trending][:1] == ["cats"]
    assert trending[0]["usage_count"] == 2

    r = client.get("/api/v1/hashtags/search", query_string={"q": "#Cat"})
    assert r.json["query"] == "cat"
    assert [h["name"] for h in r.json["hashtags"]] == ["cats", "catnip"]
    assert "created_at" not in r.json["hashtags"][0]


def test_search_blank_falls_back_to_trending(client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="#loop")
    r = client.get("/api/v1/hashtags/search")
    assert [h["name"] for h in r.json["hashtags"]] == ["loop"]


def test_show_hashtag_with_gifs(client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="public #meme")
    create_gif(alice, title="private #meme", privacy="private")

    r = client.get("/api/v1/hashtags/meme")
    assert r.status_code == 200
    assert r.json["hashtag"]["usage_count"] == 2
    assert [g["title"] for g in r.json["gifs"]] == ["public #meme"]

    by_id = client.get(f"/api/v1/hashtags/{r.json['hashtag']['id']}")
    assert by_id.json["hashtag"]["slug"] == "meme"
    assert client.get("/api/v1/hashtags/nothing-here").status_code == 404


def test_index_is_alphabetical(client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="#zebra #apple")
    r = client.get("/api/v1/hashtags")
    assert [h["name"] for h in r.json["hashtags"]] == ["apple", "zebra"]
    assert r.json["pagination"]["total"] == 2


def test_usage_count_drops_when_tag_removed(client, register, create_gif):
    _, alice = register("alice")
    gif = create_gif(alice, title="#old")
    client.patch(f"/api/v1/gifs/{gif['id']}", json={"gif": {"hashtag_names": "new"}}, headers=alice)
    r = client.get("/api/v1/hashtags/old")
    assert r.json["hashtag"]["usage_count"] == 0
    assert client.get("/api/v1/hashtags/new").json["hashtag"]["usage_count"] == 1


def test_parameterize():
    assert parameterize("Hello World!") == "hello-world"
    assert parameterize("snake_case") == "snake_case"
    assert parameterize("  --x--  ") == "x"


def test_trending_hashtags_are_cached_until_a_hashtag_write(app, client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="#loop")
    assert [h["name"] for h in client.get("/api/v1/hashtags/trending").json["hashtags"]] == ["loop"]

    # A direct row change skips invalidation, so the cached page still answers.
    with session_scope(app) as s:
        s.add(Hashtag(name="sneaky", slug="sneaky", usage_count=50))
    assert [h["name"] for h in client.get("/api/v1/hashtags/trending").json["hashtags"]] == ["loop"]

    create_gif(alice, title="#fresh")
    names = [h["name"] for h in client.get("/api/v1/hashtags/trending").json["hashtags"]]
    assert names == ["sneaky", "fresh", "loop"]


def test_new_tag_clears_cached_search_fallback(client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="#loop")
    assert [h["name"] for h in client.get("/api/v1/hashtags/search").json["hashtags"]] == ["loop"]
    assert cache.read("feed/trending_hashtags/offset_0/limit_10") is not None

    create_gif(alice, title="#brandnew")
    assert cache.read("feed/trending_hashtags/offset_0/limit_10") is None
    names = [h["name"] for h in client.get("/api/v1/hashtags/search").json["hashtags"]]
    assert sorted(names) == ["brandnew", "loop"]


def test_trending_hashtags_expire_after_an_hour(monkeypatch, client, register, create_gif):
    _, alice = register("alice")
    create_gif(alice, title="#loop")
    client.get("/api/v1/hashtags/search")
    key = "feed/trending_hashtags/offset_0/limit_10"
    now = time.monotonic()

    monkeypatch.setattr(cache.time, "monotonic", lambda: now + TRENDING_HASHTAGS_CACHE_SECONDS - 60)
    assert cache.read(key) is not None
    monkeypatch.setattr(cache.time, "monotonic", lambda: now + TRENDING_HASHTAGS_CACHE_SECONDS + 1)
    assert cache.read(key) is None
