from app.ytgify.ratelimit import RateLimiter, Throttle

REMOTE = {"REMOTE_ADDR": "203.0.113.7"}


def _login(client, environ_base=REMOTE):
    return client.post(
        "/api/v1/auth/login",
        json={"user": {"email": "nobody@example.com", "password": "x"}},
        environ_base=environ_base,
    )


def test_auth_endpoints_throttled_per_ip(client):
    for _ in range(5):
        assert _login(client).status_code == 401
    r = _login(client)
    assert r.status_code == 429
    assert r.json["error"] == "Rate limit exceeded. Please try again later."
    assert int(r.headers["Retry-After"]) >= 1
    assert r.headers["RateLimit-Limit"] == "5"
    assert r.headers["RateLimit-Remaining"] == "0"

    # Another address has its own window.
    assert _login(client, {"REMOTE_ADDR": "203.0.113.8"}).status_code == 401


def test_localhost_is_never_throttled(client):
    for _ in range(8):
        assert _login(client, {"REMOTE_ADDR": "127.0.0.1"}).status_code == 401


def test_disabled_by_config(app, client):
    app.config["RATE_LIMIT_ENABLED"] = False
    for _ in range(8):
        assert _login(client).status_code == 401


def test_health_is_not_api_throttled(app, client):
    app.extensions["rate_limiter"].reset()
    for _ in range(120):
        assert client.get("/healthz", environ_base=REMOTE).status_code == 200


def test_window_slides(app):
    rule = Throttle("test/ip", 2, 60, lambda req, user_id: req.remote_addr)
    limiter = RateLimiter((rule,))
    with app.test_request_context("/api/v1/feed", environ_base=REMOTE) as ctx:
        req = ctx.request
        assert limiter.check(req, None, now=1000.0) is None
        assert limiter.check(req, None, now=1010.0) is None
        hit = limiter.check(req, None, now=1020.0)
        assert hit is not None
        assert hit[0] is rule
        assert hit[1] == 40.0
        assert limiter.check(req, None, now=1061.0) is None


def test_rejected_request_is_not_counted_against_other_rules(app):
    loose = Throttle("test/loose", 10, 60, lambda req, user_id: req.remote_addr)
    tight = Throttle("test/tight", 1, 60, lambda req, user_id: req.remote_addr)
    limiter = RateLimiter((loose, tight))
    with app.test_request_context("/api/v1/feed", environ_base=REMOTE) as ctx:
        req = ctx.request
        assert limiter.check(req, None, now=1000.0) is None
        for i in range(5):
            hit = limiter.check(req, None, now=1001.0 + i)
            assert hit is not None and hit[0] is tight
        # Only the one accepted request is in the loose window.
        assert limiter._hits[("test/loose", "203.0.113.7")] == [1000.0]


def test_idle_keys_are_dropped(app):
    rule = Throttle("test/ip", 5, 60, lambda req, user_id: req.remote_addr)
    limiter = RateLimiter((rule,))
    for i in range(3):
        with app.test_request_context("/api/v1/feed", environ_base={"REMOTE_ADDR": f"198.51.100.{i}"}) as ctx:
            assert limiter.check(ctx.request, None, now=1000.0) is None
    assert limiter.tracked_keys() == 3

    with app.test_request_context("/api/v1/feed", environ_base={"REMOTE_ADDR": "198.51.100.9"}) as ctx:
        assert limiter.check(ctx.request, None, now=1000.0 + 61 + RateLimiter.SWEEP_EVERY) is None
    assert limiter.tracked_keys() == 1
