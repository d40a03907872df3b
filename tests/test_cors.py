import pytest

from security.cors import origin_patterns


def _allow_origin(resp):
    return resp.headers.get("Access-Control-Allow-Origin")


def test_allowed_origin_gets_credentialed_cors(client):
    resp = client.get("/health", headers={"Origin": "http://localhost:3000"})

    assert _allow_origin(resp) == "http://localhost:3000"
    assert resp.headers.get("Access-Control-Allow-Credentials") == "true"


def test_unknown_origin_gets_no_cors_headers(client):
    resp = client.get("/health", headers={"Origin": "https://evil.example.net"})

    assert resp.status_code == 200
    assert _allow_origin(resp) is None


def test_preflight_allows_csrf_header(client):
    resp = client.options("/auth/logout", headers={
        "Origin": "http://localhost:3000",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "X-XSRF-TOKEN",
    })

    assert _allow_origin(resp) == "http://localhost:3000"
    assert "x-xsrf-token" in resp.headers.get("Access-Control-Allow-Headers", "").lower()


@pytest.mark.parametrize("origin, allowed", [
    ("https://app.example.com", True),
    ("https://admin.example.com", True),
    ("https://example.com.evil.io", False),
    ("http://app.example.com", False),
])
def test_wildcard_origins(app_factory, origin, allowed):
    app = app_factory(ALLOWED_ORIGINS=["https://*.example.com"])
    resp = app.test_client().get("/health", headers={"Origin": origin})

    assert (_allow_origin(resp) == origin) is allowed


def test_origin_patterns_escape_everything_but_the_wildcard():
    exact, wildcard = origin_patterns(["http://localhost:3000", "https://*.example.com"])

    assert exact == "http://localhost:3000"
    assert wildcard.match("https://a.example.com")
    assert not wildcard.match("https://a.exampleXcom")
