from conftest import bearer


def test_cookie_session_needs_matching_header(client, register, csrf_headers):
    register()

    resp = client.post("/auth/logout")
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Invalid or missing CSRF token"

    assert client.post("/auth/logout", headers={"X-XSRF-TOKEN": "forged"}).status_code == 403
    assert client.post("/auth/logout", headers=csrf_headers()).status_code == 200


def test_alternate_header_name_is_accepted(client, register):
    register()
    token = client.get_cookie("XSRF-TOKEN").value
    assert client.post("/auth/logout", headers={"X-CSRF-Token": token}).status_code == 200


def test_bearer_requests_skip_csrf(api, make_user, issue_token):
    alice = make_user("alice@example.com")
    assert api.post("/auth/logout", headers=bearer(issue_token(alice))).status_code == 200


def test_login_is_exempt(client, register):
    register()
    resp = client.post("/auth/login", json={"email": "alice@example.com", "password": "Sup3r$ecret"})
    assert resp.status_code == 200


def test_csrf_endpoint_sets_cookie(client):
    resp = client.get("/auth/csrf")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["token"] == client.get_cookie("XSRF-TOKEN").value


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "default-src 'none'" in resp.headers["Content-Security-Policy"]


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False
