from conftest import PASSWORD, bearer, code_from

NEW_PASSWORD = "An0ther#Secret"


def _set_cookie_headers(resp):
    return resp.headers.getlist("Set-Cookie")


def _cookie_cleared(resp, name="accessToken"):
    return any(h.startswith(f"{name}=;") for h in _set_cookie_headers(resp))


class TestRegister:
    def test_register_creates_unverified_user_with_session(self, client, register, outbox):
        data = register()

        assert data["user"]["email"] == "alice@example.com"
        assert data["user"]["role"] == "User"
        assert data["user"]["isVerified"] is False
        assert data["token"]
        assert data["verificationId"]

        assert client.get_cookie("accessToken").value == data["token"]
        assert client.get_cookie("XSRF-TOKEN") is not None

        assert len(outbox) == 1
        assert outbox[0]["to"] == "alice@example.com"
        assert outbox[0]["subject"].endswith("Email Verification")
        assert data["verificationId"] in outbox[0]["body"]

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.get_json()["data"]["user"]["id"] == data["user"]["id"]

    def test_email_is_normalized(self, register):
        data = register(email="Alice@Example.COM")
        assert data["user"]["email"] == "alice@example.com"

    def test_duplicate_email_conflicts(self, client, register):
        register()
        resp = client.post("/auth/register", json={
            "name": "Again",
            "email": "ALICE@example.com",
            "password": PASSWORD,
            "confirmPassword": PASSWORD,
        })
        assert resp.status_code == 409
        assert resp.get_json()["success"] is False

    def test_validation_errors_are_reported_per_field(self, client):
        resp = client.post("/auth/register", json={
            "name": "Bob",
            "email": "not-an-email",
            "password": PASSWORD,
            "confirmPassword": "different",
        })
        assert resp.status_code == 422
        errors = resp.get_json()["errors"]
        assert {"email", "confirmPassword"} <= set(errors)
        assert errors["confirmPassword"] == ["Passwords do not match"]

    def test_weak_password_is_rejected(self, client):
        resp = client.post("/auth/register", json={
            "name": "Bob",
            "email": "bob@example.com",
            "password": "weak",
            "confirmPassword": "weak",
        })
        assert resp.status_code == 422
        assert "password" in resp.get_json()["errors"]

    def test_missing_body(self, client):
        resp = client.post("/auth/register")
        assert resp.status_code == 422


class TestEmailVerification:
    def test_verify_with_emailed_code(self, client, register, outbox, csrf_headers):
        data = register()
        code_id = data["verificationId"]

        assert client.get(f"/auth/verify/{code_id}").status_code == 200

        resp = client.post(f"/auth/verify/{code_id}", json={"code": code_from(outbox[0])}, headers=csrf_headers())
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["isVerified"] is True
        assert client.get("/auth/me").get_json()["data"]["user"]["isVerified"] is True

    def test_code_cannot_be_reused(self, client, register, outbox, csrf_headers):
        data = register()
        code_id = data["verificationId"]
        code = code_from(outbox[0])

        assert client.post(f"/auth/verify/{code_id}", json={"code": code}, headers=csrf_headers()).status_code == 200
        assert client.post(f"/auth/verify/{code_id}", json={"code": code}, headers=csrf_headers()).status_code == 404
        assert client.get(f"/auth/verify/{code_id}").status_code == 404

    def test_code_is_disabled_after_too_many_wrong_guesses(self, app, client, register, outbox, csrf_headers):
        data = register()
        code_id = data["verificationId"]

        for _ in range(app.config["OTP_MAX_ATTEMPTS"]):
            resp = client.post(f"/auth/verify/{code_id}", json={"code": "WRONG1"}, headers=csrf_headers())
            assert resp.status_code == 404

        resp = client.post(f"/auth/verify/{code_id}", json={"code": code_from(outbox[0])}, headers=csrf_headers())
        assert resp.status_code == 404

    def test_regenerate_invalidates_prior_code(self, client, register, outbox, csrf_headers):
        data = register()
        old_id = data["verificationId"]

        resp = client.put("/auth/verify/regenerate", headers=csrf_headers())
        assert resp.status_code == 200
        new_id = resp.get_json()["data"]["verificationId"]
        assert new_id != old_id
        assert len(outbox) == 2

        assert client.get(f"/auth/verify/{old_id}").status_code == 404
        assert client.post(
            f"/auth/verify/{old_id}", json={"code": code_from(outbox[0])}, headers=csrf_headers()
        ).status_code == 404
        assert client.post(
            f"/auth/verify/{new_id}", json={"code": code_from(outbox[1])}, headers=csrf_headers()
        ).status_code == 200

    def test_regenerate_requires_session_and_unverified_user(self, api, client, register, outbox, csrf_headers):
        assert api.put("/auth/verify/regenerate").status_code == 401

        data = register()
        client.post(f"/auth/verify/{data['verificationId']}", json={"code": code_from(outbox[0])}, headers=csrf_headers())
        assert client.put("/auth/verify/regenerate", headers=csrf_headers()).status_code == 400

    def test_reset_code_does_not_verify_email(self, client, api, register, outbox):
        register()
        api.post("/auth/forgot-password", json={"email": "alice@example.com"})
        reset_id = outbox[-1]["body"].split("/forgot-password/")[1].split()[0]

        assert api.get(f"/auth/verify/{reset_id}").status_code == 404


class TestLoginAndLogout:
    def _login(self, api, email="alice@example.com", password=PASSWORD, **kwargs):
        return api.post("/auth/login", json={"email": email, "password": password}, **kwargs)

    def test_login_returns_token_and_cookies(self, client, make_user):
        make_user("alice@example.com")
        resp = self._login(client)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["user"]["email"] == "alice@example.com"
        assert client.get_cookie("accessToken").value == body["data"]["token"]

    def test_wrong_password_and_unknown_email_look_the_same(self, api, make_user):
        make_user("alice@example.com")
        wrong = self._login(api, password="Wr0ng!pass")
        unknown = self._login(api, email="nobody@example.com")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json()["message"] == unknown.get_json()["message"]

    def test_disabled_user_cannot_login(self, api, make_user):
        make_user("alice@example.com", disabled=True)
        resp = self._login(api)
        assert resp.status_code == 403

    def test_logout_revokes_the_session(self, api, make_user):
        make_user("alice@example.com")
        token = self._login(api).get_json()["data"]["token"]

        assert api.get("/auth/me", headers=bearer(token)).status_code == 200
        resp = api.post("/auth/logout", headers=bearer(token))
        assert resp.status_code == 200
        assert _cookie_cleared(resp)
        assert api.get("/auth/me", headers=bearer(token)).status_code == 401

    def test_logout_all(self, api, make_user):
        make_user("alice@example.com")
        first = self._login(api).get_json()["data"]["token"]
        second = self._login(api).get_json()["data"]["token"]

        resp = api.post("/auth/logout/all", headers=bearer(first))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["revokedSessions"] == 2
        assert api.get("/auth/me", headers=bearer(first)).status_code == 401
        assert api.get("/auth/me", headers=bearer(second)).status_code == 401

    def test_logout_other_device(self, api, make_user):
        make_user("alice@example.com")
        laptop = self._login(api).get_json()["data"]["token"]
        phone = self._login(api).get_json()["data"]["token"]
        phone_id = api.get("/auth/me", headers=bearer(phone)).get_json()["data"]["session"]["id"]

        resp = api.post(f"/auth/logout/{phone_id}", headers=bearer(laptop))
        assert resp.status_code == 200
        assert api.get("/auth/me", headers=bearer(phone)).status_code == 401
        assert api.get("/auth/me", headers=bearer(laptop)).status_code == 200

    def test_cannot_logout_someone_elses_session(self, api, make_user):
        make_user("alice@example.com")
        make_user("bob@example.com")
        alice = self._login(api).get_json()["data"]["token"]
        bob = self._login(api, email="bob@example.com").get_json()["data"]["token"]
        bob_session = api.get("/auth/me", headers=bearer(bob)).get_json()["data"]["session"]["id"]

        assert api.post(f"/auth/logout/{bob_session}", headers=bearer(alice)).status_code == 200
        assert api.get("/auth/me", headers=bearer(bob)).status_code == 200

    def test_session_listing_marks_current(self, api, make_user):
        make_user("alice@example.com")
        self._login(api)
        token = self._login(api).get_json()["data"]["token"]

        sessions = api.get("/users/me/tokens", headers=bearer(token)).get_json()["data"]
        assert len(sessions) == 2
        assert sum(1 for s in sessions if s["current"]) == 1


class TestTransport:
    def test_cookie_wins_over_header(self, client, make_user, issue_token):
        alice = make_user("alice@example.com")
        bob = make_user("bob@example.com")
        client.set_cookie("accessToken", issue_token(alice))

        resp = client.get("/auth/me", headers=bearer(issue_token(bob)))
        assert resp.get_json()["data"]["user"]["email"] == "alice@example.com"

    def test_bad_cookie_is_cleared(self, client):
        client.set_cookie("accessToken", "garbage")
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert _cookie_cleared(resp)

    def test_revoked_cookie_is_cleared(self, client, api, make_user, issue_token):
        alice = make_user("alice@example.com")
        token = issue_token(alice)
        client.set_cookie("accessToken", token)
        api.post("/auth/logout/all", headers=bearer(token))

        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert _cookie_cleared(resp)

    def test_disabled_user_cookie_gets_403_and_is_cleared(self, app, client, make_user, issue_token):
        from repositories import get_repositories

        alice = make_user("alice@example.com")
        client.set_cookie("accessToken", issue_token(alice))
        with app.app_context():
            get_repositories().users.update(alice.id, disabled=True)

        resp = client.get("/auth/me")
        assert resp.status_code == 403
        assert _cookie_cleared(resp)

    def test_login_over_stale_cookie_keeps_new_session(self, client, make_user):
        make_user("alice@example.com")
        client.set_cookie("accessToken", "stale")

        resp = client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert not _cookie_cleared(resp)
        assert client.get_cookie("accessToken").value == resp.get_json()["data"]["token"]
        assert client.get("/auth/me").status_code == 200

    def test_login_over_revoked_cookie_keeps_new_session(self, client, api, make_user, issue_token):
        alice = make_user("alice@example.com")
        token = issue_token(alice)
        client.set_cookie("accessToken", token)
        api.post("/auth/logout/all", headers=bearer(token))

        resp = client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        fresh = client.get_cookie("accessToken")
        assert fresh is not None and fresh.value != token
        assert client.get("/auth/me").status_code == 200

    def test_bad_bearer_token_sets_no_cookie(self, api):
        resp = api.get("/auth/me", headers=bearer("garbage"))
        assert resp.status_code == 401
        assert not _cookie_cleared(resp)


class TestPasswordReset:
    def _request_reset(self, api, outbox, email="alice@example.com"):
        resp = api.post("/auth/forgot-password", json={"email": email})
        assert resp.status_code == 200
        mail = outbox[-1]
        code_id = mail["body"].split("/forgot-password/")[1].split()[0]
        return code_id, code_from(mail)

    def test_unknown_email_gets_same_answer(self, api, make_user, outbox):
        make_user("alice@example.com")
        known = api.post("/auth/forgot-password", json={"email": "alice@example.com"})
        unknown = api.post("/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.get_json() == unknown.get_json()
        assert len(outbox) == 1

    def test_reset_flow(self, api, make_user, issue_token, outbox):
        alice = make_user("alice@example.com")
        old_session = issue_token(alice)
        code_id, code = self._request_reset(api, outbox)
        assert outbox[-1]["subject"].endswith("Password Reset")

        lookup = api.get(f"/auth/forgot-password/{code_id}")
        assert lookup.status_code == 200
        assert lookup.get_json()["data"]["email"] == "alice@example.com"

        resp = api.post(f"/auth/forgot-password/{code_id}", json={
            "code": code,
            "password": NEW_PASSWORD,
            "confirmPassword": NEW_PASSWORD,
        })
        assert resp.status_code == 200

        assert api.get("/auth/me", headers=bearer(old_session)).status_code == 401
        assert api.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD}).status_code == 401
        assert api.post("/auth/login", json={"email": "alice@example.com", "password": NEW_PASSWORD}).status_code == 200

        # single use
        assert api.get(f"/auth/forgot-password/{code_id}").status_code == 404

    def test_new_request_invalidates_previous_code(self, api, make_user, outbox):
        make_user("alice@example.com")
        first_id, first_code = self._request_reset(api, outbox)
        self._request_reset(api, outbox)

        resp = api.post(f"/auth/forgot-password/{first_id}", json={
            "code": first_code,
            "password": NEW_PASSWORD,
            "confirmPassword": NEW_PASSWORD,
        })
        assert resp.status_code == 404

    def test_reset_re_enables_disabled_account(self, api, make_user, outbox):
        make_user("alice@example.com", disabled=True)
        code_id, code = self._request_reset(api, outbox)

        api.post(f"/auth/forgot-password/{code_id}", json={
            "code": code,
            "password": NEW_PASSWORD,
            "confirmPassword": NEW_PASSWORD,
        })
        assert api.post("/auth/login", json={"email": "alice@example.com", "password": NEW_PASSWORD}).status_code == 200


class TestChangePassword:
    def test_change_password_keeps_current_session_only(self, api, make_user, issue_token):
        alice = make_user("alice@example.com")
        current = issue_token(alice)
        other = issue_token(alice)

        resp = api.post("/auth/change-password", headers=bearer(current), json={
            "currentPassword": PASSWORD,
            "password": NEW_PASSWORD,
            "confirmPassword": NEW_PASSWORD,
        })
        assert resp.status_code == 200
        assert resp.get_json()["data"]["revokedSessions"] == 1
        assert api.get("/auth/me", headers=bearer(current)).status_code == 200
        assert api.get("/auth/me", headers=bearer(other)).status_code == 401

    def test_wrong_current_password(self, api, make_user, issue_token):
        alice = make_user("alice@example.com")
        resp = api.post("/auth/change-password", headers=bearer(issue_token(alice)), json={
            "currentPassword": "Wr0ng!pass",
            "password": NEW_PASSWORD,
            "confirmPassword": NEW_PASSWORD,
        })
        assert resp.status_code == 422
        assert "currentPassword" in resp.get_json()["errors"]
