import pytest

import utils.emailer as emailer
from app import create_app
from cache import MemoryCache
from config import Config
from models import db
from repositories import get_repositories
from security.password import hash_password
from security.tokens import get_token_store

PASSWORD = "Sup3r$ecret"


class TestConfig(Config):
    TESTING = True
    AUTO_CREATE_TABLES = True
    SECRET_KEY = "test-secret"
    JWT_SECRET = "test-secret"
    CACHE_DRIVER = "memory"
    PASSWORD_HASH_ROUNDS = 4
    CODE_HASH_ROUNDS = 4
    LOGIN_RATE_MAX_REQUESTS = 1000
    API_RATE_MAX_REQUESTS = 10000
    SMTP_HOST = None


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send(to_email, subject, body):
        sent.append({"to": to_email, "subject": subject, "body": body})
        return True, None

    monkeypatch.setattr(emailer, "send_email", fake_send)
    return sent


@pytest.fixture
def cache_backend():
    return MemoryCache()


@pytest.fixture
def app_factory(tmp_path, cache_backend, outbox):
    """Build an app whose config overrides a few TestConfig settings."""
    built = []

    def _build(**overrides):
        attrs = {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}", **overrides}
        app = create_app(type("_Config", (TestConfig,), attrs), cache_backend=cache_backend)
        built.append(app)
        return app

    yield _build

    for app in built:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api(app):
    """Client without a cookie jar, for bearer-token requests."""
    return app.test_client(use_cookies=False)


@pytest.fixture
def csrf_headers(client):
    def _headers():
        cookie = client.get_cookie("XSRF-TOKEN")
        return {"X-XSRF-TOKEN": cookie.value} if cookie else {}
    return _headers


@pytest.fixture
def register(client):
    def _register(email="alice@example.com", name="Alice", password=PASSWORD):
        resp = client.post("/auth/register", json={
            "name": name,
            "email": email,
            "password": password,
            "confirmPassword": password,
        })
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["data"]
    return _register


@pytest.fixture
def make_user(app):
    def _make(email, role="User", password=PASSWORD, disabled=False):
        with app.app_context():
            repos = get_repositories()
            user = repos.users.create(email.split("@")[0], email, hash_password(password), role_name=role)
            if disabled:
                user = repos.users.update(user.id, disabled=True)
            return user
    return _make


@pytest.fixture
def issue_token(app):
    def _issue(user):
        with app.app_context():
            return get_token_store().issue(user, ip="127.0.0.1", user_agent="pytest")
    return _issue


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def code_from(mail):
    # subject is "<code> : <purpose>"
    return mail["subject"].split(" : ")[0]

