from flask import Flask, request, g
from flask_migrate import Migrate
from werkzeug.middleware.proxy_fix import ProxyFix
import click

from cache import QueryCache, create_backend
from config import Config
from models import db
from repositories import Repositories, get_repositories
from routes import health_bp, auth_bp, users_bp, organizations_bp
from security.cors import init_cors
from security.csrf import require_csrf
from security.rate_limit import throttle_api_requests
from security.tokens import TokenStore
from utils.auth_context import load_current_user, clear_cookie_after_failed_auth, TRANSPORT_COOKIE
from utils.errors import register_error_handlers
from utils.logger import configure_logging, get_logger
from utils.seed import seed_roles

logger = get_logger(__name__)

CSRF_EXEMPT_ENDPOINTS = {
    "auth.login",
    "auth.register",
    "auth.forgot_password",
    "auth.reset_password",
    "health.health",
}

THROTTLE_EXEMPT_ENDPOINTS = {"health.health"}


def create_app(config_object=Config, cache_backend=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app)

    # Only trust X-Forwarded-For from a known number of proxies
    proxies = app.config.get("TRUSTED_PROXY_COUNT", 0)
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    backend = cache_backend or create_backend(app.config)
    query_cache = QueryCache(
        backend,
        ttl=app.config["CACHE_TTL"],
        prefix=app.config["CACHE_KEY_PREFIX"],
        bypass_models=app.config["CACHE_BYPASS_MODELS"],
    )
    repositories = Repositories(query_cache)
    app.extensions["cache_backend"] = backend
    app.extensions["query_cache"] = query_cache
    app.extensions["repositories"] = repositories
    app.extensions["token_store"] = TokenStore(
        repositories.tokens,
        repositories.users,
        secret=app.config["JWT_SECRET"],
        algorithm=app.config["JWT_ALGORITHM"],
        ttl_seconds=app.config["ACCESS_TOKEN_TTL_SECONDS"],
    )

    # Seed default roles at startup (idempotent)
    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        seed_roles()

    init_cors(app)

    @app.before_request
    def _throttle():
        if request.method == "OPTIONS" or request.endpoint in THROTTLE_EXEMPT_ENDPOINTS:
            return None
        throttle_api_requests()
        return None

    @app.before_request
    def _load_user():
        load_current_user()

    @app.before_request
    def _csrf_protect():
        # Only state-changing requests riding on the session cookie
        if request.method not in ("POST", "PUT", "PATCH", "DELETE"):
            return None
        if request.endpoint in CSRF_EXEMPT_ENDPOINTS:
            return None
        if getattr(g, "user", None) is not None and g.auth_transport == TRANSPORT_COOKIE:
            require_csrf()
        return None

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    @app.after_request
    def _clear_bad_cookie(resp):
        return clear_cookie_after_failed_auth(resp)

    register_error_handlers(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(organizations_bp)

    register_cli(app)

    logger.info("app ready (cache driver=%s)", type(backend).__name__)
    return app


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to Admin by email (bootstrap)."""
        repos = get_repositories()
        user = repos.users.find_by_email(email)
        if not user:
            click.echo("User not found")
            return

        if user.is_admin:
            click.echo(f"{user.email} is already an Admin")
            return

        repos.users.assign_role(user.id, "Admin")
        click.echo(f"{user.email} promoted to Admin")


if __name__ == "__main__":
    app = create_app()
    try:
        # Run locally
        app.run(host="127.0.0.1", port=5002)
    finally:
        app.extensions["cache_backend"].close()
