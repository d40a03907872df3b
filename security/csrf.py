import secrets
from flask import request, current_app

from utils.errors import Forbidden

ALT_CSRF_HEADER = "X-CSRF-Token"


def new_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def set_csrf_cookie(resp, token: str):
    resp.set_cookie(
        current_app.config.get("CSRF_COOKIE_NAME", "XSRF-TOKEN"),
        token,
        httponly=False,  # must be readable by client JS
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("ACCESS_TOKEN_TTL_SECONDS", 86400),
        path="/",
    )
    return resp


def issue_csrf_token(resp):
    token = new_csrf_token()
    set_csrf_cookie(resp, token)
    return resp, token


def require_csrf():
    cookie_token = request.cookies.get(current_app.config.get("CSRF_COOKIE_NAME", "XSRF-TOKEN"))
    header_token = (
        request.headers.get(current_app.config.get("CSRF_HEADER_NAME", "X-XSRF-TOKEN"))
        or request.headers.get(ALT_CSRF_HEADER)
    )
    if not cookie_token or not header_token or not secrets.compare_digest(cookie_token, header_token):
        raise Forbidden("Invalid or missing CSRF token")
