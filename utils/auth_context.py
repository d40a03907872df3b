from functools import wraps
from flask import g, request, current_app

from security.tokens import (
    get_token_store,
    NO_TOKEN,
    SIGNATURE_INVALID,
    SESSION_REVOKED_OR_MISSING,
    USER_DISABLED,
    USER_VALID,
)
from utils.errors import Forbidden, Unauthorized
from utils.logger import get_logger

logger = get_logger(__name__)

TRANSPORT_COOKIE = "cookie"
TRANSPORT_BEARER = "bearer"

FAILED_STATES = {SIGNATURE_INVALID, SESSION_REVOKED_OR_MISSING, USER_DISABLED}


def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "accessToken")


def read_transport_token():
    """Returns (token, transport). The cookie wins over the header for browser flows."""
    token = request.cookies.get(_cookie_name())
    if token:
        return token, TRANSPORT_COOKIE

    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip(), TRANSPORT_BEARER

    return None, None


def load_current_user():
    token, transport = read_transport_token()
    result = get_token_store().inspect(token)

    g.auth_state = result.state
    g.auth_transport = transport
    g.user = result.user if result.state == USER_VALID else None
    g.session = result.session if result.state == USER_VALID else None

    if result.state in FAILED_STATES:
        logger.info("authentication failed (%s) via %s", result.state, transport)


def require_user():
    """Current user, or the error matching why there is none."""
    user = getattr(g, "user", None)
    if user is not None:
        return user

    state = getattr(g, "auth_state", NO_TOKEN)
    if state == USER_DISABLED:
        raise Forbidden("Your account is disabled. Please reset your password or contact an administrator.")
    raise Unauthorized()


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        require_user()
        return fn(*args, **kwargs)
    return wrapper


def set_auth_cookie(resp, token: str):
    g.auth_cookie_issued = True
    resp.set_cookie(
        _cookie_name(),
        token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("ACCESS_TOKEN_TTL_SECONDS", 24 * 60 * 60),
        path="/",
    )
    return resp


def clear_auth_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp


def clear_cookie_after_failed_auth(resp):
    # the view already replaced the cookie (login, register)
    if getattr(g, "auth_cookie_issued", False):
        return resp
    # a known-bad cookie would otherwise be replayed on every request
    if getattr(g, "auth_state", None) in FAILED_STATES and getattr(g, "auth_transport", None) == TRANSPORT_COOKIE:
        clear_auth_cookie(resp)
    return resp
