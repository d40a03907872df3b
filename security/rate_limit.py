from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.throttle import RequestWindow
from utils.errors import RateLimited
from utils.logger import get_logger

logger = get_logger(__name__)

SCOPE_LOGIN = "login"
SCOPE_API = "api"


def client_ip() -> str:
    # proxy headers are only honoured through ProxyFix (TRUSTED_PROXY_COUNT)
    return request.remote_addr or "unknown"


def _count_request(scope: str, limit: int, window: timedelta, message: str):
    ip = client_ip()
    now = datetime.utcnow()

    bucket = RequestWindow.query.filter_by(scope=scope, ip=ip).first()
    if bucket is None:
        bucket = RequestWindow(scope=scope, ip=ip, window_start=now, request_count=0)
        db.session.add(bucket)
    elif bucket.window_expired(window, now):
        bucket.window_start = now
        bucket.request_count = 0

    bucket.request_count += 1
    db.session.commit()

    if bucket.request_count > limit:
        retry_after = max(int((bucket.window_start + window - now).total_seconds()), 1)
        logger.info("%s throttled for %s (%s requests)", scope, ip, bucket.request_count)
        raise RateLimited(message, retry_after=retry_after)


def throttle_login_requests():
    """Count this login request against the client's window; raises RateLimited once over the limit."""
    cfg = current_app.config
    _count_request(
        SCOPE_LOGIN,
        cfg.get("LOGIN_RATE_MAX_REQUESTS", 15),
        timedelta(seconds=cfg.get("LOGIN_RATE_WINDOW_SECONDS", 60)),
        "Too many login requests. Slow down.",
    )


def throttle_api_requests():
    cfg = current_app.config
    _count_request(
        SCOPE_API,
        cfg.get("API_RATE_MAX_REQUESTS", 15),
        timedelta(seconds=cfg.get("API_RATE_WINDOW_SECONDS", 60)),
        "Too many requests, please try again later.",
    )
