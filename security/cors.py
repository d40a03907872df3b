"""Credentialed CORS restricted to the configured origin allow-list."""
import re

from flask_cors import CORS

from utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-XSRF-TOKEN", "X-CSRF-Token"]


def origin_patterns(allowed_origins) -> list:
    """Exact origins stay strings; entries with ``*`` become anchored patterns."""
    patterns = []
    for origin in allowed_origins:
        if "*" in origin:
            body = ".*".join(re.escape(part) for part in origin.split("*"))
            patterns.append(re.compile(f"^{body}$", re.IGNORECASE))
        else:
            patterns.append(origin)
    return patterns


def init_cors(app):
    origins = app.config.get("ALLOWED_ORIGINS") or []
    CORS(
        app,
        origins=origin_patterns(origins),
        supports_credentials=True,
        allow_headers=ALLOWED_HEADERS,
    )
    logger.info("CORS enabled for %s", ", ".join(origins) or "no origins")
