import re
from typing import List, Tuple

from flask import current_app, has_app_context

# bcrypt ignores anything past 72 bytes
BCRYPT_MAX_BYTES = 72

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_REQUIRE_UPPER": True,
    "PASSWORD_REQUIRE_LOWER": True,
    "PASSWORD_REQUIRE_DIGIT": True,
    "PASSWORD_REQUIRE_SYMBOL": True,
}

_CHARACTER_RULES = (
    ("PASSWORD_REQUIRE_UPPER", re.compile(r"[A-Z]"), "uppercase letter"),
    ("PASSWORD_REQUIRE_LOWER", re.compile(r"[a-z]"), "lowercase letter"),
    ("PASSWORD_REQUIRE_DIGIT", re.compile(r"\d"), "number"),
    ("PASSWORD_REQUIRE_SYMBOL", re.compile(r"[^A-Za-z0-9]"), "symbol"),
)


def _cfg(name: str):
    if not has_app_context():
        return _DEFAULTS[name]
    return current_app.config.get(name, _DEFAULTS[name])


def validate_password(pw: str) -> Tuple[bool, List[str]]:
    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    errors: List[str] = []
    min_len = int(_cfg("PASSWORD_MIN_LEN"))
    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw.encode("utf-8")) > BCRYPT_MAX_BYTES:
        errors.append(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")

    for flag, pattern, label in _CHARACTER_RULES:
        if _cfg(flag) and not pattern.search(pw):
            errors.append(f"Password must include at least 1 {label}")

    return not errors, errors
