"""Human-enterable one-time codes.

Codes come from random bytes with look-alike glyphs swapped out (0/O, 1/I/l,
5/S) so they survive being read off an email and typed back in. Only the
bcrypt hash is ever stored.
"""
import secrets
from datetime import datetime, timedelta
from typing import NamedTuple

import bcrypt

_CONFUSABLES = str.maketrans({
    "0": "X",
    "O": "Y",
    "I": "Z",
    "l": "W",
    "1": "V",
    "5": "U",
    "S": "T",
})


class GeneratedCode(NamedTuple):
    code: str
    hashed_code: str
    expires_at: datetime


def replace_confusables(value: str) -> str:
    return value.translate(_CONFUSABLES)


def normalize_code(value: str) -> str:
    return (value or "").strip().upper()


def generate_code(length: int, ttl_minutes: int = 15, rounds: int = 10) -> GeneratedCode:
    expires_at = datetime.utcnow() + timedelta(minutes=ttl_minutes)
    raw = secrets.token_bytes(16).hex()
    code = replace_confusables(raw).upper()[:length]
    hashed = bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    return GeneratedCode(code=code, hashed_code=hashed, expires_at=expires_at)


def verify_code(submitted: str, hashed_code: str) -> bool:
    code = normalize_code(submitted)
    if not code or not hashed_code:
        return False
    try:
        return bcrypt.checkpw(code.encode("utf-8"), hashed_code.encode("utf-8"))
    except ValueError:
        return False
