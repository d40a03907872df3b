import secrets

import bcrypt
from flask import current_app


def _rounds() -> int:
    return int(current_app.config.get("PASSWORD_HASH_ROUNDS", 12))


def hash_password(plain_password: str, rounds: int = None) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    # bcrypt expects bytes
    salt = bcrypt.gensalt(rounds=rounds or _rounds())
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8")
        )
    except ValueError:
        return False


def unguessable_password_hash() -> str:
    """Hash of a random secret nobody knows; only a password reset gets the account back."""
    return hash_password(secrets.token_hex(32))
