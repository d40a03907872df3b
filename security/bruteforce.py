"""Failed-login counter per (client ip, submitted email).

Once an (ip, email) pair has used up ``LOGIN_THRESHOLD`` failures inside the
window, the next attempt locks the account: it is disabled, its password is
replaced with a random one and every session is revoked. Only the password
reset flow brings it back.
"""
from datetime import datetime, timedelta
from flask import current_app

from models import db
from models.throttle import LoginAttempt
from repositories import get_repositories
from security.password import unguessable_password_hash
from security.rate_limit import client_ip
from security.tokens import get_token_store
from utils.logger import get_logger

logger = get_logger(__name__)


def _window() -> timedelta:
    return timedelta(seconds=current_app.config.get("LOGIN_WINDOW_SECONDS", 24 * 60 * 60))


def _current_row(email: str):
    row = LoginAttempt.query.filter_by(email=email, ip=client_ip()).first()
    if row and row.window_expired(_window()):
        row.restart()
        db.session.commit()
    return row


def is_blocked(email: str) -> bool:
    row = _current_row(email)
    if not row:
        return False
    return row.fail_count >= current_app.config.get("LOGIN_THRESHOLD", 10)


def register_failure(email: str) -> int:
    """
    Increments failure counter. Returns fail_count
    """
    now = datetime.utcnow()
    row = _current_row(email)
    if not row:
        row = LoginAttempt(email=email, ip=client_ip(), fail_count=0, window_start=now)
        db.session.add(row)

    row.fail_count += 1
    row.last_fail_at = now
    db.session.commit()
    return row.fail_count


def reset_attempts(email: str):
    """
    Clears failure counter after successful login.
    """
    row = LoginAttempt.query.filter_by(email=email, ip=client_ip()).first()
    if not row:
        return
    row.restart()
    db.session.commit()


def clear_all_attempts(email: str) -> int:
    """Forget failures from every ip, used once the owner proved control via reset."""
    count = LoginAttempt.query.filter_by(email=email).delete(synchronize_session=False)
    db.session.commit()
    return count


def lock_account(email: str) -> bool:
    """Disable the account behind ``email``. Returns True if it was enabled before."""
    repos = get_repositories()
    user = repos.users.lock_out(email, unguessable_password_hash())
    if user is None:
        return False
    revoked = get_token_store().revoke_all(user)
    logger.warning("account %s locked after repeated failed logins (%s sessions revoked)", user.id, revoked)
    return True
