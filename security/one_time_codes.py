from datetime import datetime

from flask import current_app

from models.one_time_code import PURPOSE_VERIFY_EMAIL, PURPOSE_PASSWORD_RESET
from repositories import get_repositories
from repositories.records import OneTimeCodeRecord, UserRecord
from security.codes import generate_code, verify_code
from utils.errors import NotFound
from utils.logger import get_logger

logger = get_logger(__name__)

INVALID_CODE_MESSAGES = {
    PURPOSE_VERIFY_EMAIL: "Invalid or expired verification code",
    PURPOSE_PASSWORD_RESET: "Password reset token is invalid or expired",
}


def _settings(purpose: str) -> tuple:
    cfg = current_app.config
    if purpose == PURPOSE_PASSWORD_RESET:
        return cfg.get("PASSWORD_RESET_CODE_LENGTH", 8), cfg.get("PASSWORD_RESET_TTL_MINUTES", 120)
    return cfg.get("VERIFICATION_CODE_LENGTH", 6), cfg.get("VERIFICATION_CODE_TTL_MINUTES", 15)


def _is_active(record: OneTimeCodeRecord, purpose: str) -> bool:
    return (
        record is not None
        and record.purpose == purpose
        and not record.disabled
        and record.expires_at >= datetime.utcnow()
    )


def issue(user: UserRecord, purpose: str) -> tuple:
    """Disable outstanding codes for (user, purpose) and create a fresh one.

    Returns ``(record, raw_code)``; the raw code is meant for the mailer only.
    """
    repos = get_repositories()
    length, ttl_minutes = _settings(purpose)

    disabled = repos.codes.disable_for_user(user.id, purpose)
    generated = generate_code(length, ttl_minutes, rounds=current_app.config.get("CODE_HASH_ROUNDS", 10))
    record = repos.codes.create(user.id, purpose, generated.hashed_code, generated.expires_at)

    logger.info("issued %s code %s for user %s (disabled %s prior)", purpose, record.id, user.id, disabled)
    return record, generated.code


def peek(code_id: str, purpose: str) -> OneTimeCodeRecord:
    record = get_repositories().codes.get(code_id)
    if not _is_active(record, purpose):
        raise NotFound(INVALID_CODE_MESSAGES[purpose])
    return record


def redeem(code_id: str, submitted: str, purpose: str) -> OneTimeCodeRecord:
    """Check ``submitted`` against the code and consume it on success."""
    repos = get_repositories()
    record = peek(code_id, purpose)

    if not verify_code(submitted, record.code_hash):
        max_attempts = current_app.config.get("OTP_MAX_ATTEMPTS", 5)
        updated = repos.codes.record_failed_attempt(record.id, max_attempts)
        if updated is not None and updated.disabled:
            logger.info("%s code %s disabled after %s failed attempts", purpose, record.id, updated.attempts)
        raise NotFound(INVALID_CODE_MESSAGES[purpose])

    # exactly one concurrent redeem may win the enabled -> disabled flip
    if not repos.codes.consume(record.id):
        raise NotFound(INVALID_CODE_MESSAGES[purpose])

    # single use: nothing of this purpose stays valid for the user
    repos.codes.disable_for_user(record.user_id, purpose)
    return record
