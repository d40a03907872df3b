"""Revocable sessions carried by signed transport tokens.

A login creates a ``user_tokens`` row and hands the client a JWT that names
that row. The JWT on its own proves nothing: every request re-reads the row
and the owning user, so logout, logout-everywhere and account disabling take
effect immediately.
"""
import time
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from flask import current_app
from jose import JWTError, jwt

from repositories.records import SessionTokenRecord, UserRecord
from repositories.tokens import SessionTokenRepository
from repositories.users import UserRepository
from utils.logger import get_logger

logger = get_logger(__name__)

NO_TOKEN = "NO_TOKEN"
SIGNATURE_INVALID = "SIGNATURE_INVALID"
SESSION_REVOKED_OR_MISSING = "SESSION_REVOKED_OR_MISSING"
USER_DISABLED = "USER_DISABLED"
USER_VALID = "USER_VALID"


class Resolution(NamedTuple):
    state: str
    user: Optional[UserRecord] = None
    session: Optional[SessionTokenRecord] = None

    @property
    def ok(self) -> bool:
        return self.state == USER_VALID


class TokenStore:
    def __init__(
        self,
        tokens: SessionTokenRepository,
        users: UserRepository,
        secret: str,
        algorithm: str = "HS256",
        ttl_seconds: int = 24 * 60 * 60,
    ):
        self.tokens = tokens
        self.users = users
        self.secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds

    def issue(self, user: UserRecord, ip: str = None, user_agent: str = None) -> str:
        session = self.tokens.create(user.id, ip=ip, user_agent=user_agent)
        now = int(time.time())
        claims = {
            "sid": session.id,
            "sub": str(user.id),
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        logger.info("issued session %s for user %s", session.id, user.id)
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def revoke(self, session_token_id: str, requesting_user: UserRecord) -> bool:
        revoked = self.tokens.disable(session_token_id, requesting_user.id)
        if revoked:
            logger.info("revoked session %s for user %s", session_token_id, requesting_user.id)
        return revoked

    def revoke_all(self, user: UserRecord, keep: str = None) -> int:
        count = self.tokens.disable_all(user.id, keep=keep)
        logger.info("revoked %s sessions for user %s", count, user.id)
        return count

    def active_sessions(self, user: UserRecord) -> list:
        return self.tokens.list_active(user.id)

    def decode(self, transport_token: str) -> Optional[dict]:
        if not transport_token or not isinstance(transport_token, str):
            return None
        try:
            claims = jwt.decode(transport_token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            logger.info("rejected transport token: %s", type(exc).__name__)
            return None
        if not claims.get("sid") or not claims.get("sub"):
            return None
        return claims

    def inspect(self, transport_token: str) -> Resolution:
        """Walk the checks cheapest-first and report where the token stopped."""
        if not transport_token:
            return Resolution(NO_TOKEN)

        claims = self.decode(transport_token)
        if claims is None:
            return Resolution(SIGNATURE_INVALID)

        session = self.tokens.get(claims["sid"])
        if session is None or session.disabled or str(session.user_id) != str(claims["sub"]):
            return Resolution(SESSION_REVOKED_OR_MISSING)
        if session.created_at + timedelta(seconds=self.ttl_seconds) < datetime.utcnow():
            return Resolution(SESSION_REVOKED_OR_MISSING)

        user = self.users.get(session.user_id)
        if user is None:
            return Resolution(SESSION_REVOKED_OR_MISSING)
        if user.disabled:
            return Resolution(USER_DISABLED, user=user, session=session)

        return Resolution(USER_VALID, user=user, session=session)

    def resolve(self, transport_token: str):
        """Return ``(user, session)`` for a live token, otherwise None."""
        result = self.inspect(transport_token)
        if not result.ok:
            return None
        return result.user, result.session


def get_token_store() -> TokenStore:
    return current_app.extensions["token_store"]
