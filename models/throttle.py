"""Counters behind login throttling and account lockout."""
from datetime import datetime, timedelta

from models.db import db


class _FixedWindow:
    def window_expired(self, window: timedelta, now: datetime = None) -> bool:
        return self.window_start + window <= (now or datetime.utcnow())


class LoginAttempt(_FixedWindow, db.Model):
    """Failed logins for one (email, client ip) pair in the current window."""
    __tablename__ = "login_attempts"
    __table_args__ = (
        db.Index("ix_login_attempts_email_ip", "email", "ip"),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    ip = db.Column(db.String(64), nullable=False)

    fail_count = db.Column(db.Integer, default=0, nullable=False)
    window_start = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_fail_at = db.Column(db.DateTime, nullable=True)

    def restart(self, now: datetime = None):
        self.fail_count = 0
        self.window_start = now or datetime.utcnow()
        self.last_fail_at = None


class RequestWindow(_FixedWindow, db.Model):
    """Requests seen from one client ip for one throttle scope (login, api)."""
    __tablename__ = "request_windows"
    __table_args__ = (
        db.UniqueConstraint("scope", "ip", name="uq_request_window_scope_ip"),
    )

    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(20), nullable=False)
    ip = db.Column(db.String(64), nullable=False)

    window_start = db.Column(db.DateTime, nullable=False)
    request_count = db.Column(db.Integer, default=0, nullable=False)
