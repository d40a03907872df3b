from datetime import datetime
from models.db import db


class AuditLog(db.Model):
    """Append-only security events (logins, lockouts, revocations, resets)."""
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_action_created_at", "action", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(80), nullable=False)

    # actor; empty for anonymous events such as a failed login
    user_id = db.Column(db.Integer, nullable=True, index=True)
    entity = db.Column(db.String(80), nullable=True)
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
