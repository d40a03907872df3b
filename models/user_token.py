import uuid
from datetime import datetime
from models.db import db


def _uuid() -> str:
    return str(uuid.uuid4())


class UserToken(db.Model):
    """Server-side record for one login. Rows are disabled, never deleted."""
    __tablename__ = "user_tokens"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    disabled = db.Column(db.Boolean, default=False, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
