import uuid
from datetime import datetime
from models.db import db

PURPOSE_VERIFY_EMAIL = "VERIFY_EMAIL"
PURPOSE_PASSWORD_RESET = "PASSWORD_RESET"


class OneTimeCode(db.Model):
    __tablename__ = "one_time_codes"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    purpose = db.Column(db.String(32), nullable=False, default=PURPOSE_VERIFY_EMAIL)

    # bcrypt hash, the raw code only ever leaves by mail
    code_hash = db.Column(db.String(128), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    disabled = db.Column(db.Boolean, default=False, nullable=False)

    attempts = db.Column(db.Integer, default=0, nullable=False)
