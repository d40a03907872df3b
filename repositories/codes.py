from datetime import datetime
from typing import Optional

from models import db
from models.one_time_code import OneTimeCode
from repositories.base import Repository
from repositories.records import OneTimeCodeRecord


def _dump(row: Optional[OneTimeCode]) -> Optional[dict]:
    if row is None:
        return None
    return OneTimeCodeRecord(
        id=row.id,
        user_id=row.user_id,
        purpose=row.purpose,
        code_hash=row.code_hash,
        expires_at=row.expires_at,
        disabled=row.disabled,
        attempts=row.attempts,
        created_at=row.created_at,
    ).dump()


def _load(data: Optional[dict]) -> Optional[OneTimeCodeRecord]:
    return OneTimeCodeRecord.model_validate(data) if data else None


class OneTimeCodeRepository(Repository):
    model_name = "one_time_codes"

    def create(self, user_id: int, purpose: str, code_hash: str, expires_at: datetime) -> OneTimeCodeRecord:
        def execute():
            row = OneTimeCode(user_id=user_id, purpose=purpose, code_hash=code_hash, expires_at=expires_at)
            db.session.add(row)
            db.session.commit()
            return _load(_dump(row))

        return self._write("create", execute)

    def get(self, code_id: str) -> Optional[OneTimeCodeRecord]:
        return _load(self._read("find_unique", {"id": code_id}, lambda: _dump(db.session.get(OneTimeCode, code_id))))

    def disable_for_user(self, user_id: int, purpose: str) -> int:
        def execute():
            count = (
                OneTimeCode.query
                .filter_by(user_id=user_id, purpose=purpose, disabled=False)
                .update({"disabled": True}, synchronize_session=False)
            )
            db.session.commit()
            return count

        return self._write("update_many", execute)

    def record_failed_attempt(self, code_id: str, max_attempts: int) -> Optional[OneTimeCodeRecord]:
        def execute():
            row = db.session.get(OneTimeCode, code_id)
            if row is None:
                return None
            row.attempts += 1
            if row.attempts >= max_attempts:
                row.disabled = True
            db.session.commit()
            return _load(_dump(row))

        return self._write("update", execute, record_id=code_id)

    def consume(self, code_id: str) -> bool:
        """Disable one still-enabled code; False if another request got there first."""
        def execute():
            count = (
                OneTimeCode.query
                .filter_by(id=code_id, disabled=False)
                .update({"disabled": True}, synchronize_session=False)
            )
            db.session.commit()
            return count == 1

        return self._write("update", execute, record_id=code_id)
