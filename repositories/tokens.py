from typing import Optional

from models import db
from models.user_token import UserToken
from repositories.base import Repository
from repositories.records import SessionTokenRecord


def _dump(row: Optional[UserToken]) -> Optional[dict]:
    if row is None:
        return None
    return SessionTokenRecord(
        id=row.id,
        user_id=row.user_id,
        disabled=row.disabled,
        created_at=row.created_at,
        ip=row.ip,
        user_agent=row.user_agent,
    ).dump()


def _load(data: Optional[dict]) -> Optional[SessionTokenRecord]:
    return SessionTokenRecord.model_validate(data) if data else None


class SessionTokenRepository(Repository):
    model_name = "user_tokens"

    def create(self, user_id: int, ip: str = None, user_agent: str = None) -> SessionTokenRecord:
        def execute():
            row = UserToken(
                user_id=user_id,
                disabled=False,
                ip=ip,
                user_agent=(user_agent or "")[:255] or None,
            )
            db.session.add(row)
            db.session.commit()
            return _load(_dump(row))

        return self._write("create", execute)

    def get(self, token_id: str) -> Optional[SessionTokenRecord]:
        return _load(self._read("find_unique", {"id": token_id}, lambda: _dump(db.session.get(UserToken, token_id))))

    def list_active(self, user_id: int) -> list:
        def load():
            rows = (
                UserToken.query
                .filter_by(user_id=user_id, disabled=False)
                .order_by(UserToken.created_at.desc())
                .all()
            )
            return [_dump(r) for r in rows]

        return [_load(d) for d in self._read("find_many", {"user_id": user_id, "disabled": False}, load)]

    def disable(self, token_id: str, user_id: int) -> bool:
        """Disable one enabled token owned by ``user_id``."""
        def execute():
            count = (
                UserToken.query
                .filter_by(id=token_id, user_id=user_id, disabled=False)
                .update({"disabled": True}, synchronize_session=False)
            )
            db.session.commit()
            return count > 0

        return self._write("update", execute, record_id=token_id)

    def disable_all(self, user_id: int, keep: str = None) -> int:
        def execute():
            q = UserToken.query.filter_by(user_id=user_id, disabled=False)
            if keep:
                q = q.filter(UserToken.id != keep)
            count = q.update({"disabled": True}, synchronize_session=False)
            db.session.commit()
            return count

        return self._write("update_many", execute)
