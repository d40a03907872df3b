from datetime import datetime
from typing import Optional

from models import db
from models.user import User, Role
from repositories.base import Repository
from repositories.records import UserRecord

UPDATABLE_FIELDS = {"name", "password_hash", "is_verified", "disabled", "password_changed_at"}


def _dump_user(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return UserRecord(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role.name if user.role else None,
        is_verified=user.is_verified,
        disabled=user.disabled,
        created_at=user.created_at,
    ).dump()


def _load_user(data: Optional[dict]) -> Optional[UserRecord]:
    return UserRecord.model_validate(data) if data else None


class UserRepository(Repository):
    model_name = "users"

    def get(self, user_id: int) -> Optional[UserRecord]:
        data = self._read("find_unique", {"id": user_id}, lambda: _dump_user(db.session.get(User, user_id)))
        return _load_user(data)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        email = (email or "").strip().lower()
        data = self._read(
            "find_unique",
            {"email": email},
            lambda: _dump_user(User.query.filter_by(email=email).first()),
        )
        return _load_user(data)

    def paginate(self, offset: int = 0, limit: int = 20) -> list:
        def load():
            rows = User.query.order_by(User.id.asc()).offset(offset).limit(limit).all()
            return [_dump_user(u) for u in rows]

        return [_load_user(d) for d in self._read("find_many", {"offset": offset, "limit": limit}, load)]

    def count(self) -> int:
        return self._read("count", {}, lambda: User.query.count())

    def get_password_hash(self, user_id: int) -> Optional[str]:
        # credentials never enter the cache
        user = db.session.get(User, user_id)
        return user.password_hash if user else None

    def create(self, name: str, email: str, password_hash: str, role_name: str = None) -> UserRecord:
        def execute():
            user = User(name=name, email=email.strip().lower(), password_hash=password_hash)
            if role_name:
                user.role = Role.query.filter_by(name=role_name).first()
            db.session.add(user)
            db.session.commit()
            return _load_user(_dump_user(user))

        return self._write("create", execute)

    def update(self, user_id: int, **fields) -> Optional[UserRecord]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {', '.join(sorted(unknown))}")

        def execute():
            user = db.session.get(User, user_id)
            if user is None:
                return None
            for name, value in fields.items():
                setattr(user, name, value)
            db.session.commit()
            return _load_user(_dump_user(user))

        return self._write("update", execute, record_id=user_id)

    def set_password(self, user_id: int, password_hash: str, enable: bool = False) -> Optional[UserRecord]:
        fields = {"password_hash": password_hash, "password_changed_at": datetime.utcnow()}
        if enable:
            fields["disabled"] = False
        return self.update(user_id, **fields)

    def lock_out(self, email: str, password_hash: str) -> Optional[UserRecord]:
        """Disable an enabled account and replace its password. Returns None if nothing changed."""
        user = self.find_by_email(email)
        if user is None or user.disabled:
            return None
        return self.update(user.id, disabled=True, password_hash=password_hash)

    def assign_role(self, user_id: int, role_name: str) -> Optional[UserRecord]:
        def execute():
            user = db.session.get(User, user_id)
            role = Role.query.filter_by(name=role_name).first()
            if user is None or role is None:
                return None
            user.role = role
            db.session.commit()
            return _load_user(_dump_user(user))

        return self._write("update", execute, record_id=user_id)


class RoleRepository(Repository):
    model_name = "roles"

    def ensure(self, names) -> int:
        """Create any missing roles; idempotent."""
        def execute():
            existing = {r.name for r in Role.query.all()}
            missing = [n for n in names if n not in existing]
            for name in missing:
                db.session.add(Role(name=name))
            db.session.commit()
            return len(missing)

        return self._write("create_many", execute)
