"""Plain records returned by repositories.

Records are what crosses the cache boundary: they are dumped to JSON on the
way in and validated back on the way out, so handlers never hold ORM rows
that could be stale or detached.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    def dump(self) -> dict:
        return self.model_dump(mode="json")


class UserRecord(Record):
    id: int
    name: str
    email: str
    role: Optional[str] = None
    is_verified: bool = False
    disabled: bool = False
    created_at: datetime

    def has_role(self, *names: str) -> bool:
        if not self.role:
            return False
        return self.role.lower() in {n.lower() for n in names}

    @property
    def is_admin(self) -> bool:
        return self.has_role("Admin")

    def public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isVerified": self.is_verified,
            "disabled": self.disabled,
            "createdAt": self.created_at.isoformat(),
        }


class SessionTokenRecord(Record):
    id: str
    user_id: int
    disabled: bool
    created_at: datetime
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    def public(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "ip": self.ip,
            "userAgent": self.user_agent,
        }


class OneTimeCodeRecord(Record):
    id: str
    user_id: int
    purpose: str
    code_hash: str
    expires_at: datetime
    disabled: bool
    attempts: int
    created_at: datetime


class OrganizationRecord(Record):
    id: int
    name: str
    owner_id: int
    verification_status: str
    created_at: datetime

    def public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "ownerId": self.owner_id,
            "verificationStatus": self.verification_status,
            "createdAt": self.created_at.isoformat(),
        }


class MembershipRecord(Record):
    id: int
    organization_id: int
    user_id: int
    role: str

    def public(self) -> dict:
        return {"userId": self.user_id, "role": self.role}
