from typing import Optional

from models import db
from models.organization import Organization, OrganizationMember, VERIFICATION_PENDING, MEMBER_MEMBER
from repositories.base import Repository
from repositories.records import OrganizationRecord, MembershipRecord


def _dump_org(row: Optional[Organization]) -> Optional[dict]:
    if row is None:
        return None
    return OrganizationRecord(
        id=row.id,
        name=row.name,
        owner_id=row.owner_id,
        verification_status=row.verification_status,
        created_at=row.created_at,
    ).dump()


def _dump_member(row: Optional[OrganizationMember]) -> Optional[dict]:
    if row is None:
        return None
    return MembershipRecord(
        id=row.id,
        organization_id=row.organization_id,
        user_id=row.user_id,
        role=row.role,
    ).dump()


class OrganizationRepository(Repository):
    model_name = "organizations"

    def get(self, organization_id: int) -> Optional[OrganizationRecord]:
        data = self._read(
            "find_unique",
            {"id": organization_id},
            lambda: _dump_org(db.session.get(Organization, organization_id)),
        )
        return OrganizationRecord.model_validate(data) if data else None

    def create(self, name: str, owner_id: int, verification_status: str = VERIFICATION_PENDING) -> OrganizationRecord:
        def execute():
            row = Organization(name=name, owner_id=owner_id, verification_status=verification_status)
            db.session.add(row)
            db.session.commit()
            return OrganizationRecord.model_validate(_dump_org(row))

        return self._write("create", execute)

    def set_verification_status(self, organization_id: int, status: str) -> Optional[OrganizationRecord]:
        def execute():
            row = db.session.get(Organization, organization_id)
            if row is None:
                return None
            row.verification_status = status
            db.session.commit()
            return OrganizationRecord.model_validate(_dump_org(row))

        return self._write("update", execute, record_id=organization_id)


class OrganizationMemberRepository(Repository):
    model_name = "organization_members"

    def find_membership(self, organization_id: int, user_id: int) -> Optional[MembershipRecord]:
        data = self._read(
            "find_first",
            {"organization_id": organization_id, "user_id": user_id},
            lambda: _dump_member(
                OrganizationMember.query.filter_by(organization_id=organization_id, user_id=user_id).first()
            ),
        )
        return MembershipRecord.model_validate(data) if data else None

    def list_members(self, organization_id: int) -> list:
        def load():
            rows = (
                OrganizationMember.query
                .filter_by(organization_id=organization_id)
                .order_by(OrganizationMember.id.asc())
                .all()
            )
            return [_dump_member(r) for r in rows]

        return [MembershipRecord.model_validate(d) for d in self._read("find_many", {"organization_id": organization_id}, load)]

    def add(self, organization_id: int, user_id: int, role: str = MEMBER_MEMBER) -> MembershipRecord:
        def execute():
            row = OrganizationMember(organization_id=organization_id, user_id=user_id, role=role)
            db.session.add(row)
            db.session.commit()
            return MembershipRecord.model_validate(_dump_member(row))

        return self._write("create", execute)
