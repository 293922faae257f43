"""PostgreSQL implementation of OrgMembershipRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import OrgMembershipRow
from app.models.organization import OrgMembership, OrgRole
from app.repos.org_membership_repo import DuplicateMembershipError


class PgOrgMembershipRepo:
    """Satisfies the OrgMembershipRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, org_id: UUID, user_id: UUID) -> OrgMembership | None:
        stmt = select(OrgMembershipRow).where(
            OrgMembershipRow.org_id == org_id,
            OrgMembershipRow.user_id == user_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_membership(row)

    async def add(self, membership: OrgMembership) -> None:
        row = OrgMembershipRow(
            id=membership.id,
            org_id=membership.org_id,
            user_id=membership.user_id,
            role=membership.role.value,
            created_at=membership.created_at,
            updated_at=membership.updated_at,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            if "uq_organization_members_org_user" in str(e.orig):
                raise DuplicateMembershipError(
                    f"user={membership.user_id} already in org={membership.org_id}"
                ) from e
            raise

    async def list_by_org(self, org_id: UUID) -> list[OrgMembership]:
        stmt = (
            select(OrgMembershipRow)
            .where(OrgMembershipRow.org_id == org_id)
            .order_by(OrgMembershipRow.created_at, OrgMembershipRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_membership(r) for r in rows]

    async def list_by_user(self, user_id: UUID) -> list[OrgMembership]:
        stmt = (
            select(OrgMembershipRow)
            .where(OrgMembershipRow.user_id == user_id)
            .order_by(OrgMembershipRow.created_at, OrgMembershipRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_membership(r) for r in rows]


def _row_to_membership(row: OrgMembershipRow) -> OrgMembership:
    return OrgMembership(
        id=row.id,
        org_id=row.org_id,
        user_id=row.user_id,
        role=OrgRole(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
