"""PostgreSQL implementation of OrgRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import OrganizationRow
from app.models.organization import Organization, OrgStatus
from app.repos.org_repo import DuplicateSlugError

SLUG_CONSTRAINT = "organizations_slug_key"


class PgOrgRepo:
    """Satisfies the OrgRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_slug(self, slug: str) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.slug == slug)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_org(row)

    async def get_many(self, org_ids: list[UUID]) -> dict[UUID, Organization]:
        if not org_ids:
            return {}
        stmt = select(OrganizationRow).where(OrganizationRow.id.in_(org_ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.id: _row_to_org(row) for row in rows}

    async def add(self, org: Organization) -> None:
        row = OrganizationRow(
            id=org.id,
            name=org.name,
            slug=org.slug,
            owner_id=org.owner_id,
            status=org.status.value,
            settings=dict(org.settings),
            created_at=org.created_at,
            updated_at=org.updated_at,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            # Only the slug unique constraint maps to a domain conflict;
            # FK violations (unknown owner) propagate unchanged.
            if SLUG_CONSTRAINT in str(e.orig):
                raise DuplicateSlugError(org.slug) from e
            raise


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        slug=row.slug,
        owner_id=row.owner_id,
        status=OrgStatus(row.status),
        settings=dict(row.settings or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
