from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.organization import Organization


class DuplicateSlugError(ValueError):
    """Raised by a store when an organization slug is already taken."""


class OrgRepo(Protocol):
    async def get_by_slug(self, slug: str) -> Organization | None: ...
    async def get_many(self, org_ids: list[UUID]) -> dict[UUID, Organization]: ...
    async def add(self, org: Organization) -> None: ...


class InMemoryOrgRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Organization] = {}
        self._by_slug: dict[str, Organization] = {}

    async def get_by_slug(self, slug: str) -> Organization | None:
        return self._by_slug.get(slug)

    async def get_many(self, org_ids: list[UUID]) -> dict[UUID, Organization]:
        return {oid: self._by_id[oid] for oid in org_ids if oid in self._by_id}

    async def add(self, org: Organization) -> None:
        if org.slug in self._by_slug:
            raise DuplicateSlugError(org.slug)
        self._by_id[org.id] = org
        self._by_slug[org.slug] = org
