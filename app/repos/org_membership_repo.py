from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.organization import OrgMembership


class DuplicateMembershipError(ValueError):
    """Raised when (org_id, user_id) already has a membership row."""


class OrgMembershipRepo(Protocol):
    async def get(self, org_id: UUID, user_id: UUID) -> OrgMembership | None: ...
    async def add(self, membership: OrgMembership) -> None: ...
    async def list_by_org(self, org_id: UUID) -> list[OrgMembership]: ...
    async def list_by_user(self, user_id: UUID) -> list[OrgMembership]: ...


class InMemoryOrgMembershipRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], OrgMembership] = {}

    async def get(self, org_id: UUID, user_id: UUID) -> OrgMembership | None:
        return self._store.get((org_id, user_id))

    async def add(self, membership: OrgMembership) -> None:
        key = (membership.org_id, membership.user_id)
        if key in self._store:
            raise DuplicateMembershipError(
                f"user={membership.user_id} already in org={membership.org_id}"
            )
        self._store[key] = membership

    async def list_by_org(self, org_id: UUID) -> list[OrgMembership]:
        return [m for m in self._store.values() if m.org_id == org_id]

    async def list_by_user(self, user_id: UUID) -> list[OrgMembership]:
        return [m for m in self._store.values() if m.user_id == user_id]
