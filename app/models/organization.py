from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4


class OrgRole(StrEnum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    GUEST = "GUEST"


class OrgStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    slug: str  # immutable once assigned
    owner_id: UUID
    status: OrgStatus = OrgStatus.ACTIVE
    settings: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @staticmethod
    def new(*, name: str, slug: str, owner_id: UUID) -> Organization:
        now = _now()
        return Organization(
            id=uuid4(),
            name=name,
            slug=slug,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class OrgMembership:
    id: UUID
    org_id: UUID
    user_id: UUID
    role: OrgRole = OrgRole.MEMBER
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @staticmethod
    def new(
        *, org_id: UUID, user_id: UUID, role: OrgRole = OrgRole.MEMBER
    ) -> OrgMembership:
        now = _now()
        return OrgMembership(
            id=uuid4(),
            org_id=org_id,
            user_id=user_id,
            role=role,
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class OrgMembershipView:
    """A membership together with the organization it points at."""

    membership: OrgMembership
    organization: Organization
