from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.models.organization import OrgRole


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.
    Endpoints receive this instead of a raw user id string.

    Platform-level fields (always set):
        user_id: subject from JWT
        roles: platform roles (admin, user)

    Tenant fields (set by resolve_tenant when the request carries x-org-id):
        org_id: organization the caller is acting on
        org_role: caller's role within that organization
    """

    user_id: str
    roles: frozenset[str]
    org_id: UUID | None = None
    org_role: OrgRole | None = None

    def has_any_org_role(self, roles: set[OrgRole]) -> bool:
        return self.org_role in roles

    @property
    def is_tenant_resolved(self) -> bool:
        return self.org_id is not None and self.org_role is not None
