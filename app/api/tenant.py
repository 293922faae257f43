"""Tenant-scoped endpoints.

Every route here depends on require_tenant, so the caller must send an
``x-org-id`` header naming an organization they belong to.  Handlers get
the resolved organization and role from the Principal they receive.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.api.dependencies import get_org_uow, require_tenant, require_tenant_role
from app.models.organization import OrgRole
from app.models.principal import Principal
from app.repos.unit_of_work import OrgUnitOfWork

router = APIRouter(prefix="/tenant", tags=["tenant"])

_require_owner_or_admin = require_tenant_role({OrgRole.OWNER, OrgRole.ADMIN})


def _org_id(principal: Principal) -> UUID:
    """Return the resolved org id, or 500 if the guard did not run."""
    if not principal.is_tenant_resolved or principal.org_id is None:
        raise HTTPException(status_code=500, detail="org context not resolved")
    return principal.org_id


class TenantContextOut(BaseModel):
    organization_id: str
    user_id: str
    role: OrgRole


class MemberOut(BaseModel):
    id: str
    user_id: str
    role: OrgRole
    created_at: datetime


@router.get("/context", response_model=TenantContextOut)
async def tenant_context(
    principal: Annotated[Principal, Depends(require_tenant)],
) -> TenantContextOut:
    """The organization and role the guard resolved for this request."""
    return TenantContextOut(
        organization_id=str(_org_id(principal)),
        user_id=principal.user_id,
        role=principal.org_role,  # type: ignore[arg-type]
    )


@router.get("/members", response_model=list[MemberOut])
async def list_members(
    principal: Annotated[Principal, Depends(_require_owner_or_admin)],
    uow: Annotated[OrgUnitOfWork, Depends(get_org_uow)],
) -> list[MemberOut]:
    """List members of the current organization. OWNER or ADMIN only."""
    members = await uow.members.list_by_org(_org_id(principal))
    return [
        MemberOut(
            id=str(m.id),
            user_id=str(m.user_id),
            role=m.role,
            created_at=m.created_at,
        )
        for m in members
    ]
