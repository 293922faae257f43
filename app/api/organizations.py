"""Organization endpoints.

POST /organizations            create; the caller becomes OWNER
GET  /organizations/my-orgs    caller's memberships with the org expanded
GET  /organizations/{slug}     resolve a slug to its organization

Domain errors from org_service (duplicate slug, unknown slug) are
reported as 400.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, StringConstraints

from app.api.dependencies import get_org_uow, principal_user_uuid, require_user
from app.models.organization import (
    Organization,
    OrgMembershipView,
    OrgRole,
    OrgStatus,
)
from app.models.principal import Principal
from app.repos.unit_of_work import OrgUnitOfWork
from app.services import org_service
from app.services.org_service import (
    NAME_MIN_LENGTH,
    SLUG_PATTERN,
    OrgNotFoundError,
    OrgSlugTakenError,
    OrgValidationError,
)

router = APIRouter(prefix="/organizations", tags=["organizations"])


# --- Pydantic schemas ---


class OrgCreateIn(BaseModel):
    # Only the name is trimmed; a slug with surrounding whitespace is invalid.
    name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=NAME_MIN_LENGTH)
    ]
    slug: str | None = Field(default=None, pattern=SLUG_PATTERN.pattern)


class OrgOut(BaseModel):
    id: str
    name: str
    slug: str
    owner_id: str
    status: OrgStatus
    settings: dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_org(cls, org: Organization) -> OrgOut:
        return cls(
            id=str(org.id),
            name=org.name,
            slug=org.slug,
            owner_id=str(org.owner_id),
            status=org.status,
            settings=dict(org.settings),
            created_at=org.created_at,
            updated_at=org.updated_at,
        )


class OrgSummaryOut(BaseModel):
    id: str
    name: str
    slug: str
    owner_id: str
    status: OrgStatus
    created_at: datetime


class MembershipOut(BaseModel):
    id: str
    org_id: str
    user_id: str
    role: OrgRole
    created_at: datetime
    organization: OrgSummaryOut

    @classmethod
    def from_view(cls, view: OrgMembershipView) -> MembershipOut:
        m, org = view.membership, view.organization
        return cls(
            id=str(m.id),
            org_id=str(m.org_id),
            user_id=str(m.user_id),
            role=m.role,
            created_at=m.created_at,
            organization=OrgSummaryOut(
                id=str(org.id),
                name=org.name,
                slug=org.slug,
                owner_id=str(org.owner_id),
                status=org.status,
                created_at=org.created_at,
            ),
        )


# --- Endpoints ---


@router.post("", response_model=OrgOut, status_code=status.HTTP_201_CREATED)
async def create_org(
    body: OrgCreateIn,
    principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[OrgUnitOfWork, Depends(get_org_uow)],
) -> OrgOut:
    """Create a new organization. The creator becomes the owner."""
    owner_id = principal_user_uuid(principal)
    try:
        org = await org_service.create_organization(
            uow, name=body.name, slug=body.slug, owner_id=owner_id
        )
    except OrgSlugTakenError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="slug already taken",
        ) from None
    except OrgValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from None
    return OrgOut.from_org(org)


@router.get("/my-orgs", response_model=list[MembershipOut])
async def my_orgs(
    principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[OrgUnitOfWork, Depends(get_org_uow)],
) -> list[MembershipOut]:
    """Every membership of the caller, each with its organization."""
    user_id = principal_user_uuid(principal)
    views = await org_service.list_organizations_for_user(uow, user_id)
    return [MembershipOut.from_view(v) for v in views]


@router.get("/{slug}", response_model=OrgOut)
async def get_org_by_slug(
    slug: str,
    _principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[OrgUnitOfWork, Depends(get_org_uow)],
) -> OrgOut:
    try:
        org = await org_service.get_organization_by_slug(uow, slug)
    except OrgNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="organization not found",
        ) from None
    return OrgOut.from_org(org)
