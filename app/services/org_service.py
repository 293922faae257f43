"""Organization lifecycle: creation, per-user listing, and slug lookup.

The service owns every write to the organization directory and the
membership store.  Routes translate the OrgError subclasses raised here
into HTTP responses.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from uuid import UUID

from app.core.metrics import ORGANIZATIONS_CREATED
from app.models.organization import (
    Organization,
    OrgMembership,
    OrgMembershipView,
    OrgRole,
)
from app.repos.org_repo import DuplicateSlugError
from app.repos.unit_of_work import OrgUnitOfWork

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
NAME_MIN_LENGTH = 3

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9 ]")
_SPACE_RUNS = re.compile(r"\s+")


class OrgError(Exception):
    pass


class OrgValidationError(OrgError, ValueError):
    pass


class OrgSlugTakenError(OrgError):
    pass


class OrgNotFoundError(OrgError):
    pass


def generate_slug(name: str) -> str:
    """Derive a URL slug from a display name.

    "Café São Paulo" -> "cafe-sao-paulo"
    """
    decomposed = unicodedata.normalize("NFD", name.lower())
    ascii_only = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = _NON_SLUG_CHARS.sub("", ascii_only).strip()
    return _SPACE_RUNS.sub("-", cleaned)


async def create_organization(
    uow: OrgUnitOfWork,
    *,
    name: str,
    owner_id: UUID,
    slug: str | None = None,
) -> Organization:
    name = name.strip()
    if len(name) < NAME_MIN_LENGTH:
        raise OrgValidationError(
            f"name must be at least {NAME_MIN_LENGTH} characters"
        )

    if slug is None:
        slug = generate_slug(name)
        if not slug:
            raise OrgValidationError(f"cannot derive a slug from name={name!r}")
    elif not SLUG_PATTERN.fullmatch(slug):
        raise OrgValidationError(
            "slug may only contain lowercase letters, digits and hyphens"
        )

    if await uow.orgs.get_by_slug(slug) is not None:
        logger.warning("Rejected duplicate slug=%s owner=%s", slug, owner_id)
        raise OrgSlugTakenError(slug)

    org = Organization.new(name=name, slug=slug, owner_id=owner_id)
    try:
        async with uow.atomic():
            await uow.orgs.add(org)
            await uow.members.add(
                OrgMembership.new(org_id=org.id, user_id=owner_id, role=OrgRole.OWNER)
            )
    except DuplicateSlugError:
        # Lost the race against a concurrent create with the same slug.
        logger.warning("Slug constraint rejected slug=%s owner=%s", slug, owner_id)
        raise OrgSlugTakenError(slug) from None

    ORGANIZATIONS_CREATED.inc()
    logger.info("Created org id=%s slug=%s owner=%s", org.id, org.slug, owner_id)
    return org


async def list_organizations_for_user(
    uow: OrgUnitOfWork, user_id: UUID
) -> list[OrgMembershipView]:
    memberships = await uow.members.list_by_user(user_id)
    orgs = await uow.orgs.get_many([m.org_id for m in memberships])

    views = []
    for m in memberships:
        org = orgs.get(m.org_id)
        if org is None:
            logger.error("Membership id=%s points at missing org=%s", m.id, m.org_id)
            continue
        views.append(OrgMembershipView(membership=m, organization=org))
    return views


async def get_organization_by_slug(uow: OrgUnitOfWork, slug: str) -> Organization:
    org = await uow.orgs.get_by_slug(slug)
    if org is None:
        raise OrgNotFoundError(slug)
    return org
