from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from app.models.organization import OrgMembership, OrgRole, OrgStatus
from app.repos.org_membership_repo import InMemoryOrgMembershipRepo
from app.repos.org_repo import InMemoryOrgRepo
from app.repos.unit_of_work import InMemoryOrgUnitOfWork
from app.services.org_service import (
    OrgNotFoundError,
    OrgSlugTakenError,
    OrgValidationError,
    create_organization,
    generate_slug,
    get_organization_by_slug,
    list_organizations_for_user,
)


class _FailingMembershipRepo(InMemoryOrgMembershipRepo):
    async def add(self, membership: OrgMembership) -> None:
        raise RuntimeError("membership store unavailable")


class _BlindSlugRepo(InMemoryOrgRepo):
    """Pre-check never sees existing slugs, as if a concurrent insert won."""

    async def get_by_slug(self, slug: str):
        return None


# ---- generate_slug ----


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Acme Corp", "acme-corp"),
        ("Café São Paulo", "cafe-sao-paulo"),
        ("  Hello,   World!  ", "hello-world"),
        ("R&D Team 42", "rd-team-42"),
        ("Already-hyphenated Name", "alreadyhyphenated-name"),
    ],
)
def test_generate_slug(name: str, expected: str) -> None:
    assert generate_slug(name) == expected


def test_generate_slug_empty_for_symbols_only() -> None:
    assert generate_slug("!!! ???") == ""


# ---- create_organization ----


def test_create_derives_slug_and_adds_owner_membership() -> None:
    uow = InMemoryOrgUnitOfWork()
    owner = uuid4()

    org = asyncio.run(create_organization(uow, name="Acme Corp", owner_id=owner))

    assert org.slug == "acme-corp"
    assert org.name == "Acme Corp"
    assert org.owner_id == owner
    assert org.status is OrgStatus.ACTIVE
    assert org.settings == {}

    membership = asyncio.run(uow.members.get(org.id, owner))
    assert membership is not None
    assert membership.role is OrgRole.OWNER


def test_create_uses_explicit_slug() -> None:
    uow = InMemoryOrgUnitOfWork()
    org = asyncio.run(
        create_organization(uow, name="Acme Corp", slug="acme", owner_id=uuid4())
    )
    assert org.slug == "acme"
    assert asyncio.run(uow.orgs.get_by_slug("acme")) == org


def test_create_strips_name() -> None:
    uow = InMemoryOrgUnitOfWork()
    org = asyncio.run(create_organization(uow, name="   Acme   ", owner_id=uuid4()))
    assert org.name == "Acme"


def test_create_rejects_short_name() -> None:
    uow = InMemoryOrgUnitOfWork()
    with pytest.raises(OrgValidationError):
        asyncio.run(create_organization(uow, name=" ab ", owner_id=uuid4()))
    assert uow.orgs._by_id == {}


@pytest.mark.parametrize(
    "slug", ["Acme", "acme_corp", "acme corp", "ácme", "", "acme\n", " acme"]
)
def test_create_rejects_invalid_slug(slug: str) -> None:
    uow = InMemoryOrgUnitOfWork()
    with pytest.raises(OrgValidationError):
        asyncio.run(
            create_organization(uow, name="Acme Corp", slug=slug, owner_id=uuid4())
        )


def test_create_rejects_name_without_slug_characters() -> None:
    uow = InMemoryOrgUnitOfWork()
    with pytest.raises(OrgValidationError):
        asyncio.run(create_organization(uow, name="!!! ???", owner_id=uuid4()))


def test_create_rejects_duplicate_slug() -> None:
    uow = InMemoryOrgUnitOfWork()
    first = asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))

    with pytest.raises(OrgSlugTakenError):
        asyncio.run(create_organization(uow, name="ACME corp", owner_id=uuid4()))

    assert list(uow.orgs._by_id) == [first.id]
    assert len(uow.members._store) == 1


def test_create_maps_storage_slug_conflict_to_taken() -> None:
    uow = InMemoryOrgUnitOfWork()
    uow.orgs = _BlindSlugRepo()
    asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))

    with pytest.raises(OrgSlugTakenError):
        asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))

    assert len(uow.orgs._by_id) == 1
    assert len(uow.members._store) == 1


def test_create_rolls_back_org_when_membership_write_fails() -> None:
    uow = InMemoryOrgUnitOfWork()
    uow.members = _FailingMembershipRepo()

    with pytest.raises(RuntimeError, match="membership store unavailable"):
        asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))

    assert uow.orgs._by_id == {}
    assert uow.orgs._by_slug == {}
    # The slug is free again.
    uow.members = InMemoryOrgMembershipRepo()
    org = asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))
    assert org.slug == "acme-corp"


# ---- list_organizations_for_user ----


def test_list_returns_memberships_with_organizations() -> None:
    uow = InMemoryOrgUnitOfWork()
    user = uuid4()
    owned = asyncio.run(create_organization(uow, name="First Org", owner_id=user))
    other = asyncio.run(create_organization(uow, name="Second Org", owner_id=uuid4()))
    asyncio.run(
        uow.members.add(
            OrgMembership.new(org_id=other.id, user_id=user, role=OrgRole.ADMIN)
        )
    )

    views = asyncio.run(list_organizations_for_user(uow, user))

    assert [(v.organization.slug, v.membership.role) for v in views] == [
        ("first-org", OrgRole.OWNER),
        ("second-org", OrgRole.ADMIN),
    ]
    assert views[0].organization == owned
    assert all(v.membership.user_id == user for v in views)


def test_list_is_empty_for_user_without_memberships() -> None:
    uow = InMemoryOrgUnitOfWork()
    asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))
    assert asyncio.run(list_organizations_for_user(uow, uuid4())) == []


def test_list_skips_membership_with_missing_org() -> None:
    uow = InMemoryOrgUnitOfWork()
    user = uuid4()
    asyncio.run(uow.members.add(OrgMembership.new(org_id=uuid4(), user_id=user)))
    org = asyncio.run(create_organization(uow, name="Acme Corp", owner_id=user))

    views = asyncio.run(list_organizations_for_user(uow, user))

    assert [v.organization.id for v in views] == [org.id]


# ---- get_organization_by_slug ----


def test_get_by_slug_returns_org() -> None:
    uow = InMemoryOrgUnitOfWork()
    org = asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))
    assert asyncio.run(get_organization_by_slug(uow, "acme-corp")) == org


def test_get_by_slug_is_exact_match() -> None:
    uow = InMemoryOrgUnitOfWork()
    asyncio.run(create_organization(uow, name="Acme Corp", owner_id=uuid4()))
    with pytest.raises(OrgNotFoundError):
        asyncio.run(get_organization_by_slug(uow, "ACME-CORP"))


def test_get_by_slug_raises_when_missing() -> None:
    uow = InMemoryOrgUnitOfWork()
    with pytest.raises(OrgNotFoundError):
        asyncio.run(get_organization_by_slug(uow, "nope"))
