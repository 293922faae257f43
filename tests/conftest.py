from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import org_store, user_store
from app.main import app
from app.models.organization import Organization, OrgMembership, OrgRole
from app.services import token_service


@pytest.fixture(autouse=True)
def reset_org_state() -> None:
    """Clear org and membership stores between tests."""
    org_store.clear()


@pytest.fixture(autouse=True)
def reset_user_state() -> None:
    user_store._by_email.clear()
    user_store._by_id.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth_headers(user_id: UUID, org_id: UUID | str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {mint_token(username=str(user_id))}"}
    if org_id is not None:
        headers["x-org-id"] = str(org_id)
    return headers


# ---------------------------------------------------------------------------
# Org test helpers
# ---------------------------------------------------------------------------


def create_test_org(
    slug: str = "test-org", owner_id: UUID | None = None
) -> Organization:
    """Create and persist an org in the in-memory store, without members."""
    org = Organization.new(
        name=slug.replace("-", " ").title(),
        slug=slug,
        owner_id=owner_id or uuid4(),
    )
    asyncio.run(org_store.orgs.add(org))
    return org


def add_test_member(
    org_id: UUID, user_id: UUID, role: OrgRole = OrgRole.MEMBER
) -> OrgMembership:
    """Add a membership to the in-memory store."""
    m = OrgMembership.new(org_id=org_id, user_id=user_id, role=role)
    asyncio.run(org_store.members.add(m))
    return m
