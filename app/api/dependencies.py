from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from dataclasses import replace
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.metrics import TENANT_GUARD_DECISIONS
from app.db.engine import async_session_factory, session_scope
from app.middleware.request_context import org_id_var
from app.models.organization import OrgRole
from app.models.principal import Principal
from app.repos.org_membership_repo import OrgMembershipRepo
from app.repos.pg_user_repo import PgUserRepo
from app.repos.unit_of_work import (
    InMemoryOrgUnitOfWork,
    OrgUnitOfWork,
    PgOrgUnitOfWork,
)
from app.repos.user_repo import InMemoryUserRepo, UserRepo
from app.services import token_service

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# ---------------------------------------------------------------------------
# Storage providers
# ---------------------------------------------------------------------------
# Without DATABASE_URL every request shares these in-memory singletons.
# With it, each request gets its own session (commit on success, rollback
# on error) and repos bound to that session.

org_store = InMemoryOrgUnitOfWork()
user_store = InMemoryUserRepo()


async def get_org_uow() -> AsyncGenerator[OrgUnitOfWork, None]:
    if async_session_factory is None:
        yield org_store
        return
    async with session_scope() as session:
        yield PgOrgUnitOfWork(session)


async def get_user_repo() -> AsyncGenerator[UserRepo, None]:
    if async_session_factory is None:
        yield user_store
        return
    async with session_scope() as session:
        yield PgUserRepo(session)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def principal_user_uuid(principal: Principal) -> UUID:
    """Parse the token subject as a user UUID, or 401."""
    try:
        return UUID(principal.user_id)
    except ValueError:
        logger.warning("Rejected non-UUID token subject=%r", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


# ---------------------------------------------------------------------------
# Tenant guard
# ---------------------------------------------------------------------------


def _reject(
    result: str,
    status_code: int,
    detail: str,
    headers: dict[str, str] | None = None,
) -> HTTPException:
    TENANT_GUARD_DECISIONS.labels(result=result).inc()
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


async def resolve_tenant(
    members: OrgMembershipRepo,
    principal: Principal | None,
    org_id_hint: str | None,
) -> Principal:
    """Prove the caller belongs to the organization named by *org_id_hint*.

    Returns a copy of *principal* carrying ``org_id`` and ``org_role``.
    Performs exactly one membership read and never writes.

    Raises HTTPException:
        401 when there is no authenticated principal (require_user should
            already have rejected the request; checked again here) or its
            subject is not a UUID
        400 when the hint is missing or is not a UUID
        403 when the caller has no membership in that organization
    """
    if principal is None or not principal.user_id:
        logger.error("Tenant guard reached without an authenticated principal")
        raise _reject(
            "unauthenticated",
            status.HTTP_401_UNAUTHORIZED,
            "Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = UUID(principal.user_id)
    except ValueError:
        logger.warning("Rejected non-UUID token subject=%r", principal.user_id)
        raise _reject(
            "invalid_subject",
            status.HTTP_401_UNAUTHORIZED,
            "Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    if org_id_hint is None or not org_id_hint.strip():
        raise _reject(
            "missing_header",
            status.HTTP_400_BAD_REQUEST,
            "x-org-id header is required",
        )

    try:
        org_id = UUID(org_id_hint.strip())
    except ValueError:
        logger.warning(
            "Malformed x-org-id=%r from user=%s", org_id_hint, principal.user_id
        )
        raise _reject(
            "malformed", status.HTTP_400_BAD_REQUEST, "Invalid organization id"
        ) from None

    membership = await members.get(org_id, user_id)
    if membership is None:
        logger.warning(
            "Access denied: user=%s not a member of org=%s",
            principal.user_id,
            org_id,
        )
        raise _reject(
            "forbidden",
            status.HTTP_403_FORBIDDEN,
            "Access denied to this organization",
        )

    TENANT_GUARD_DECISIONS.labels(result="allowed").inc()
    org_id_var.set(str(org_id))
    logger.debug(
        "Tenant resolved user=%s org=%s role=%s",
        principal.user_id,
        org_id,
        membership.role,
    )
    return replace(principal, org_id=org_id, org_role=membership.role)


async def require_tenant(
    principal: Annotated[Principal, Depends(require_user)],
    uow: Annotated[OrgUnitOfWork, Depends(get_org_uow)],
    x_org_id: Annotated[str | None, Header()] = None,
) -> Principal:
    """FastAPI dependency: resolve the x-org-id header into a tenant Principal.

    Usage::

        @router.get("/tenant/context")
        async def context(principal: Annotated[Principal, Depends(require_tenant)]):
            ...
    """
    return await resolve_tenant(uow.members, principal, x_org_id)


def require_tenant_role(roles: set[OrgRole]):
    """Dependency factory: demand one of *roles* in the resolved organization.

    Usage::

        _require_admin = require_tenant_role({OrgRole.OWNER, OrgRole.ADMIN})
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_tenant)],
    ) -> Principal:
        if not principal.has_any_org_role(roles):
            logger.warning(
                "Access denied: user=%s org_role=%s required_any=%s org=%s",
                principal.user_id,
                principal.org_role,
                sorted(roles),
                principal.org_id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient organization permissions",
            )
        return principal

    return _guard
