"""Unit of work grouping the organization and membership stores.

Creating an organization writes two records (the organization and its
OWNER membership).  Both writes run inside ``atomic()`` so a failure in
the second one leaves no ownerless organization behind:

  - PostgreSQL: a SAVEPOINT on the request's session.  Any exception
    raised inside the block rolls the savepoint back.
  - In-memory: the stores are snapshotted on entry and restored if the
    block raises.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.repos.org_membership_repo import (
    InMemoryOrgMembershipRepo,
    OrgMembershipRepo,
)
from app.repos.org_repo import InMemoryOrgRepo, OrgRepo
from app.repos.pg_org_membership_repo import PgOrgMembershipRepo
from app.repos.pg_org_repo import PgOrgRepo


class OrgUnitOfWork(Protocol):
    @property
    def orgs(self) -> OrgRepo: ...
    @property
    def members(self) -> OrgMembershipRepo: ...
    def atomic(self) -> AbstractAsyncContextManager[None]: ...


class InMemoryOrgUnitOfWork:
    def __init__(self) -> None:
        self.orgs = InMemoryOrgRepo()
        self.members = InMemoryOrgMembershipRepo()

    def clear(self) -> None:
        self.orgs._by_id.clear()
        self.orgs._by_slug.clear()
        self.members._store.clear()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        # In-memory repo calls never suspend, so no other request can
        # write between the snapshot and a restore.
        by_id = dict(self.orgs._by_id)
        by_slug = dict(self.orgs._by_slug)
        members = dict(self.members._store)
        try:
            yield
        except BaseException:
            self.orgs._by_id = by_id
            self.orgs._by_slug = by_slug
            self.members._store = members
            raise


class PgOrgUnitOfWork:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.orgs = PgOrgRepo(session)
        self.members = PgOrgMembershipRepo(session)

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self._session.begin_nested():
            yield
