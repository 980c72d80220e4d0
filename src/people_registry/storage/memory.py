"""Dict-backed persistence for tests, the CLI and local development.

Design invariants
-----------------
1.  Transactions are **serialized**: a unit of work holds the store lock from
    ``__aenter__`` to ``__aexit__``.  A unit of work opened inside another
    one in the same task (a SYNC subscriber reading through a service) joins
    the outer transaction instead of waiting on the lock.
2.  A unit of work that exits with an exception restores the snapshot taken
    when it began, so a failed operation leaves no trace.
3.  Repositories hand out **copies**; changing an entity has no effect until
    it is passed back to ``persist``.
4.  Email, phone and organization name are unique, mirroring the database
    constraints; a violation raises ``PersistenceError``.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from types import TracebackType

from people_registry.core.errors import PersistenceError
from people_registry.domain.entities import Membership, Organization, Person
from people_registry.domain.values import Email, Phone

logger = logging.getLogger(__name__)

# outermost unit of work open in this context
_active_uow: ContextVar[InMemoryUnitOfWork | None] = ContextVar(
    "_active_uow", default=None
)


@dataclass
class _Tables:
    persons: dict[int, Person] = field(default_factory=dict)
    organizations: dict[int, Organization] = field(default_factory=dict)
    memberships: dict[int, Membership] = field(default_factory=dict)
    sequences: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        value = self.sequences.get(table, 0) + 1
        self.sequences[table] = value
        return value


class InMemoryStore:
    """Shared state behind every :class:`InMemoryUnitOfWork`."""

    def __init__(self) -> None:
        self._tables = _Tables()
        self._lock = asyncio.Lock()
        self._write_failure: str | None = None

    def unit_of_work(self) -> InMemoryUnitOfWork:
        """Unit-of-work factory handed to the services."""
        return InMemoryUnitOfWork(self)

    def _check_writable(self) -> None:
        if self._write_failure is not None:
            message, self._write_failure = self._write_failure, None
            raise PersistenceError(message)

    # ------------------------------------------------------------------
    # Testing helpers
    # ------------------------------------------------------------------

    def inject_write_failure(self, message: str = "simulated write failure") -> None:
        """Make the next ``persist``/``delete`` raise ``PersistenceError``."""
        self._write_failure = message

    @property
    def counts(self) -> dict[str, int]:
        return {
            "persons": len(self._tables.persons),
            "organizations": len(self._tables.organizations),
            "memberships": len(self._tables.memberships),
        }


class InMemoryUnitOfWork:
    """Serialized transaction over an :class:`InMemoryStore`.

    A unit of work opened while another one on the same store is already
    active in the same task joins it: it shares the outer tables,
    takes no lock and leaves commit or rollback to the outer one.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._snapshot: _Tables | None = None
        self._joined = False
        self._owner: asyncio.Task[object] | None = None
        self._token: Token[InMemoryUnitOfWork | None] | None = None

    async def __aenter__(self) -> InMemoryUnitOfWork:
        active = _active_uow.get()
        if (
            active is not None
            and active._store is self._store
            and active._snapshot is not None
            and active._owner is asyncio.current_task()
        ):
            self._joined = True
            tables = self._store._tables
        else:
            await self._store._lock.acquire()
            tables = self._store._tables
            self._snapshot = copy.deepcopy(tables)
            self._owner = asyncio.current_task()
            self._token = _active_uow.set(self)
        self.persons = _PersonRepository(self._store, tables)
        self.organizations = _OrganizationRepository(self._store, tables)
        self.memberships = _MembershipRepository(self._store, tables)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._joined:
            self._joined = False
            return
        try:
            if exc_type is not None and self._snapshot is not None:
                self._store._tables = self._snapshot
                logger.debug("Rolled back in-memory transaction (%s)", exc_type.__name__)
        finally:
            self._snapshot = None
            self._owner = None
            if self._token is not None:
                _active_uow.reset(self._token)
                self._token = None
            self._store._lock.release()


class _Repository:
    def __init__(self, store: InMemoryStore, tables: _Tables) -> None:
        self._store = store
        self._tables = tables


class _PersonRepository(_Repository):
    async def get(self, person_id: int) -> Person | None:
        person = self._tables.persons.get(person_id)
        return copy.copy(person) if person is not None else None

    async def find_by_email(self, email: Email) -> Person | None:
        for person in self._tables.persons.values():
            if person.email == email:
                return copy.copy(person)
        return None

    async def find_by_phone(self, phone: Phone) -> Person | None:
        for person in self._tables.persons.values():
            if person.phone == phone:
                return copy.copy(person)
        return None

    async def list_all(self) -> list[Person]:
        return [copy.copy(p) for _, p in sorted(self._tables.persons.items())]

    async def persist(self, person: Person) -> Person:
        self._store._check_writable()
        for other in self._tables.persons.values():
            if other.id == person.id:
                continue
            if person.email is not None and other.email == person.email:
                raise PersistenceError("unique constraint violated: persons.email")
            if person.phone is not None and other.phone == person.phone:
                raise PersistenceError("unique constraint violated: persons.phone")
        if person.id is None:
            person.id = self._tables.next_id("persons")
        self._tables.persons[person.id] = copy.copy(person)
        return person

    async def delete(self, person: Person) -> None:
        self._store._check_writable()
        if self._tables.persons.pop(person.id, None) is None:
            raise PersistenceError(f"persons row {person.id} does not exist")


class _OrganizationRepository(_Repository):
    async def get(self, organization_id: int) -> Organization | None:
        organization = self._tables.organizations.get(organization_id)
        return copy.copy(organization) if organization is not None else None

    async def find_by_name(self, name: str) -> Organization | None:
        for organization in self._tables.organizations.values():
            if organization.name == name:
                return copy.copy(organization)
        return None

    async def list_all(self) -> list[Organization]:
        return [copy.copy(o) for _, o in sorted(self._tables.organizations.items())]

    async def persist(self, organization: Organization) -> Organization:
        self._store._check_writable()
        for other in self._tables.organizations.values():
            if other.id != organization.id and other.name == organization.name:
                raise PersistenceError("unique constraint violated: organizations.name")
        if organization.id is None:
            organization.id = self._tables.next_id("organizations")
        self._tables.organizations[organization.id] = copy.copy(organization)
        return organization


class _MembershipRepository(_Repository):
    async def find(self, person_id: int, organization_id: int) -> Membership | None:
        for membership in self._tables.memberships.values():
            if membership.person_id == person_id and membership.organization_id == organization_id:
                return copy.copy(membership)
        return None

    async def list_by_organization(self, organization_id: int) -> list[Membership]:
        return [
            copy.copy(m) for _, m in sorted(self._tables.memberships.items())
            if m.organization_id == organization_id
        ]

    async def list_active_by_person(self, person_id: int) -> list[Membership]:
        return [
            copy.copy(m) for _, m in sorted(self._tables.memberships.items())
            if m.person_id == person_id and m.active
        ]

    async def persist(self, membership: Membership) -> Membership:
        self._store._check_writable()
        if membership.person_id not in self._tables.persons:
            raise PersistenceError(f"foreign key violated: persons row {membership.person_id}")
        if membership.organization_id not in self._tables.organizations:
            raise PersistenceError(
                f"foreign key violated: organizations row {membership.organization_id}"
            )
        if membership.id is None:
            membership.id = self._tables.next_id("memberships")
        self._tables.memberships[membership.id] = copy.copy(membership)
        return membership

    async def delete_by_person(self, person_id: int) -> int:
        self._store._check_writable()
        doomed = [mid for mid, m in self._tables.memberships.items() if m.person_id == person_id]
        for mid in doomed:
            del self._tables.memberships[mid]
        return len(doomed)
