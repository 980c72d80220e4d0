"""Persistence collaborator consumed by the domain services.

Repositories look entities up by id or by a unique field, persist them
(assigning ids to new ones) and delete them.  A :class:`UnitOfWork` groups
the repositories into one transaction: it is an async context manager that
commits on clean exit and rolls back when the block raises.

Implementations translate their own failures into
:class:`people_registry.core.errors.PersistenceError`.
"""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Protocol, runtime_checkable

from people_registry.domain.entities import Membership, Organization, Person
from people_registry.domain.values import Email, Phone


@runtime_checkable
class PersonRepository(Protocol):
    async def get(self, person_id: int) -> Person | None: ...
    async def find_by_email(self, email: Email) -> Person | None: ...
    async def find_by_phone(self, phone: Phone) -> Person | None: ...
    async def list_all(self) -> list[Person]: ...
    async def persist(self, person: Person) -> Person: ...
    async def delete(self, person: Person) -> None: ...


@runtime_checkable
class OrganizationRepository(Protocol):
    async def get(self, organization_id: int) -> Organization | None: ...
    async def find_by_name(self, name: str) -> Organization | None: ...
    async def list_all(self) -> list[Organization]: ...
    async def persist(self, organization: Organization) -> Organization: ...


@runtime_checkable
class MembershipRepository(Protocol):
    async def find(self, person_id: int, organization_id: int) -> Membership | None: ...
    async def list_by_organization(self, organization_id: int) -> list[Membership]: ...
    async def list_active_by_person(self, person_id: int) -> list[Membership]: ...
    async def persist(self, membership: Membership) -> Membership: ...
    async def delete_by_person(self, person_id: int) -> int: ...


@runtime_checkable
class UnitOfWork(Protocol):
    persons: PersonRepository
    organizations: OrganizationRepository
    memberships: MembershipRepository

    async def __aenter__(self) -> UnitOfWork: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
