"""Repository pattern for async database operations.

Each repository encapsulates query logic for a single aggregate and works
on the :class:`AsyncSession` owned by a :class:`SqlAlchemyUnitOfWork`.

Conversion helpers translate between domain entities
(:mod:`people_registry.domain.entities`) and ORM records.  A row that no
longer passes value-type validation is reported as a
:class:`PersistenceError` rather than loaded.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from contextvars import ContextVar, Token
from types import TracebackType
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from people_registry.core.enums import MembershipRole, OrganizationType
from people_registry.core.errors import PersistenceError, ValidationError
from people_registry.domain.entities import Membership, Organization, Person
from people_registry.domain.values import Address, CountryCode, Email, Phone, PostalCode

from .models import MembershipRecord, OrganizationRecord, PersonRecord

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# outermost unit of work open in this context
_active_uow: ContextVar[SqlAlchemyUnitOfWork | None] = ContextVar(
    "_active_sql_uow", default=None
)


def _translate_errors(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise driver and ORM errors as ``PersistenceError``."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"{fn.__qualname__} failed: {exc.__class__.__name__}") from exc

    return wrapper


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _optional(cls: Any, raw: str | None) -> Any:
    return cls.create(raw) if raw is not None else None


def _person_to_record(person: Person) -> PersonRecord:
    return PersonRecord(
        id=person.id,
        name=person.name,
        email=person.email.value if person.email else None,
        phone=person.phone.value if person.phone else None,
    )


def _record_to_person(record: PersonRecord) -> Person:
    try:
        return Person(
            id=record.id,
            name=record.name,
            email=_optional(Email, record.email),
            phone=_optional(Phone, record.phone),
        )
    except ValidationError as exc:
        raise PersistenceError(f"persons row {record.id} holds invalid data: {exc}") from exc


def _apply_organization(record: OrganizationRecord, organization: Organization) -> None:
    record.name = organization.name
    record.type = organization.type.value
    record.description = organization.description
    record.email = organization.email.value if organization.email else None
    record.phone = organization.phone.value if organization.phone else None
    record.active = organization.active
    address = organization.address
    record.street1 = address.street1 if address else None
    record.street2 = address.street2 if address else None
    record.city = address.city if address else None
    record.state = address.state if address else None
    record.postal_code = address.postal_code.value if address else None
    record.country_code = address.country_code.value if address else None


def _organization_to_record(organization: Organization) -> OrganizationRecord:
    record = OrganizationRecord(id=organization.id)
    _apply_organization(record, organization)
    return record


def _record_to_organization(record: OrganizationRecord) -> Organization:
    try:
        address = None
        if record.street1 is not None:
            address = Address(
                street1=record.street1,
                street2=record.street2,
                city=record.city or "",
                state=record.state,
                postal_code=PostalCode.create(record.postal_code or ""),
                country_code=CountryCode.create(record.country_code or ""),
            )
        return Organization(
            id=record.id,
            name=record.name,
            type=OrganizationType(record.type),
            description=record.description,
            email=_optional(Email, record.email),
            phone=_optional(Phone, record.phone),
            address=address,
            active=record.active,
        )
    except ValueError as exc:
        # ValidationError and unknown enum values both land here
        raise PersistenceError(
            f"organizations row {record.id} holds invalid data: {exc}"
        ) from exc


def _membership_to_record(membership: Membership) -> MembershipRecord:
    return MembershipRecord(
        id=membership.id,
        person_id=membership.person_id,
        organization_id=membership.organization_id,
        role=membership.role.value,
        joined_at=membership.joined_at,
        expires_at=membership.expires_at,
        active=membership.active,
    )


def _record_to_membership(record: MembershipRecord) -> Membership:
    try:
        role = MembershipRole(record.role)
    except ValueError as exc:
        raise PersistenceError(f"memberships row {record.id} holds invalid data: {exc}") from exc
    return Membership(
        id=record.id,
        person_id=record.person_id,
        organization_id=record.organization_id,
        role=role,
        joined_at=record.joined_at,
        expires_at=record.expires_at,
        active=record.active,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

class PersonRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @_translate_errors
    async def get(self, person_id: int) -> Person | None:
        record = await self._session.get(PersonRecord, person_id)
        return _record_to_person(record) if record is not None else None

    @_translate_errors
    async def find_by_email(self, email: Email) -> Person | None:
        return await self._first(PersonRecord.email == email.value)

    @_translate_errors
    async def find_by_phone(self, phone: Phone) -> Person | None:
        return await self._first(PersonRecord.phone == phone.value)

    @_translate_errors
    async def list_all(self) -> list[Person]:
        result = await self._session.execute(select(PersonRecord).order_by(PersonRecord.id))
        return [_record_to_person(r) for r in result.scalars().all()]

    @_translate_errors
    async def persist(self, person: Person) -> Person:
        """Insert a new person or update the existing row in place."""
        existing = None
        if person.id is not None:
            existing = await self._session.get(PersonRecord, person.id)

        if existing is None:
            record = _person_to_record(person)
            self._session.add(record)
            await self._session.flush()
            person.id = record.id
            logger.debug("Inserted person %s", person.id)
            return person

        existing.name = person.name
        existing.email = person.email.value if person.email else None
        existing.phone = person.phone.value if person.phone else None
        await self._session.flush()
        logger.debug("Updated person %s", person.id)
        return person

    @_translate_errors
    async def delete(self, person: Person) -> None:
        await self._session.execute(delete(PersonRecord).where(PersonRecord.id == person.id))

    async def _first(self, clause: Any) -> Person | None:
        result = await self._session.execute(select(PersonRecord).where(clause))
        record = result.scalar_one_or_none()
        return _record_to_person(record) if record is not None else None


class OrganizationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @_translate_errors
    async def get(self, organization_id: int) -> Organization | None:
        record = await self._session.get(OrganizationRecord, organization_id)
        return _record_to_organization(record) if record is not None else None

    @_translate_errors
    async def find_by_name(self, name: str) -> Organization | None:
        result = await self._session.execute(
            select(OrganizationRecord).where(OrganizationRecord.name == name)
        )
        record = result.scalar_one_or_none()
        return _record_to_organization(record) if record is not None else None

    @_translate_errors
    async def list_all(self) -> list[Organization]:
        result = await self._session.execute(
            select(OrganizationRecord).order_by(OrganizationRecord.id)
        )
        return [_record_to_organization(r) for r in result.scalars().all()]

    @_translate_errors
    async def persist(self, organization: Organization) -> Organization:
        existing = None
        if organization.id is not None:
            existing = await self._session.get(OrganizationRecord, organization.id)

        if existing is None:
            record = _organization_to_record(organization)
            self._session.add(record)
            await self._session.flush()
            organization.id = record.id
            return organization

        _apply_organization(existing, organization)
        await self._session.flush()
        return organization


class MembershipRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @_translate_errors
    async def find(self, person_id: int, organization_id: int) -> Membership | None:
        result = await self._session.execute(
            select(MembershipRecord).where(
                MembershipRecord.person_id == person_id,
                MembershipRecord.organization_id == organization_id,
            )
        )
        record = result.scalar_one_or_none()
        return _record_to_membership(record) if record is not None else None

    @_translate_errors
    async def list_by_organization(self, organization_id: int) -> list[Membership]:
        result = await self._session.execute(
            select(MembershipRecord)
            .where(MembershipRecord.organization_id == organization_id)
            .order_by(MembershipRecord.id)
        )
        return [_record_to_membership(r) for r in result.scalars().all()]

    @_translate_errors
    async def list_active_by_person(self, person_id: int) -> list[Membership]:
        result = await self._session.execute(
            select(MembershipRecord)
            .where(MembershipRecord.person_id == person_id, MembershipRecord.active.is_(True))
            .order_by(MembershipRecord.id)
        )
        return [_record_to_membership(r) for r in result.scalars().all()]

    @_translate_errors
    async def persist(self, membership: Membership) -> Membership:
        existing = None
        if membership.id is not None:
            existing = await self._session.get(MembershipRecord, membership.id)

        if existing is None:
            record = _membership_to_record(membership)
            self._session.add(record)
            await self._session.flush()
            membership.id = record.id
            return membership

        existing.role = membership.role.value
        existing.joined_at = membership.joined_at
        existing.expires_at = membership.expires_at
        existing.active = membership.active
        await self._session.flush()
        return membership

    @_translate_errors
    async def delete_by_person(self, person_id: int) -> int:
        result = await self._session.execute(
            delete(MembershipRecord).where(MembershipRecord.person_id == person_id)
        )
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------

class SqlAlchemyUnitOfWork:
    """One session, one transaction.

    Usage::

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            person = await uow.persons.get(1)
            ...

    The session is committed on successful exit and rolled back on
    exception. It is always closed afterwards.  A unit of work opened from
    the same task while another one on the same session factory is active
    reuses that session and leaves commit or rollback to the outer one.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._joined = False
        self._owner: asyncio.Task[object] | None = None
        self._token: Token[SqlAlchemyUnitOfWork | None] | None = None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        active = _active_uow.get()
        if (
            active is not None
            and active._session_factory is self._session_factory
            and active._session is not None
            and active._owner is asyncio.current_task()
        ):
            self._joined = True
            session = active._session
        else:
            session = self._session = self._session_factory()
            self._owner = asyncio.current_task()
            self._token = _active_uow.set(self)
        self.persons = PersonRepo(session)
        self.organizations = OrganizationRepo(session)
        self.memberships = MembershipRepo(session)
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
        session = self._session
        if session is None:
            return
        try:
            if exc_type is None:
                try:
                    await session.commit()
                except SQLAlchemyError as commit_exc:
                    await session.rollback()
                    raise PersistenceError("commit failed") from commit_exc
            else:
                await session.rollback()
        finally:
            await session.close()
            self._session = None
            self._owner = None
            if self._token is not None:
                _active_uow.reset(self._token)
                self._token = None


def unit_of_work_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SqlAlchemyUnitOfWork]:
    return functools.partial(SqlAlchemyUnitOfWork, session_factory)
