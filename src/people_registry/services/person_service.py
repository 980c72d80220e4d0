"""Person operations.

Every mutation follows the same shape: check the request against current
state (returning a ``Failure`` without touching storage or publishing),
change storage, build the event from the before/after values, publish it
and return the entity.  The event is built inside the transaction that
makes it true.
"""

from __future__ import annotations

from dataclasses import dataclass

from people_registry.core.errors import PersistenceError
from people_registry.domain.entities import Person
from people_registry.domain.events import (
    EmailVerified,
    PersonCreated,
    PersonDeleted,
    PersonUpdated,
    PhoneVerified,
)
from people_registry.domain.result import (
    EmailAlreadyExists,
    EmailMismatch,
    PhoneAlreadyExists,
    PhoneMismatch,
    Result,
    failure,
    not_found,
    success,
    validation_failure,
)
from people_registry.domain.values import Email, Phone
from people_registry.storage.protocols import UnitOfWork

from .base import ServiceBase

MAX_NAME_LENGTH = 200


@dataclass(frozen=True)
class PersonDraft:
    """Input for create and update; contact fields are already validated."""

    name: str
    email: Email | None = None
    phone: Phone | None = None


def check_name(name: str) -> Result[str] | None:
    """Return a ``ValidationFailed`` result for an unusable name, else ``None``."""
    if not name or not name.strip():
        return validation_failure("Name must not be blank", {"name": "must not be blank"})
    if len(name) > MAX_NAME_LENGTH:
        return validation_failure(
            f"Name must be at most {MAX_NAME_LENGTH} characters",
            {"name": f"must be at most {MAX_NAME_LENGTH} characters"},
        )
    return None


class PersonService(ServiceBase):

    # -- Queries -----------------------------------------------------------

    async def find_by_id(self, person_id: int) -> Result[Person]:
        try:
            async with self._uow_factory() as uow:
                person = await uow.persons.get(person_id)
        except PersistenceError as exc:
            return self._infrastructure_failure("find person", exc)
        if person is None:
            return not_found(f"Person with ID {person_id} not found")
        return success(person)

    async def find_by_email(self, email: Email) -> Result[Person]:
        try:
            async with self._uow_factory() as uow:
                person = await uow.persons.find_by_email(email)
        except PersistenceError as exc:
            return self._infrastructure_failure("find person", exc)
        if person is None:
            return not_found(f"Person with email {email.value} not found")
        return success(person)

    async def find_by_phone(self, phone: Phone) -> Result[Person]:
        try:
            async with self._uow_factory() as uow:
                person = await uow.persons.find_by_phone(phone)
        except PersistenceError as exc:
            return self._infrastructure_failure("find person", exc)
        if person is None:
            return not_found(f"Person with phone {phone.value} not found")
        return success(person)

    async def list_persons(self) -> Result[list[Person]]:
        try:
            async with self._uow_factory() as uow:
                persons = await uow.persons.list_all()
        except PersistenceError as exc:
            return self._infrastructure_failure("list persons", exc)
        return success(persons)

    # -- Mutations ---------------------------------------------------------

    async def create_person(self, draft: PersonDraft) -> Result[Person]:
        """Create a person; email and phone must not belong to anyone else."""
        invalid = check_name(draft.name)
        if invalid is not None:
            return invalid

        try:
            async with self._transaction() as uow:
                conflict = await self._contact_conflict(uow, draft, exclude_id=None)
                if conflict is not None:
                    return conflict

                person = await uow.persons.persist(
                    Person(name=draft.name, email=draft.email, phone=draft.phone)
                )
                await self._publisher.publish(
                    PersonCreated(
                        person_id=person.id,
                        name=person.name,
                        email=person.email,
                        phone=person.phone,
                    )
                )
        except PersistenceError as exc:
            return self._infrastructure_failure("create person", exc)

        self._log.info("Created person %s", person.id)
        return success(person)

    async def update_person(self, person_id: int, draft: PersonDraft) -> Result[Person]:
        """Replace name, email and phone of an existing person."""
        invalid = check_name(draft.name)
        if invalid is not None:
            return invalid

        try:
            async with self._transaction() as uow:
                person = await uow.persons.get(person_id)
                if person is None:
                    return not_found(f"Person with ID {person_id} not found")
                conflict = await self._contact_conflict(uow, draft, exclude_id=person_id)
                if conflict is not None:
                    return conflict

                previous_name, previous_email, previous_phone = (
                    person.name, person.email, person.phone,
                )
                person.name = draft.name
                person.email = draft.email
                person.phone = draft.phone
                person = await uow.persons.persist(person)

                await self._publisher.publish(
                    PersonUpdated(
                        person_id=person_id,
                        previous_name=previous_name,
                        new_name=person.name,
                        previous_email=previous_email,
                        new_email=person.email,
                        previous_phone=previous_phone,
                        new_phone=person.phone,
                    )
                )
        except PersistenceError as exc:
            return self._infrastructure_failure("update person", exc)

        return success(person)

    async def delete_person(self, person_id: int) -> Result[Person]:
        """Delete a person and their memberships; returns the deleted person."""
        try:
            async with self._transaction() as uow:
                person = await uow.persons.get(person_id)
                if person is None:
                    return not_found(f"Person with ID {person_id} not found")

                removed = await uow.memberships.delete_by_person(person_id)
                await uow.persons.delete(person)
                await self._publisher.publish(PersonDeleted(person_id=person_id, name=person.name))
        except PersistenceError as exc:
            return self._infrastructure_failure("delete person", exc)

        self._log.info("Deleted person %s (%d memberships removed)", person_id, removed)
        return success(person)

    async def verify_email(self, person_id: int, email: Email) -> Result[Person]:
        """Confirm that *email* is the address on record for the person."""
        try:
            async with self._transaction() as uow:
                person = await uow.persons.get(person_id)
                if person is None:
                    return not_found(f"Person with ID {person_id} not found")
                if person.email != email:
                    return failure(EmailMismatch(expected=person.email, actual=email))
                await self._publisher.publish(EmailVerified(person_id=person_id, email=email))
        except PersistenceError as exc:
            return self._infrastructure_failure("verify email", exc)
        return success(person)

    async def verify_phone(self, person_id: int, phone: Phone) -> Result[Person]:
        try:
            async with self._transaction() as uow:
                person = await uow.persons.get(person_id)
                if person is None:
                    return not_found(f"Person with ID {person_id} not found")
                if person.phone != phone:
                    return failure(PhoneMismatch(expected=person.phone, actual=phone))
                await self._publisher.publish(PhoneVerified(person_id=person_id, phone=phone))
        except PersistenceError as exc:
            return self._infrastructure_failure("verify phone", exc)
        return success(person)

    # -- Internals ---------------------------------------------------------

    @staticmethod
    async def _contact_conflict(
        uow: UnitOfWork, draft: PersonDraft, *, exclude_id: int | None
    ) -> Result[Person] | None:
        if draft.email is not None:
            holder = await uow.persons.find_by_email(draft.email)
            if holder is not None and holder.id != exclude_id:
                return failure(EmailAlreadyExists(draft.email))
        if draft.phone is not None:
            holder = await uow.persons.find_by_phone(draft.phone)
            if holder is not None and holder.id != exclude_id:
                return failure(PhoneAlreadyExists(draft.phone))
        return None
