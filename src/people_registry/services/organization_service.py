"""Organization and membership operations."""

from __future__ import annotations

from dataclasses import dataclass

from people_registry.core.enums import MembershipRole, OrganizationType
from people_registry.core.errors import PersistenceError
from people_registry.domain.entities import Membership, Organization
from people_registry.domain.events import MemberAdded, OrganizationCreated
from people_registry.domain.result import (
    AlreadyMember,
    NameAlreadyExists,
    Result,
    failure,
    not_found,
    success,
)
from people_registry.domain.values import Address, Email, Phone

from .base import ServiceBase
from .person_service import check_name


@dataclass(frozen=True)
class OrganizationDraft:
    name: str
    type: OrganizationType = OrganizationType.OTHER
    description: str | None = None
    email: Email | None = None
    phone: Phone | None = None
    address: Address | None = None


class OrganizationService(ServiceBase):

    async def find_by_id(self, organization_id: int) -> Result[Organization]:
        try:
            async with self._uow_factory() as uow:
                organization = await uow.organizations.get(organization_id)
        except PersistenceError as exc:
            return self._infrastructure_failure("find organization", exc)
        if organization is None:
            return not_found(f"Organization with ID {organization_id} not found")
        return success(organization)

    async def find_by_name(self, name: str) -> Result[Organization]:
        try:
            async with self._uow_factory() as uow:
                organization = await uow.organizations.find_by_name(name)
        except PersistenceError as exc:
            return self._infrastructure_failure("find organization", exc)
        if organization is None:
            return not_found(f"Organization with name '{name}' not found")
        return success(organization)

    async def list_organizations(self) -> Result[list[Organization]]:
        try:
            async with self._uow_factory() as uow:
                organizations = await uow.organizations.list_all()
        except PersistenceError as exc:
            return self._infrastructure_failure("list organizations", exc)
        return success(organizations)

    async def create_organization(
        self, draft: OrganizationDraft, creator_id: int
    ) -> Result[Organization]:
        """Create an organization and make *creator_id* its OWNER."""
        invalid = check_name(draft.name)
        if invalid is not None:
            return invalid

        try:
            async with self._transaction() as uow:
                if await uow.organizations.find_by_name(draft.name) is not None:
                    return failure(NameAlreadyExists(draft.name))
                creator = await uow.persons.get(creator_id)
                if creator is None:
                    return not_found(f"Creator with ID {creator_id} not found")

                organization = await uow.organizations.persist(
                    Organization(
                        name=draft.name,
                        type=draft.type,
                        description=draft.description,
                        email=draft.email,
                        phone=draft.phone,
                        address=draft.address,
                        active=True,
                    )
                )
                await uow.memberships.persist(
                    Membership(
                        person_id=creator_id,
                        organization_id=organization.id,
                        role=MembershipRole.OWNER,
                    )
                )
                await self._publisher.publish(
                    OrganizationCreated(
                        organization_id=organization.id,
                        name=organization.name,
                        organization_type=organization.type,
                        creator_id=creator_id,
                    )
                )
        except PersistenceError as exc:
            return self._infrastructure_failure("create organization", exc)

        self._log.info("Created organization %s owned by person %s", organization.id, creator_id)
        return success(organization)

    async def add_member(
        self,
        organization_id: int,
        person_id: int,
        role: MembershipRole = MembershipRole.MEMBER,
    ) -> Result[Membership]:
        """Add a person to an organization.

        An inactive membership is reactivated with the new role; an active
        one yields ``AlreadyMember``.
        """
        try:
            async with self._transaction() as uow:
                if await uow.organizations.get(organization_id) is None:
                    return not_found(f"Organization with ID {organization_id} not found")
                if await uow.persons.get(person_id) is None:
                    return not_found(f"Person with ID {person_id} not found")

                membership = await uow.memberships.find(person_id, organization_id)
                reactivated = membership is not None
                if membership is not None:
                    if membership.active:
                        return failure(AlreadyMember(person_id, organization_id))
                    membership.reactivate(role)
                else:
                    membership = Membership(
                        person_id=person_id,
                        organization_id=organization_id,
                        role=role,
                    )
                membership = await uow.memberships.persist(membership)

                await self._publisher.publish(
                    MemberAdded(
                        organization_id=organization_id,
                        person_id=person_id,
                        role=role,
                        reactivated=reactivated,
                    )
                )
        except PersistenceError as exc:
            return self._infrastructure_failure("add member", exc)

        return success(membership)

    async def get_members(self, organization_id: int) -> Result[list[Membership]]:
        try:
            async with self._uow_factory() as uow:
                if await uow.organizations.get(organization_id) is None:
                    return not_found(f"Organization with ID {organization_id} not found")
                memberships = await uow.memberships.list_by_organization(organization_id)
        except PersistenceError as exc:
            return self._infrastructure_failure("list members", exc)
        return success(memberships)

    async def get_person_organizations(self, person_id: int) -> Result[list[Membership]]:
        """Active memberships of a person."""
        try:
            async with self._uow_factory() as uow:
                if await uow.persons.get(person_id) is None:
                    return not_found(f"Person with ID {person_id} not found")
                memberships = await uow.memberships.list_active_by_person(person_id)
        except PersistenceError as exc:
            return self._infrastructure_failure("list person organizations", exc)
        return success(memberships)
