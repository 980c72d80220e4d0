"""Request and response bodies.

Value types are declared directly on the models: they parse from and
serialize to their bare string, and a malformed value is rejected during
request validation.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from people_registry.core.enums import MembershipRole, OrganizationType
from people_registry.domain.values import Address, CountryCode, Email, Phone, PostalCode
from people_registry.services import OrganizationDraft, PersonDraft


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# -- Persons -----------------------------------------------------------------

class PersonIn(BaseModel):
    name: str
    email: Email | None = None
    phone: Phone | None = None

    def to_draft(self) -> PersonDraft:
        return PersonDraft(name=self.name, email=self.email, phone=self.phone)


class PersonOut(_Out):
    id: int
    name: str
    email: Email | None = None
    phone: Phone | None = None


# -- Organizations -----------------------------------------------------------

class AddressIn(BaseModel):
    street1: str
    street2: str | None = None
    city: str
    state: str | None = None
    postal_code: PostalCode
    country_code: CountryCode

    def to_address(self) -> Address:
        return Address(
            street1=self.street1,
            street2=self.street2,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country_code=self.country_code,
        )


class AddressOut(_Out):
    street1: str
    street2: str | None = None
    city: str
    state: str | None = None
    postal_code: PostalCode
    country_code: CountryCode


class OrganizationIn(BaseModel):
    name: str
    type: OrganizationType = OrganizationType.OTHER
    description: str | None = None
    email: Email | None = None
    phone: Phone | None = None
    address: AddressIn | None = None

    def to_draft(self) -> OrganizationDraft:
        return OrganizationDraft(
            name=self.name,
            type=self.type,
            description=self.description,
            email=self.email,
            phone=self.phone,
            address=self.address.to_address() if self.address else None,
        )


class OrganizationOut(_Out):
    id: int
    name: str
    type: OrganizationType
    description: str | None = None
    email: Email | None = None
    phone: Phone | None = None
    address: AddressOut | None = None
    active: bool


# -- Memberships -------------------------------------------------------------

class MembershipOut(_Out):
    id: int
    person_id: int
    organization_id: int
    role: MembershipRole
    joined_at: datetime
    expires_at: datetime | None = None
    active: bool


# -- Operational -------------------------------------------------------------

class AuditRecordOut(_Out):
    event_id: str
    event_type: str
    family: str
    timestamp: datetime


class ComponentHealthOut(_Out):
    component: str
    healthy: bool
    message: str
    latency_ms: float


class HealthOut(BaseModel):
    status: str
    version: str
    components: list[ComponentHealthOut] = Field(default_factory=list)


class ErrorOut(BaseModel):
    error: str
    kind: str | None = None
    field_errors: dict[str, str] | None = None
