"""Aggregates persisted by the storage layer.

Entities are plain mutable dataclasses.  ``id`` is ``None`` until the
persistence collaborator assigns one in ``persist``.  Contact fields are
always value types, so a loaded entity can never carry a malformed email or
phone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from people_registry.core.enums import MembershipRole, OrganizationType
from people_registry.core.ids import utc_now

from .values import Address, Email, Phone


@dataclass
class Person:
    name: str
    email: Email | None = None
    phone: Phone | None = None
    id: int | None = None


@dataclass
class Organization:
    name: str
    type: OrganizationType = OrganizationType.OTHER
    description: str | None = None
    email: Email | None = None
    phone: Phone | None = None
    address: Address | None = None
    active: bool = True
    id: int | None = None


@dataclass
class Membership:
    person_id: int
    organization_id: int
    role: MembershipRole = MembershipRole.MEMBER
    joined_at: datetime = field(default_factory=utc_now)
    expires_at: datetime | None = None
    active: bool = True
    id: int | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        """Active and not past its expiry."""
        if not self.active:
            return False
        now = now or utc_now()
        return self.expires_at is None or self.expires_at > now

    def reactivate(self, role: MembershipRole, now: datetime | None = None) -> None:
        self.active = True
        self.role = role
        self.joined_at = now or utc_now()
        self.expires_at = None
