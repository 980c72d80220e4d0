"""Canonical domain events for the registry.

Design invariants
-----------------
1.  Every event is **immutable** (``frozen=True``).
2.  ``event_id`` is a UUID4 and ``timestamp`` a UTC datetime, both captured
    at construction.  Services build events inside the operation that makes
    the fact true, never afterwards.
3.  ``event_type`` is a stable dotted tag, defined once per concrete class
    and unique across the hierarchy.
4.  Every concrete event belongs to exactly one top-level **family**
    (``PersonEvent``, ``OrganizationEvent``, ``SystemEvent``).  The family
    and any intermediate node (``ContactVerified``, ``JobCompleted``) are
    routing channels only and cannot be instantiated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from people_registry.core.enums import MembershipRole, OrganizationType
from people_registry.core.ids import new_id as _uuid
from people_registry.core.ids import utc_now as _now

from .values import Email, Phone

# event_type tag -> concrete class
EVENT_TYPES: dict[str, type[DomainEvent]] = {}


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Immutable base for every domain event.

    Shared fields
    ~~~~~~~~~~~~~
    event_id        Unique identity (UUID4).
    timestamp       UTC creation time.
    """

    event_type: ClassVar[str] = ""
    abstract: ClassVar[bool] = True

    event_id: str = field(default_factory=_uuid)
    timestamp: datetime = field(default_factory=_now)

    def __init_subclass__(cls, abstract: bool = False, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls.abstract = abstract
        if abstract:
            return
        if not cls.event_type:
            raise TypeError(f"{cls.__name__} must define an event_type tag")
        existing = EVENT_TYPES.get(cls.event_type)
        if existing is not None and existing.__qualname__ != cls.__qualname__:
            raise TypeError(
                f"event_type {cls.event_type!r} already used by {existing.__name__}"
            )
        EVENT_TYPES[cls.event_type] = cls

    def __post_init__(self) -> None:
        if type(self).abstract:
            raise TypeError(
                f"{type(self).__name__} is a routing channel, not a concrete event"
            )

    @classmethod
    def family(cls) -> type[DomainEvent]:
        """Top-level family this event (or channel) belongs to."""
        for klass in reversed(cls.__mro__):
            if klass is not DomainEvent and isinstance(klass, type) and issubclass(klass, DomainEvent):
                return klass
        return DomainEvent

    @classmethod
    def channels(cls) -> tuple[type[DomainEvent], ...]:
        """Routing channels from the most general to the most specific."""
        return tuple(
            klass for klass in reversed(cls.__mro__)
            if isinstance(klass, type) and issubclass(klass, DomainEvent)
        )


# =========================================================================
# Person family
# =========================================================================

@dataclass(frozen=True, kw_only=True)
class PersonEvent(DomainEvent, abstract=True):
    """Facts about a single person."""

    person_id: int


@dataclass(frozen=True, kw_only=True)
class PersonCreated(PersonEvent):
    event_type: ClassVar[str] = "person.created"

    name: str
    email: Email | None = None
    phone: Phone | None = None


@dataclass(frozen=True, kw_only=True)
class PersonUpdated(PersonEvent):
    """Carries both the previous and the new contact values."""

    event_type: ClassVar[str] = "person.updated"

    previous_name: str
    new_name: str
    previous_email: Email | None = None
    new_email: Email | None = None
    previous_phone: Phone | None = None
    new_phone: Phone | None = None

    @property
    def name_changed(self) -> bool:
        return self.previous_name != self.new_name

    @property
    def email_changed(self) -> bool:
        return self.previous_email != self.new_email

    @property
    def phone_changed(self) -> bool:
        return self.previous_phone != self.new_phone


@dataclass(frozen=True, kw_only=True)
class PersonDeleted(PersonEvent):
    event_type: ClassVar[str] = "person.deleted"

    name: str


@dataclass(frozen=True, kw_only=True)
class ContactVerified(PersonEvent, abstract=True):
    """A person proved ownership of one of their contact points."""


@dataclass(frozen=True, kw_only=True)
class EmailVerified(ContactVerified):
    event_type: ClassVar[str] = "person.email.verified"

    email: Email


@dataclass(frozen=True, kw_only=True)
class PhoneVerified(ContactVerified):
    event_type: ClassVar[str] = "person.phone.verified"

    phone: Phone


# =========================================================================
# Organization family
# =========================================================================

@dataclass(frozen=True, kw_only=True)
class OrganizationEvent(DomainEvent, abstract=True):
    """Facts about an organization and its memberships."""

    organization_id: int


@dataclass(frozen=True, kw_only=True)
class OrganizationCreated(OrganizationEvent):
    event_type: ClassVar[str] = "organization.created"

    name: str
    organization_type: OrganizationType
    creator_id: int


@dataclass(frozen=True, kw_only=True)
class MemberAdded(OrganizationEvent):
    event_type: ClassVar[str] = "organization.member.added"

    person_id: int
    role: MembershipRole
    reactivated: bool = False


# =========================================================================
# System family
# =========================================================================

@dataclass(frozen=True, kw_only=True)
class SystemEvent(DomainEvent, abstract=True):
    """Facts about the running process rather than a domain entity."""


@dataclass(frozen=True, kw_only=True)
class ApplicationStarted(SystemEvent):
    event_type: ClassVar[str] = "system.started"

    version: str
    environment: str


@dataclass(frozen=True, kw_only=True)
class ApplicationStopping(SystemEvent):
    event_type: ClassVar[str] = "system.stopping"

    reason: str


@dataclass(frozen=True, kw_only=True)
class JobCompleted(SystemEvent, abstract=True):
    """A background job finished, successfully or not."""

    job_id: str
    success: bool
    message: str


@dataclass(frozen=True, kw_only=True)
class DataImportCompleted(JobCompleted):
    event_type: ClassVar[str] = "system.job.import.completed"

    records_processed: int
    records_failed: int


@dataclass(frozen=True, kw_only=True)
class NotificationJobCompleted(JobCompleted):
    event_type: ClassVar[str] = "system.job.notification.completed"

    notifications_sent: int
    notifications_failed: int


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------

FAMILIES: tuple[type[DomainEvent], ...] = (PersonEvent, OrganizationEvent, SystemEvent)

ALL_DOMAIN_EVENTS: tuple[type[DomainEvent], ...] = (
    PersonCreated,
    PersonUpdated,
    PersonDeleted,
    EmailVerified,
    PhoneVerified,
    OrganizationCreated,
    MemberAdded,
    ApplicationStarted,
    ApplicationStopping,
    DataImportCompleted,
    NotificationJobCompleted,
)
