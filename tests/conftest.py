"""Shared fixtures for the people-registry test suite."""

from __future__ import annotations

import pytest

from people_registry.core.enums import DeliveryMode
from people_registry.domain.events import DomainEvent
from people_registry.domain.values import Email, Phone
from people_registry.infrastructure.event_bus import EventPublisher
from people_registry.services import OrganizationService, PersonDraft, PersonService
from people_registry.storage.memory import InMemoryStore


class EventRecorder:
    """Collects events delivered on a channel."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[DomainEvent]) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

@pytest.fixture
def publisher() -> EventPublisher:
    return EventPublisher(history_limit=100)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def recorder(publisher: EventPublisher) -> EventRecorder:
    """SYNC subscriber on the generic channel."""
    rec = EventRecorder()
    publisher.subscribe(DomainEvent, rec, mode=DeliveryMode.SYNC, name="recorder")
    return rec


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def person_service(store: InMemoryStore, publisher: EventPublisher) -> PersonService:
    return PersonService(store.unit_of_work, publisher)


@pytest.fixture
def organization_service(
    store: InMemoryStore, publisher: EventPublisher
) -> OrganizationService:
    return OrganizationService(store.unit_of_work, publisher)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

@pytest.fixture
def ann_draft() -> PersonDraft:
    return PersonDraft(
        name="Ann",
        email=Email.create("bob@example.com"),
        phone=Phone.create("+15551234567"),
    )


@pytest.fixture
def carl_draft() -> PersonDraft:
    return PersonDraft(
        name="Carl",
        email=Email.create("carl@example.org"),
        phone=Phone.create("+445551234567"),
    )
