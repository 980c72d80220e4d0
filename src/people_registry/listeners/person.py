"""Person-family logging subscribers."""

from __future__ import annotations

import logging

from people_registry.core.enums import DeliveryMode
from people_registry.domain.events import (
    ContactVerified,
    EmailVerified,
    PersonCreated,
    PersonUpdated,
    PhoneVerified,
)
from people_registry.infrastructure.event_bus import EventPublisher

logger = logging.getLogger(__name__)


def _show(value: object | None) -> str:
    return str(value) if value is not None else "none"


class PersonEventListener:
    def register(self, publisher: EventPublisher) -> None:
        publisher.subscribe(PersonCreated, self.on_person_created, mode=DeliveryMode.SYNC)
        publisher.subscribe(PersonUpdated, self.on_person_updated, mode=DeliveryMode.ASYNC)
        publisher.subscribe(ContactVerified, self.on_contact_verified, mode=DeliveryMode.SYNC)

    def on_person_created(self, event: PersonCreated) -> None:
        logger.info("Person created: id=%s name=%s", event.person_id, event.name)

    async def on_person_updated(self, event: PersonUpdated) -> None:
        logger.info("Person updated: id=%s", event.person_id)
        if event.email_changed:
            logger.info(
                "Email changed from %s to %s",
                _show(event.previous_email), _show(event.new_email),
            )
        if event.phone_changed:
            logger.info(
                "Phone changed from %s to %s",
                _show(event.previous_phone), _show(event.new_phone),
            )

    def on_contact_verified(self, event: ContactVerified) -> None:
        match event:
            case EmailVerified(person_id=person_id, email=email):
                logger.info("Email verified: person=%s email=%s", person_id, email)
            case PhoneVerified(person_id=person_id, phone=phone):
                logger.info("Phone verified: person=%s phone=%s", person_id, phone)
            case _:
                raise TypeError(f"Unhandled contact verification: {type(event).__name__}")
