"""Organization-family logging subscriber."""

from __future__ import annotations

import logging

from people_registry.core.enums import DeliveryMode
from people_registry.domain.events import MemberAdded, OrganizationCreated, OrganizationEvent
from people_registry.infrastructure.event_bus import EventPublisher

logger = logging.getLogger(__name__)


class OrganizationEventListener:
    def register(self, publisher: EventPublisher) -> None:
        publisher.subscribe(OrganizationEvent, self.on_organization_event, mode=DeliveryMode.SYNC)

    def on_organization_event(self, event: OrganizationEvent) -> None:
        match event:
            case OrganizationCreated():
                logger.info(
                    "Organization created: id=%s name=%s type=%s owner=%s",
                    event.organization_id, event.name,
                    event.organization_type.value, event.creator_id,
                )
            case MemberAdded(reactivated=True):
                logger.info(
                    "Membership reactivated: org=%s person=%s role=%s",
                    event.organization_id, event.person_id, event.role.value,
                )
            case MemberAdded():
                logger.info(
                    "Member added: org=%s person=%s role=%s",
                    event.organization_id, event.person_id, event.role.value,
                )
            case _:
                raise TypeError(f"Unhandled organization event: {type(event).__name__}")
