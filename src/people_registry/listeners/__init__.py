"""Default domain event subscribers.

``register_default_listeners`` wires every listener onto a publisher once,
at startup:

=============================  ===========================  =====
listener                       channel                      mode
=============================  ===========================  =====
AuditEventListener             DomainEvent                  SYNC
                               DomainEvent (trail)          ASYNC
PersonEventListener            PersonCreated                SYNC
                               PersonUpdated                ASYNC
                               ContactVerified              SYNC
OrganizationEventListener      OrganizationEvent            SYNC
SystemEventListener            ApplicationStarted/Stopping  SYNC
                               JobCompleted                 SYNC
NotificationService            PersonCreated                ASYNC
                               PersonDeleted                ASYNC
                               ContactVerified              ASYNC
=============================  ===========================  =====
"""

from __future__ import annotations

from dataclasses import dataclass

from people_registry.infrastructure.event_bus import EventPublisher
from people_registry.listeners.audit import AuditEventListener, AuditRecord
from people_registry.listeners.notification import (
    LoggingNotificationSender,
    NotificationSender,
    NotificationService,
    OutboundMessage,
)
from people_registry.listeners.organization import OrganizationEventListener
from people_registry.listeners.person import PersonEventListener
from people_registry.listeners.system import SystemEventListener


@dataclass(frozen=True)
class Listeners:
    audit: AuditEventListener
    person: PersonEventListener
    organization: OrganizationEventListener
    system: SystemEventListener
    notifications: NotificationService


def register_default_listeners(
    publisher: EventPublisher,
    *,
    audit_trail_size: int = 500,
    notification_claim_limit: int = 10_000,
    sender: NotificationSender | None = None,
) -> Listeners:
    listeners = Listeners(
        audit=AuditEventListener(trail_size=audit_trail_size),
        person=PersonEventListener(),
        organization=OrganizationEventListener(),
        system=SystemEventListener(),
        notifications=NotificationService(sender, claim_limit=notification_claim_limit),
    )
    # audit first so it sees every event before any other generic subscriber
    listeners.audit.register(publisher)
    listeners.person.register(publisher)
    listeners.organization.register(publisher)
    listeners.system.register(publisher)
    listeners.notifications.register(publisher)
    return listeners


__all__ = [
    "AuditEventListener",
    "AuditRecord",
    "Listeners",
    "LoggingNotificationSender",
    "NotificationSender",
    "NotificationService",
    "OrganizationEventListener",
    "OutboundMessage",
    "PersonEventListener",
    "SystemEventListener",
    "register_default_listeners",
]
