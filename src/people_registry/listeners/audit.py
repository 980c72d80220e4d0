"""Audit trail of every published domain event."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime

from people_registry.core.enums import DeliveryMode
from people_registry.domain.events import DomainEvent
from people_registry.infrastructure.event_bus import EventPublisher
from people_registry.observability.logger import get_logger

audit_log = get_logger("people_registry.audit")


@dataclass(frozen=True)
class AuditRecord:
    event_id: str
    event_type: str
    family: str
    timestamp: datetime

    @classmethod
    def of(cls, event: DomainEvent) -> AuditRecord:
        return cls(
            event_id=event.event_id,
            event_type=event.event_type,
            family=event.family().__name__,
            timestamp=event.timestamp,
        )


class AuditEventListener:
    """Generic-channel subscriber with two registrations.

    ``on_event`` (SYNC) writes one structured ``audit`` log line per event as
    it is dispatched.  ``record`` (ASYNC) keeps the most recent ``trail_size``
    records in memory; it only runs once the publishing transaction has
    committed, so a rolled-back event never reaches the trail.  A redelivered
    event (same ``event_id``) is recorded once.
    """

    def __init__(self, trail_size: int = 500) -> None:
        self._trail: deque[AuditRecord] = deque()
        self._seen: set[str] = set()
        self._trail_size = trail_size

    def register(self, publisher: EventPublisher) -> None:
        publisher.subscribe(DomainEvent, self.on_event, mode=DeliveryMode.SYNC)
        publisher.subscribe(DomainEvent, self.record, mode=DeliveryMode.ASYNC)

    def on_event(self, event: DomainEvent) -> None:
        audit_log.info("audit", domain_event=event)

    async def record(self, event: DomainEvent) -> None:
        if event.event_id in self._seen:
            return
        self._trail.append(AuditRecord.of(event))
        self._seen.add(event.event_id)
        while len(self._trail) > self._trail_size:
            self._seen.discard(self._trail.popleft().event_id)

    def recent(self, limit: int | None = None) -> list[AuditRecord]:
        """Newest first."""
        records = list(reversed(self._trail))
        return records if limit is None else records[:limit]
