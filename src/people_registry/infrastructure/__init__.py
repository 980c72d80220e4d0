"""In-process infrastructure: the domain event publisher."""

from people_registry.infrastructure.event_bus import (
    EventHandler,
    EventPublisher,
    Subscription,
)

__all__ = ["EventHandler", "EventPublisher", "Subscription"]
