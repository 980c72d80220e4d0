"""Plumbing shared by the domain services."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from people_registry.core.errors import PersistenceError
from people_registry.domain.result import Result, error
from people_registry.infrastructure.event_bus import EventPublisher
from people_registry.storage.protocols import UnitOfWork, UnitOfWorkFactory


class ServiceBase:
    """Holds the persistence collaborator and the publisher.

    Mutations run inside :meth:`_transaction`: the publisher's ``deferred()``
    scope wraps the unit of work, so ASYNC subscribers only start once the
    transaction has committed.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, publisher: EventPublisher) -> None:
        self._uow_factory = uow_factory
        self._publisher = publisher
        self._log = logging.getLogger(type(self).__module__)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[UnitOfWork]:
        async with self._publisher.deferred(), self._uow_factory() as uow:
            yield uow

    def _infrastructure_failure(self, operation: str, exc: PersistenceError) -> Result[Any]:
        """Log *exc* with its traceback and return a redacted ``Error``."""
        self._log.error("Failed to %s", operation, exc_info=exc)
        return error(f"Failed to {operation}", exc)
