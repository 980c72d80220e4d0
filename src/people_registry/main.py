"""Application bootstrap.

Wires storage, the event publisher, listeners and services into a
:class:`Container`, and runs the HTTP API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from .core.config import Settings, load_settings
from .core.enums import JobKind, StorageBackend
from .domain.events import JobCompleted
from .domain.result import Result
from .infrastructure.event_bus import EventPublisher
from .listeners import Listeners, register_default_listeners
from .observability.health import HealthChecker
from .observability.logger import setup_logging
from .services import JobSimulator, OrganizationService, PersonService, SystemService
from .storage.memory import InMemoryStore
from .storage.protocols import UnitOfWorkFactory

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    publisher: EventPublisher
    listeners: Listeners
    uow_factory: UnitOfWorkFactory
    persons: PersonService
    organizations: OrganizationService
    system: SystemService
    jobs: JobSimulator
    health: HealthChecker
    store: InMemoryStore | None = None
    engine: AsyncEngine | None = None

    async def start(self) -> None:
        await self.system.announce_started(self.settings.version, self.settings.environment)
        if self.settings.jobs.enabled:
            self.jobs.start()

    async def stop(self, reason: str = "Normal shutdown") -> None:
        await self.jobs.stop()
        await self.system.announce_stopping(reason)
        await self.publisher.drain(timeout=self.settings.events.drain_timeout_seconds)
        if self.engine is not None:
            from .storage.postgres.connection import dispose

            await dispose(self.engine)
            self.engine = None


async def build_container(settings: Settings) -> Container:
    """Create every component described by *settings*."""
    settings.validate_storage()

    publisher = EventPublisher(history_limit=settings.events.history_limit)
    listeners = register_default_listeners(
        publisher,
        audit_trail_size=settings.events.audit_trail_size,
        notification_claim_limit=settings.events.notification_claim_limit,
    )

    store: InMemoryStore | None = None
    engine: AsyncEngine | None = None
    uow_factory: UnitOfWorkFactory
    match settings.storage.backend:
        case StorageBackend.MEMORY:
            store = InMemoryStore()
            uow_factory = store.unit_of_work
        case StorageBackend.POSTGRES:
            from .storage.postgres.connection import init_engine
            from .storage.postgres.repos import unit_of_work_factory

            engine, session_factory = await init_engine(settings.storage)
            uow_factory = unit_of_work_factory(session_factory)

    system = SystemService(publisher)
    health = HealthChecker()

    async def check_storage() -> tuple[bool, str]:
        async with uow_factory() as uow:
            await uow.persons.get(0)
        return True, f"{settings.storage.backend.value} storage reachable"

    async def check_events() -> tuple[bool, str]:
        return True, (
            f"{publisher.pending_count} pending, "
            f"{len(publisher.dead_letters)} dead letters"
        )

    health.register_check("storage", check_storage)
    health.register_check("events", check_events)

    logger.info("Container built (storage=%s)", settings.storage.backend.value)
    return Container(
        settings=settings,
        publisher=publisher,
        listeners=listeners,
        uow_factory=uow_factory,
        persons=PersonService(uow_factory, publisher),
        organizations=OrganizationService(uow_factory, publisher),
        system=system,
        jobs=JobSimulator(system, settings.jobs),
        health=health,
        store=store,
        engine=engine,
    )


def run(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> None:
    """Load config, set up logging and serve the API until interrupted."""
    import uvicorn

    from .api.app import create_app

    settings = load_settings(config_path=config_path, overrides=overrides)
    settings.validate_storage()
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    logger.info(
        "Starting %s %s (%s)", settings.app_name, settings.version, settings.environment,
    )

    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
        log_config=None,
    )


async def simulate_job(kind: JobKind, *, seed: int | None = None) -> Result[JobCompleted]:
    """Run one simulated job against in-memory storage.

    Listeners see the event exactly as they would in the running service.
    """
    settings = Settings(
        storage={"backend": StorageBackend.MEMORY},
        jobs={"enabled": False, "random_seed": seed},
    )
    container = await build_container(settings)
    try:
        return await container.jobs.run(kind)
    finally:
        await container.publisher.drain(timeout=settings.events.drain_timeout_seconds)
