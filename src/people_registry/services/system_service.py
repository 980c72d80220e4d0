"""Application lifecycle and scheduled-job completion events."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from people_registry.core.enums import JobKind
from people_registry.domain.events import (
    ApplicationStarted,
    ApplicationStopping,
    DataImportCompleted,
    JobCompleted,
    NotificationJobCompleted,
)
from people_registry.domain.result import Result, success, validation_failure
from people_registry.infrastructure.event_bus import EventPublisher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobOutcome:
    """What a finished job reports.

    ``processed`` and ``failed`` are records for an import job and
    notifications for a notification job.
    """

    kind: JobKind
    job_id: str
    success: bool
    message: str
    processed: int
    failed: int


class SystemService:
    """Publishes system events; nothing is persisted."""

    def __init__(self, publisher: EventPublisher) -> None:
        self._publisher = publisher

    async def record_job_completion(self, outcome: JobOutcome) -> Result[JobCompleted]:
        errors = {
            name: "must not be negative"
            for name in ("processed", "failed")
            if getattr(outcome, name) < 0
        }
        if errors:
            return validation_failure("Job counts must not be negative", errors)

        event: JobCompleted
        match outcome.kind:
            case JobKind.DATA_IMPORT:
                event = DataImportCompleted(
                    job_id=outcome.job_id,
                    success=outcome.success,
                    message=outcome.message,
                    records_processed=outcome.processed,
                    records_failed=outcome.failed,
                )
            case JobKind.NOTIFICATION:
                event = NotificationJobCompleted(
                    job_id=outcome.job_id,
                    success=outcome.success,
                    message=outcome.message,
                    notifications_sent=outcome.processed,
                    notifications_failed=outcome.failed,
                )
            case _:
                raise ValueError(f"Unknown job kind: {outcome.kind!r}")

        async with self._publisher.deferred():
            await self._publisher.publish(event)
        return success(event)

    async def announce_started(self, version: str, environment: str) -> Result[ApplicationStarted]:
        logger.info("Application starting (version=%s, environment=%s)", version, environment)
        event = ApplicationStarted(version=version, environment=environment)
        await self._publisher.publish(event)
        return success(event)

    async def announce_stopping(self, reason: str = "Normal shutdown") -> Result[ApplicationStopping]:
        logger.info("Application stopping: %s", reason)
        event = ApplicationStopping(reason=reason)
        await self._publisher.publish(event)
        return success(event)
