"""System-family logging subscriber."""

from __future__ import annotations

import logging

from people_registry.core.enums import DeliveryMode
from people_registry.domain.events import (
    ApplicationStarted,
    ApplicationStopping,
    DataImportCompleted,
    JobCompleted,
    NotificationJobCompleted,
)
from people_registry.infrastructure.event_bus import EventPublisher

logger = logging.getLogger(__name__)


class SystemEventListener:
    def register(self, publisher: EventPublisher) -> None:
        publisher.subscribe(ApplicationStarted, self.on_started, mode=DeliveryMode.SYNC)
        publisher.subscribe(ApplicationStopping, self.on_stopping, mode=DeliveryMode.SYNC)
        publisher.subscribe(JobCompleted, self.on_job_completed, mode=DeliveryMode.SYNC)

    def on_started(self, event: ApplicationStarted) -> None:
        logger.info(
            "Application started: version=%s environment=%s", event.version, event.environment,
        )

    def on_stopping(self, event: ApplicationStopping) -> None:
        logger.info("Application stopping: reason=%s", event.reason)

    def on_job_completed(self, event: JobCompleted) -> None:
        level = logging.INFO if event.success else logging.WARNING
        logger.log(
            level, "Job completed: id=%s success=%s message=%s",
            event.job_id, event.success, event.message,
        )
        match event:
            case DataImportCompleted():
                logger.info(
                    "Data import job: processed=%d failed=%d",
                    event.records_processed, event.records_failed,
                )
            case NotificationJobCompleted():
                logger.info(
                    "Notification job: sent=%d failed=%d",
                    event.notifications_sent, event.notifications_failed,
                )
            case _:
                raise TypeError(f"Unhandled job event: {type(event).__name__}")
