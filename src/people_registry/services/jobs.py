"""Simulated background jobs.

Two periodic jobs report fabricated outcomes through
:meth:`SystemService.record_job_completion` so that system events flow
while the service is running:

* data import, every ``import_interval_seconds``: 100-999 records
  processed, 0-9 failed, successful when fewer than 5 failed;
* notifications, every ``notification_interval_seconds``: 10-99 sent,
  0-4 failed, successful when fewer than 3 failed.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from people_registry.core.config import JobsConfig
from people_registry.core.enums import JobKind
from people_registry.core.ids import new_id
from people_registry.domain.events import JobCompleted
from people_registry.domain.result import Result

from .system_service import JobOutcome, SystemService

logger = logging.getLogger(__name__)


class JobSimulator:
    def __init__(self, system: SystemService, config: JobsConfig | None = None) -> None:
        self._system = system
        self._config = config or JobsConfig()
        self._rng = random.Random(self._config.random_seed)
        self._tasks: list[asyncio.Task[None]] = []

    # -- Single runs -------------------------------------------------------

    async def run_data_import(self) -> Result[JobCompleted]:
        logger.info("Starting simulated data import job")
        processed = self._rng.randint(100, 999)
        failed = self._rng.randint(0, 9)
        ok = failed < 5
        return await self._system.record_job_completion(
            JobOutcome(
                kind=JobKind.DATA_IMPORT,
                job_id=new_id(),
                success=ok,
                message="Import completed successfully" if ok else "Import completed with errors",
                processed=processed,
                failed=failed,
            )
        )

    async def run_notification_job(self) -> Result[JobCompleted]:
        logger.info("Starting simulated notification job")
        sent = self._rng.randint(10, 99)
        failed = self._rng.randint(0, 4)
        ok = failed < 3
        return await self._system.record_job_completion(
            JobOutcome(
                kind=JobKind.NOTIFICATION,
                job_id=new_id(),
                success=ok,
                message="Notifications sent successfully" if ok else "Some notifications failed",
                processed=sent,
                failed=failed,
            )
        )

    async def run(self, kind: JobKind) -> Result[JobCompleted]:
        match kind:
            case JobKind.DATA_IMPORT:
                return await self.run_data_import()
            case JobKind.NOTIFICATION:
                return await self.run_notification_job()
        raise ValueError(f"Unknown job kind: {kind!r}")

    # -- Scheduling --------------------------------------------------------

    def start(self) -> None:
        """Schedule both jobs on the running loop."""
        if self._tasks:
            return
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(
                self._every(self._config.import_interval_seconds, self.run_data_import),
                name="job:import",
            ),
            loop.create_task(
                self._every(self._config.notification_interval_seconds, self.run_notification_job),
                name="job:notification",
            ),
        ]
        logger.info(
            "Job simulator started (import every %ss, notifications every %ss)",
            self._config.import_interval_seconds,
            self._config.notification_interval_seconds,
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def _every(
        self, interval: float, job: Callable[[], Awaitable[Result[JobCompleted]]]
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await job()
            except Exception:
                # a failing subscriber must not end the schedule
                logger.exception("Simulated job %s raised", job.__name__)
