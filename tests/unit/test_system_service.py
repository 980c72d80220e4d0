"""Tests for SystemService and the simulated job scheduler."""

from __future__ import annotations

import asyncio

import pytest

from people_registry.core.config import JobsConfig
from people_registry.core.enums import JobKind
from people_registry.domain.events import (
    ApplicationStarted,
    ApplicationStopping,
    DataImportCompleted,
    JobCompleted,
    NotificationJobCompleted,
)
from people_registry.domain.result import Success, ValidationFailed
from people_registry.services import JobOutcome, JobSimulator, SystemService


def _outcome(kind: JobKind = JobKind.DATA_IMPORT, **overrides) -> JobOutcome:
    fields = dict(
        kind=kind, job_id="job-1", success=True, message="done", processed=10, failed=0,
    )
    fields.update(overrides)
    return JobOutcome(**fields)


class TestRecordJobCompletion:
    @pytest.mark.asyncio
    async def test_import_outcome(self, publisher, recorder):
        result = await SystemService(publisher).record_job_completion(
            _outcome(processed=120, failed=3)
        )

        event = result.get_or_none()
        assert isinstance(event, DataImportCompleted)
        assert (event.records_processed, event.records_failed) == (120, 3)
        assert recorder.events == [event]

    @pytest.mark.asyncio
    async def test_notification_outcome(self, publisher, recorder):
        result = await SystemService(publisher).record_job_completion(
            _outcome(JobKind.NOTIFICATION, processed=40, failed=1, success=False)
        )

        event = result.get_or_none()
        assert isinstance(event, NotificationJobCompleted)
        assert event.notifications_sent == 40
        assert event.success is False

    @pytest.mark.asyncio
    async def test_negative_counts_rejected(self, publisher, recorder):
        result = await SystemService(publisher).record_job_completion(
            _outcome(processed=-1, failed=-2)
        )

        reason = result.fold(lambda v: None, lambda r: r)
        assert isinstance(reason, ValidationFailed)
        assert set(reason.field_errors) == {"processed", "failed"}
        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self, publisher, recorder):
        with pytest.raises(ValueError, match="Unknown job kind"):
            await SystemService(publisher).record_job_completion(_outcome(kind="cleanup"))

        assert recorder.events == []
        assert publisher.get_history() == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_announce_started_and_stopping(self, publisher, recorder):
        system = SystemService(publisher)

        started = await system.announce_started("1.2.3", "test")
        stopping = await system.announce_stopping()

        assert isinstance(started, Success) and isinstance(stopping, Success)
        assert [type(e) for e in recorder.events] == [ApplicationStarted, ApplicationStopping]
        assert recorder.events[0].version == "1.2.3"
        assert recorder.events[1].reason == "Normal shutdown"


class TestJobSimulator:
    @pytest.mark.asyncio
    async def test_import_ranges(self, publisher, recorder):
        jobs = JobSimulator(SystemService(publisher), JobsConfig(random_seed=7))

        for _ in range(20):
            await jobs.run_data_import()

        for event in recorder.of_type(DataImportCompleted):
            assert 100 <= event.records_processed <= 999
            assert 0 <= event.records_failed <= 9
            assert event.success == (event.records_failed < 5)
            expected = (
                "Import completed successfully" if event.success else "Import completed with errors"
            )
            assert event.message == expected

    @pytest.mark.asyncio
    async def test_notification_ranges(self, publisher, recorder):
        jobs = JobSimulator(SystemService(publisher), JobsConfig(random_seed=7))

        for _ in range(20):
            await jobs.run(JobKind.NOTIFICATION)

        events = recorder.of_type(NotificationJobCompleted)
        assert len(events) == 20
        for event in events:
            assert 10 <= event.notifications_sent <= 99
            assert 0 <= event.notifications_failed <= 4
            assert event.success == (event.notifications_failed < 3)

    @pytest.mark.asyncio
    async def test_seed_is_reproducible(self, publisher):
        def counts(result):
            event = result.get_or_none()
            return event.records_processed, event.records_failed

        first = JobSimulator(SystemService(publisher), JobsConfig(random_seed=3))
        second = JobSimulator(SystemService(publisher), JobsConfig(random_seed=3))

        assert counts(await first.run_data_import()) == counts(await second.run_data_import())

    @pytest.mark.asyncio
    async def test_start_and_stop(self, publisher, recorder):
        config = JobsConfig(
            import_interval_seconds=0.01, notification_interval_seconds=0.01, random_seed=1,
        )
        jobs = JobSimulator(SystemService(publisher), config)

        jobs.start()
        assert jobs.running
        await asyncio.sleep(0.1)
        await jobs.stop()

        assert not jobs.running
        assert recorder.of_type(DataImportCompleted)
        assert recorder.of_type(NotificationJobCompleted)

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_stop_schedule(self, publisher):
        calls: list[JobCompleted] = []

        def flaky(event):
            calls.append(event)
            raise RuntimeError("subscriber down")

        publisher.subscribe(DataImportCompleted, flaky)
        config = JobsConfig(
            import_interval_seconds=0.01, notification_interval_seconds=60, random_seed=1,
        )
        jobs = JobSimulator(SystemService(publisher), config)

        jobs.start()
        await asyncio.sleep(0.1)
        await jobs.stop()

        assert len(calls) >= 2
