"""Tests for the default event listeners."""

from __future__ import annotations

import logging

import pytest
from structlog.testing import capture_logs

from people_registry.core.enums import DeliveryMode, MembershipRole
from people_registry.domain.events import (
    ApplicationStarted,
    DataImportCompleted,
    EmailVerified,
    MemberAdded,
    NotificationJobCompleted,
    PersonCreated,
    PersonDeleted,
    PersonUpdated,
    PhoneVerified,
)
from people_registry.domain.values import Email, Phone
from people_registry.infrastructure.event_bus import EventPublisher
from people_registry.listeners import (
    AuditEventListener,
    LoggingNotificationSender,
    NotificationService,
    OutboundMessage,
    register_default_listeners,
)

EMAIL = Email.create("bob@example.com")
PHONE = Phone.create("+15551234567")


class _BrokenSender:
    def __init__(self) -> None:
        self.attempts = 0

    async def send_email(self, to, subject, body):
        self.attempts += 1
        raise ConnectionError("smtp unreachable")

    async def send_sms(self, to, message):
        self.attempts += 1
        raise ConnectionError("sms gateway unreachable")


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class TestAuditEventListener:
    @pytest.mark.asyncio
    async def test_records_newest_first(self):
        audit = AuditEventListener()
        first = PersonCreated(person_id=1, name="Ann")
        second = ApplicationStarted(version="1", environment="test")

        await audit.record(first)
        await audit.record(second)

        records = audit.recent()
        assert [r.event_id for r in records] == [second.event_id, first.event_id]
        assert records[0].family == "SystemEvent"
        assert records[1].event_type == "person.created"

    @pytest.mark.asyncio
    async def test_redelivery_recorded_once(self):
        audit = AuditEventListener()
        event = PersonCreated(person_id=1, name="Ann")

        await audit.record(event)
        await audit.record(event)

        assert len(audit.recent()) == 1

    @pytest.mark.asyncio
    async def test_trail_is_bounded(self):
        audit = AuditEventListener(trail_size=3)
        events = [PersonCreated(person_id=i, name="P") for i in range(5)]
        for event in events:
            await audit.record(event)

        assert [r.event_id for r in audit.recent()] == [e.event_id for e in reversed(events[2:])]
        assert len(audit.recent(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_sees_every_family(self):
        pub = EventPublisher()
        audit = AuditEventListener()
        audit.register(pub)

        await pub.publish(PersonDeleted(person_id=1, name="Ann"))
        await pub.publish(MemberAdded(organization_id=1, person_id=2, role=MembershipRole.MEMBER))
        await pub.publish(ApplicationStarted(version="1", environment="test"))
        assert audit.recent() == []
        await pub.drain()

        assert {r.family for r in audit.recent()} == {
            "PersonEvent", "OrganizationEvent", "SystemEvent",
        }

    def test_log_line_written_during_dispatch(self):
        audit = AuditEventListener()
        event = PersonDeleted(person_id=1, name="Ann")

        with capture_logs() as logs:
            audit.on_event(event)

        assert logs == [{"event": "audit", "domain_event": event, "log_level": "info"}]
        assert audit.recent() == []


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class TestNotificationService:
    @pytest.mark.asyncio
    async def test_welcome_email(self):
        notifications = NotificationService()

        await notifications.send_welcome_email(PersonCreated(person_id=1, name="Ann", email=EMAIL))

        assert notifications.sender.outbox == [
            OutboundMessage("email", "bob@example.com", "Welcome!", "Welcome to our platform!"),
        ]

    @pytest.mark.asyncio
    async def test_no_email_no_welcome(self):
        notifications = NotificationService()

        await notifications.send_welcome_email(PersonCreated(person_id=1, name="Ann"))

        assert notifications.sender.outbox == []

    @pytest.mark.asyncio
    async def test_verification_confirmations(self):
        notifications = NotificationService()

        await notifications.send_verification_confirmation(
            EmailVerified(person_id=1, email=EMAIL)
        )
        await notifications.send_verification_confirmation(
            PhoneVerified(person_id=1, phone=PHONE)
        )

        outbox = notifications.sender.outbox
        assert [(m.channel, m.recipient) for m in outbox] == [
            ("email", "bob@example.com"), ("sms", "+15551234567"),
        ]
        assert outbox[0].subject == "Email Verified"

    @pytest.mark.asyncio
    async def test_same_event_sent_once(self):
        notifications = NotificationService()
        event = PersonCreated(person_id=1, name="Ann", email=EMAIL)

        await notifications.send_welcome_email(event)
        await notifications.send_welcome_email(event)

        assert len(notifications.sender.outbox) == 1

    @pytest.mark.asyncio
    async def test_claims_are_bounded(self):
        notifications = NotificationService(claim_limit=3)
        events = [PersonCreated(person_id=i, name="P", email=EMAIL) for i in range(5)]

        for event in events:
            await notifications.send_welcome_email(event)

        assert notifications.claimed == 3
        # the newest claims still suppress a redelivery
        await notifications.send_welcome_email(events[-1])
        assert len(notifications.sender.outbox) == 5

    @pytest.mark.asyncio
    async def test_outbox_is_bounded(self):
        notifications = NotificationService(LoggingNotificationSender(outbox_size=2))

        for i in range(4):
            await notifications.send_welcome_email(
                PersonCreated(person_id=i, name="P", email=EMAIL)
            )

        assert len(notifications.sender.outbox) == 2
        assert notifications.claimed == 4

    @pytest.mark.asyncio
    async def test_sender_failure_is_counted_and_retryable(self, caplog):
        sender = _BrokenSender()
        notifications = NotificationService(sender)
        event = PersonCreated(person_id=1, name="Ann", email=EMAIL)

        with caplog.at_level(logging.ERROR):
            await notifications.send_welcome_email(event)
            await notifications.send_welcome_email(event)

        assert sender.attempts == 2
        assert notifications.failures == 2
        assert "Failed to send email notification" in caplog.text

    @pytest.mark.asyncio
    async def test_deleted_person_notice_logged(self, caplog):
        notifications = NotificationService()

        with caplog.at_level(logging.INFO, logger="people_registry.listeners.notification"):
            await notifications.send_account_closed_notice(PersonDeleted(person_id=4, name="Ann"))

        assert "Person 4 (Ann) was deleted" in caplog.text
        assert notifications.sender.outbox == []

    @pytest.mark.asyncio
    async def test_runs_async_after_publish(self):
        pub = EventPublisher()
        notifications = NotificationService()
        notifications.register(pub)

        await pub.publish(PersonCreated(person_id=1, name="Ann", email=EMAIL))
        assert pub.pending_count == 1
        await pub.drain()

        assert len(notifications.sender.outbox) == 1


# ---------------------------------------------------------------------------
# Logging listeners and default wiring
# ---------------------------------------------------------------------------

class TestDefaultListeners:
    @pytest.mark.asyncio
    async def test_registration(self):
        pub = EventPublisher()
        listeners = register_default_listeners(pub, audit_trail_size=10)

        assert isinstance(listeners.notifications.sender, LoggingNotificationSender)
        created = pub.subscribers_for(PersonCreated)
        assert created[0].handler == listeners.audit.on_event
        modes = {s.mode for s in pub.subscribers_for(PersonUpdated)}
        assert modes == {DeliveryMode.SYNC, DeliveryMode.ASYNC}

    @pytest.mark.asyncio
    async def test_person_update_logged_after_drain(self, caplog):
        pub = EventPublisher()
        register_default_listeners(pub)

        with caplog.at_level(logging.INFO, logger="people_registry.listeners.person"):
            await pub.publish(PersonUpdated(
                person_id=1,
                previous_name="Ann",
                new_name="Ann",
                previous_phone=None,
                new_phone=PHONE,
            ))
            await pub.drain()

        assert "Phone changed from none to +15551234567" in caplog.text
        assert "Email changed" not in caplog.text

    @pytest.mark.asyncio
    async def test_job_failures_logged_as_warning(self, caplog):
        pub = EventPublisher()
        register_default_listeners(pub)

        with caplog.at_level(logging.INFO, logger="people_registry.listeners.system"):
            await pub.publish(DataImportCompleted(
                job_id="j1", success=False, message="Import completed with errors",
                records_processed=100, records_failed=7,
            ))
            await pub.publish(NotificationJobCompleted(
                job_id="j2", success=True, message="Notifications sent successfully",
                notifications_sent=20, notifications_failed=0,
            ))

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "j1" in warnings[0].getMessage()

    @pytest.mark.asyncio
    async def test_member_added_logged(self, caplog):
        pub = EventPublisher()
        register_default_listeners(pub)

        with caplog.at_level(logging.INFO, logger="people_registry.listeners.organization"):
            await pub.publish(MemberAdded(
                organization_id=3, person_id=5, role=MembershipRole.ADMIN, reactivated=True,
            ))

        assert "Membership reactivated: org=3 person=5 role=ADMIN" in caplog.text
