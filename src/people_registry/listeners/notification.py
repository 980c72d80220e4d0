"""Outbound notifications triggered by person events.

All handlers are ASYNC: they run after the triggering transaction has
committed and never hold up the request.  Delivery goes through a
:class:`NotificationSender`; the default :class:`LoggingNotificationSender`
only logs and keeps an outbox.

Each ``(event_id, channel)`` pair is sent at most once, so a redelivered
event does not produce a second email or SMS.  Only the most recent
``claim_limit`` pairs are remembered.  Sender errors are logged
and counted here rather than left to the publisher.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Protocol

from people_registry.core.enums import DeliveryMode
from people_registry.domain.events import (
    ContactVerified,
    EmailVerified,
    PersonCreated,
    PersonDeleted,
    PhoneVerified,
)
from people_registry.domain.values import Email, Phone
from people_registry.infrastructure.event_bus import EventPublisher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundMessage:
    channel: str  # "email" | "sms" | "log"
    recipient: str
    subject: str
    body: str


class NotificationSender(Protocol):
    async def send_email(self, to: Email, subject: str, body: str) -> None: ...
    async def send_sms(self, to: Phone, message: str) -> None: ...


class LoggingNotificationSender:
    """Logs each message and keeps the last ``outbox_size`` of them."""

    def __init__(self, outbox_size: int = 1000) -> None:
        self._outbox: deque[OutboundMessage] = deque(maxlen=outbox_size)

    @property
    def outbox(self) -> list[OutboundMessage]:
        """Oldest first."""
        return list(self._outbox)

    async def send_email(self, to: Email, subject: str, body: str) -> None:
        logger.info("EMAIL TO: %s, SUBJECT: %s", to, subject)
        self._outbox.append(OutboundMessage("email", to.value, subject, body))

    async def send_sms(self, to: Phone, message: str) -> None:
        logger.info("SMS TO: %s", to)
        self._outbox.append(OutboundMessage("sms", to.value, "", message))


class NotificationService:
    def __init__(
        self, sender: NotificationSender | None = None, *, claim_limit: int = 10_000
    ) -> None:
        self.sender = sender or LoggingNotificationSender()
        self._sent: set[tuple[str, str]] = set()
        self._claims: deque[tuple[str, str]] = deque()
        self._claim_limit = claim_limit
        self.failures = 0

    def register(self, publisher: EventPublisher) -> None:
        publisher.subscribe(PersonCreated, self.send_welcome_email, mode=DeliveryMode.ASYNC)
        publisher.subscribe(
            PersonDeleted, self.send_account_closed_notice, mode=DeliveryMode.ASYNC,
        )
        publisher.subscribe(
            ContactVerified, self.send_verification_confirmation, mode=DeliveryMode.ASYNC,
        )

    async def send_welcome_email(self, event: PersonCreated) -> None:
        if event.email is None:
            logger.info(
                "No email available for person %s, skipping welcome email", event.person_id,
            )
            return
        await self._deliver(event.event_id, "email", partial(
            self.sender.send_email, event.email, "Welcome!", "Welcome to our platform!",
        ))

    async def send_account_closed_notice(self, event: PersonDeleted) -> None:
        # the person row is gone, so there is no address to write to
        if self._claim(event.event_id, "log"):
            logger.info("Person %s (%s) was deleted", event.person_id, event.name)

    async def send_verification_confirmation(self, event: ContactVerified) -> None:
        match event:
            case EmailVerified(email=email):
                await self._deliver(event.event_id, "email", partial(
                    self.sender.send_email, email,
                    "Email Verified", "Your email has been successfully verified!",
                ))
            case PhoneVerified(phone=phone):
                await self._deliver(event.event_id, "sms", partial(
                    self.sender.send_sms, phone,
                    "Your phone number has been successfully verified!",
                ))
            case _:
                logger.error("Unhandled contact verification: %s", type(event).__name__)

    def _claim(self, event_id: str, channel: str) -> bool:
        key = (event_id, channel)
        if key in self._sent:
            logger.debug("Notification %s/%s already sent", event_id, channel)
            return False
        self._sent.add(key)
        self._claims.append(key)
        while len(self._claims) > self._claim_limit:
            self._sent.discard(self._claims.popleft())
        return True

    def _release(self, key: tuple[str, str]) -> None:
        if key in self._sent:
            self._sent.remove(key)
            self._claims.remove(key)

    @property
    def claimed(self) -> int:
        """Number of (event_id, channel) pairs currently remembered."""
        return len(self._sent)

    async def _deliver(
        self, event_id: str, channel: str, send: Callable[[], Awaitable[None]]
    ) -> None:
        if not self._claim(event_id, channel):
            return
        try:
            await send()
        except Exception:
            # release the claim so a redelivery can retry
            self._release((event_id, channel))
            self.failures += 1
            logger.exception("Failed to send %s notification for event %s", channel, event_id)
