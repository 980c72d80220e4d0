"""In-process domain event publisher.

Design goals
------------
1.  **Channel routing**: subscribers register for a channel, which is the generic
    ``DomainEvent`` channel, a family (``PersonEvent``), an intermediate node
    (``ContactVerified``) or a concrete variant (``EmailVerified``).  An event
    is delivered along its class chain, most general channel first, so
    generic subscribers always run before family subscribers.
2.  **Explicit delivery mode**: ``DeliveryMode.SYNC`` handlers are awaited
    in registration order inside ``publish()``; their errors propagate to
    the caller and abort the rest of the dispatch (fail fast, so that a
    transactional caller rolls back).  ``DeliveryMode.ASYNC`` handlers are
    scheduled as independent asyncio tasks once every SYNC handler has
    succeeded; their errors are logged and dead-lettered, never propagated.
3.  **Commit-aware scheduling**: inside ``deferred()`` ASYNC deliveries and
    the history entry are held back until the block exits cleanly, so they
    observe committed state.  They are dropped if the block raises.  An
    event vetoed by a SYNC handler never reaches the history.
4.  **No synchronous feedback**: publishing from inside a SYNC handler
    raises ``ReentrantPublishError``.

Delivery is in-process and not durable: a crash between commit and
scheduling loses the ASYNC deliveries.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict, deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import partial
from typing import Any

from people_registry.core.enums import DeliveryMode
from people_registry.core.errors import ReentrantPublishError
from people_registry.domain.events import DomainEvent

logger = logging.getLogger(__name__)

# Type alias for event handlers.  Coroutine functions are awaited; plain
# callables are called directly (SYNC) or in a worker thread (ASYNC).
EventHandler = Callable[[DomainEvent], Awaitable[None] | None]

# event_type currently being dispatched to SYNC handlers in this context
_dispatching: ContextVar[str | None] = ContextVar("_dispatching", default=None)

# settle callbacks held back by an enclosing ``deferred()`` block
_deferred: ContextVar[list[Callable[[], None]] | None] = ContextVar("_deferred", default=None)


@dataclass(frozen=True)
class Subscription:
    channel: type[DomainEvent]
    handler: EventHandler
    mode: DeliveryMode
    name: str


def _handler_name(handler: Callable[..., Any]) -> str:
    owner = getattr(handler, "__self__", None)
    name = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    if owner is not None and "." not in name:
        return f"{type(owner).__name__}.{name}"
    return name


class EventPublisher:
    """Fans events out to generic, family and variant channels.

    Parameters
    ----------
    history_limit
        Number of most recent published events kept for inspection.
    """

    def __init__(self, *, history_limit: int = 1000) -> None:
        self._subscriptions: dict[type[DomainEvent], list[Subscription]] = defaultdict(list)
        self._history: deque[DomainEvent] = deque(maxlen=history_limit)
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: list[tuple[DomainEvent, str, str]] = []
        self._messages_processed: int = 0
        self._tasks: set[asyncio.Task[None]] = set()

    # -- Registration ------------------------------------------------------

    def subscribe(
        self,
        channel: type[DomainEvent],
        handler: EventHandler,
        *,
        mode: DeliveryMode = DeliveryMode.SYNC,
        name: str | None = None,
    ) -> Subscription:
        """Register *handler* on *channel*.

        Registration is meant to happen once at startup; there is no
        unsubscribe.
        """
        if not (isinstance(channel, type) and issubclass(channel, DomainEvent)):
            raise TypeError(f"channel must be a DomainEvent class, got {channel!r}")
        subscription = Subscription(
            channel=channel,
            handler=handler,
            mode=DeliveryMode(mode),
            name=name or _handler_name(handler),
        )
        self._subscriptions[channel].append(subscription)
        logger.debug(
            "Subscribed %s to %s (%s)",
            subscription.name, channel.__name__, subscription.mode.value,
        )
        return subscription

    def subscribers_for(self, event_cls: type[DomainEvent]) -> list[Subscription]:
        """Subscriptions an event of *event_cls* would reach, in dispatch order."""
        return [
            sub
            for channel in event_cls.channels()
            for sub in self._subscriptions.get(channel, ())
        ]

    # -- Core API ----------------------------------------------------------

    async def publish(self, event: DomainEvent) -> None:
        """Publish *event* to every matching subscriber.

        Raises
        ------
        ReentrantPublishError
            If called from inside a SYNC handler.
        Exception
            Whatever a SYNC handler raised; remaining SYNC handlers are
            skipped and no ASYNC handler is scheduled.
        """
        current = _dispatching.get()
        if current is not None:
            raise ReentrantPublishError(event.event_type)

        logger.debug("Publishing event: %s (%s)", event.event_type, event.event_id)

        async_subscriptions: list[Subscription] = []
        token = _dispatching.set(event.event_type)
        try:
            for sub in self.subscribers_for(type(event)):
                if sub.mode is DeliveryMode.ASYNC:
                    async_subscriptions.append(sub)
                    continue
                await self._invoke(sub, event)
        finally:
            _dispatching.reset(token)

        pending = _deferred.get()
        if pending is not None:
            pending.append(partial(self._settle, event, async_subscriptions))
        else:
            self._settle(event, async_subscriptions)

    async def publish_all(self, events: Iterable[DomainEvent]) -> None:
        """Publish *events* one at a time, in the given order."""
        for event in events:
            await self.publish(event)

    @asynccontextmanager
    async def deferred(self) -> AsyncIterator[None]:
        """Hold ASYNC deliveries and history until the block exits cleanly.

        Usage::

            async with publisher.deferred(), uow_factory() as uow:
                ...
                await publisher.publish(event)   # SYNC handlers run here
            # ASYNC handlers are scheduled here, after commit
        """
        outer = _deferred.get()
        pending: list[Callable[[], None]] = []
        token = _deferred.set(pending)
        try:
            yield
        except BaseException:
            if pending:
                logger.debug("Dropping %d deferred events", len(pending))
            raise
        finally:
            _deferred.reset(token)

        if outer is not None:
            outer.extend(pending)
            return
        for settle in pending:
            settle()

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding ASYNC deliveries.

        Deliveries scheduled while draining are waited for too.  Whatever is
        still running when *timeout* expires is cancelled.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else max(deadline - loop.time(), 0.0)
            pending = list(self._tasks)
            _, not_done = await asyncio.wait(pending, timeout=remaining)
            if not_done:
                logger.warning(
                    "Timeout waiting for %d async deliveries, cancelling them",
                    len(not_done),
                )
                for task in not_done:
                    task.cancel()
                await asyncio.gather(*not_done, return_exceptions=True)
                return

    # -- Internals ---------------------------------------------------------

    def _settle(self, event: DomainEvent, subscriptions: list[Subscription]) -> None:
        self._history.append(event)
        for sub in subscriptions:
            self._schedule(sub, event)

    async def _invoke(self, sub: Subscription, event: DomainEvent) -> None:
        try:
            result = sub.handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._error_counts[sub.name] += 1
            logger.error(
                "Synchronous subscriber %s failed on %s (%s); aborting dispatch",
                sub.name, event.event_type, event.event_id,
            )
            raise
        self._messages_processed += 1

    def _schedule(self, sub: Subscription, event: DomainEvent) -> None:
        task = asyncio.get_running_loop().create_task(
            self._run_detached(sub, event),
            name=f"{sub.name}:{event.event_type}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_detached(self, sub: Subscription, event: DomainEvent) -> None:
        try:
            if inspect.iscoroutinefunction(sub.handler):
                await sub.handler(event)
            else:
                result = await asyncio.to_thread(sub.handler, event)
                if inspect.isawaitable(result):
                    await result
            self._messages_processed += 1
        except Exception as exc:
            self._error_counts[sub.name] += 1
            self._dead_letters.append((event, sub.name, str(exc)))
            logger.exception(
                "Asynchronous subscriber %s failed on %s (%s)",
                sub.name, event.event_type, event.event_id,
            )

    # -- Observability -----------------------------------------------------

    def get_history(
        self,
        event_type: type[DomainEvent] | None = None,
    ) -> list[DomainEvent]:
        """Return published events, optionally filtered by channel."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if isinstance(e, event_type)]

    def clear_history(self) -> None:
        """Clear the event history (testing helper)."""
        self._history.clear()

    def get_error_counts(self) -> dict[str, int]:
        """Return ``{subscriber_name: error_count}``."""
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[tuple[DomainEvent, str, str]]:
        """ASYNC deliveries that failed: ``(event, subscriber, error)``."""
        return list(self._dead_letters)

    def clear_dead_letters(self) -> list[tuple[DomainEvent, str, str]]:
        """Drain and return dead letters."""
        drained = self._dead_letters[:]
        self._dead_letters.clear()
        return drained

    @property
    def messages_processed(self) -> int:
        return self._messages_processed

    @property
    def pending_count(self) -> int:
        """ASYNC deliveries scheduled but not finished."""
        return len(self._tasks)
