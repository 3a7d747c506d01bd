"""Async event bus for domain event fan-out.

Publishing is best-effort: every subscriber runs concurrently, the bus
waits for all of them to settle, and a failing subscriber is logged
without affecting the others or the publisher.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from src.consultation.models import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None] | Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """In-process pub/sub for session domain events.

    Handlers may be plain functions or coroutine functions. A handler
    subscribed twice is only called once per event.
    """

    def __init__(self) -> None:
        # dict keeps subscription order and deduplicates
        self._handlers: dict[EventHandler, None] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers[handler] = None
        logger.debug(f"Subscribed handler {_handler_name(handler)}")

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        if self._handlers.pop(handler, _MISSING) is not _MISSING:
            logger.debug(f"Unsubscribed handler {_handler_name(handler)}")

    def clear(self) -> None:
        self._handlers.clear()

    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event to all current subscribers.

        Subscribers are snapshotted at call time, so handlers may subscribe
        or unsubscribe while an event is in flight.

        Args:
            event: Domain event to deliver
        """
        handlers = list(self._handlers)
        if not handlers:
            return

        logger.debug(f"Publishing {event.event_type} to {len(handlers)} handler(s)")

        results = await asyncio.gather(
            *(self._invoke(handler, event) for handler in handlers),
            return_exceptions=True,
        )
        for handler, result in zip(handlers, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    f"Event handler {_handler_name(handler)} failed for "
                    f"{event.event_type}: {result}",
                    exc_info=result,
                )

    @staticmethod
    async def _invoke(handler: EventHandler, event: DomainEvent) -> None:
        result = handler(event)
        if inspect.isawaitable(result):
            await result


_MISSING = object()


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
