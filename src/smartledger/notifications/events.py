"""In-process notification channel for ledger events.

Publishers hand value-typed events to the bus; any number of subscribers
receive them. A failing subscriber is logged and skipped so that it can
never undo or block the operation that produced the event.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountCreated:
    """A proxy account was created for owner."""

    owner: str
    account_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[AccountCreated], Union[None, Awaitable[None]]]


class EventBus:
    """Fan-out of ledger events to callback and queue subscribers."""

    def __init__(self, queue_size: int = 100):
        self._handlers: list[Handler] = []
        self._queues: list[asyncio.Queue] = []
        self.queue_size = queue_size

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register a callback (sync or async). Returns an unsubscribe function."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def open_queue(self) -> asyncio.Queue:
        """Register a bounded queue subscriber (for streaming consumers)."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._queues.append(queue)
        return queue

    def close_queue(self, queue: asyncio.Queue) -> None:
        """Remove a queue subscriber."""
        if queue in self._queues:
            self._queues.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers) + len(self._queues)

    async def publish(self, event: AccountCreated) -> None:
        """Deliver event to every subscriber."""
        logger.debug(f"Publishing {type(event).__name__}: {event}")

        for handler in list(self._handlers):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Event handler {handler!r} failed: {type(e).__name__}: {e}")

        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Event queue full - dropping event for slow subscriber")


# Shared bus instance
_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get or create the shared event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Drop the shared bus and all its subscribers (useful for testing)."""
    global _event_bus
    _event_bus = None
