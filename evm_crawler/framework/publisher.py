"""
In-process event publisher.

Committed (and a few publish-only) events are handed to every subscriber of
their class, in subscription order.
"""

from collections import defaultdict
from typing import Awaitable, Callable, Dict, Iterable, List, Type

import structlog

from .events import BasicEvent

logger = structlog.get_logger(__name__)

EventHandler = Callable[[BasicEvent], Awaitable[None]]


class EventPublisher:
    """Dispatches events to subscribers keyed by event class."""

    def __init__(self):
        self.logger = logger.bind(service="event_publisher")
        self._subscribers: Dict[Type[BasicEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_cls: Type[BasicEvent], handler: EventHandler) -> None:
        self._subscribers[event_cls].append(handler)

    def unsubscribe_all(self) -> None:
        self._subscribers.clear()

    async def publish(self, event: BasicEvent) -> None:
        handlers = self._subscribers.get(type(event), [])
        self.logger.debug(
            "Publishing event",
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
            block_height=event.block_height,
            subscribers=len(handlers)
        )
        for handler in handlers:
            await handler(event)

    async def publish_all(self, events: Iterable[BasicEvent]) -> None:
        for event in events:
            await self.publish(event)
