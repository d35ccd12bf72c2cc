"""
Event-sourced aggregate root.

State changes go through apply(): the matching ``on_<snake_case_event_name>``
handler mutates the aggregate, the version is bumped and the event is queued
until the event store commits it.
"""

import re
from typing import Any, Dict, Iterable, List

from .events import BasicEvent

EMPTY_BLOCK_HEIGHT = -1

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def handler_name(event_type: str) -> str:
    """BlockAddedEvent -> on_block_added_event"""
    return "on_" + _CAMEL_BOUNDARY.sub("_", event_type).lower()


class AggregateRoot:
    """Base for the network aggregate and every read model."""

    def __init__(self, aggregate_id: str):
        self.aggregate_id = aggregate_id
        self.version = 0
        self.last_block_height = EMPTY_BLOCK_HEIGHT
        self._uncommitted_events: List[BasicEvent] = []

    def apply(self, event: BasicEvent) -> None:
        """Apply a new event and queue it for persistence."""
        self._mutate(event)
        self.version += 1
        event.version = self.version
        self._uncommitted_events.append(event)

    def load_from_history(self, events: Iterable[BasicEvent]) -> None:
        """Replay persisted events without queuing them."""
        for event in events:
            self._mutate(event)
            self.version = event.version

    def get_uncommitted_events(self) -> List[BasicEvent]:
        return list(self._uncommitted_events)

    def commit(self) -> List[BasicEvent]:
        """Drop the queued events and return them for publishing."""
        events = self._uncommitted_events
        self._uncommitted_events = []
        return events

    def to_snapshot(self) -> Dict[str, Any]:
        """Serializable view of the aggregate; subclasses extend it."""
        return {
            "aggregate_id": self.aggregate_id,
            "version": self.version,
            "block_height": self.last_block_height,
        }

    def _mutate(self, event: BasicEvent) -> None:
        handler = getattr(self, handler_name(event.event_type), None)
        if handler is not None:
            handler(event)
        self.last_block_height = event.block_height

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__}(aggregate_id={self.aggregate_id}, "
            f"version={self.version}, block_height={self.last_block_height})>"
        )
