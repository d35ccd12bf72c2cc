"""
Domain event base class and the registry used to rebuild events from storage.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type

from evm_crawler.core.exceptions import ValidationError

# Event class name -> event class, filled by BasicEvent.__init_subclass__
EVENT_TYPES: Dict[str, Type["BasicEvent"]] = {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BasicEvent:
    """
    A single state change of an aggregate.

    Subclasses are registered by class name, so user read models only need to
    subclass this to get their events persisted and replayed.
    """

    aggregate_id: str
    request_id: Optional[str]
    block_height: int
    payload: Dict[str, Any] = field(default_factory=dict)
    version: int = 0
    timestamp: datetime = field(default_factory=_utcnow)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        EVENT_TYPES[cls.__name__] = cls

    @property
    def event_type(self) -> str:
        return type(self).__name__


def resolve_event_type(name: str) -> Type[BasicEvent]:
    """Look up a registered event class by name."""
    try:
        return EVENT_TYPES[name]
    except KeyError:
        raise ValidationError(
            f"Unknown event type: {name}",
            {"event_type": name}
        )
