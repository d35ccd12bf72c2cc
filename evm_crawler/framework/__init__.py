"""
Event-sourcing building blocks shared by the network aggregate and user read models.
"""

from .events import BasicEvent, EVENT_TYPES, resolve_event_type
from .aggregate import AggregateRoot, EMPTY_BLOCK_HEIGHT
from .model import Model, ModelType
from .factory import ModelFactoryService
from .publisher import EventPublisher

__all__ = [
    "BasicEvent",
    "EVENT_TYPES",
    "resolve_event_type",
    "AggregateRoot",
    "EMPTY_BLOCK_HEIGHT",
    "Model",
    "ModelType",
    "ModelFactoryService",
    "EventPublisher",
]
