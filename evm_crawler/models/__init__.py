"""
Database models for the crawler event store.
"""

from .base import Base, BaseModel, TimestampMixin
from .event import EventRecord

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "EventRecord",
]
