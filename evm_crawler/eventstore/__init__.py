"""
SQLAlchemy-backed event store.
"""

from .write_repository import EventStoreWriteRepository
from .read_repository import EventStoreReadRepository

__all__ = [
    "EventStoreWriteRepository",
    "EventStoreReadRepository",
]
