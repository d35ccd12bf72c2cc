"""
Event record model - the durable, append-only log of every aggregate.
"""

from typing import Optional, Dict, Any

from sqlalchemy import String, Integer, BigInteger, Index, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, TimestampMixin


class EventRecord(BaseModel, TimestampMixin):
    """One persisted domain event of one aggregate."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    aggregate_id: Mapped[str] = mapped_column(
        String(128),
        comment="Owning aggregate"
    )

    version: Mapped[int] = mapped_column(
        Integer,
        comment="Aggregate version after this event"
    )

    event_type: Mapped[str] = mapped_column(
        String(128),
        comment="Registered event class name"
    )

    request_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment="Request that produced the event"
    )

    block_height: Mapped[int] = mapped_column(
        BigInteger,
        comment="Chain height the event belongs to"
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        comment="Event payload"
    )

    __table_args__ = (
        UniqueConstraint("aggregate_id", "version", name="uq_event_aggregate_version"),
        Index("idx_event_aggregate_height", "aggregate_id", "block_height"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventRecord(aggregate={self.aggregate_id}, version={self.version}, "
            f"type={self.event_type}, height={self.block_height})>"
        )
