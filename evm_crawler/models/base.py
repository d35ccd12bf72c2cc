"""
Declarative base and shared mixins for the event store tables.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all tables."""


class BaseModel(Base):
    """Abstract base with a readable repr."""

    __abstract__ = True

    def __repr__(self) -> str:
        columns = ", ".join(
            f"{column.key}={getattr(self, column.key)!r}"
            for column in self.__table__.columns
        )
        return f"<{type(self).__name__}({columns})>"


class TimestampMixin:
    """Adds a creation timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        comment="When the row was written"
    )
