"""
Read side of the event store: paginated events and point-in-time snapshots.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from evm_crawler.core.exceptions import PersistenceError
from evm_crawler.framework.aggregate import AggregateRoot
from evm_crawler.models.event import EventRecord

from .serialization import to_dict, to_event

logger = structlog.get_logger(__name__)


class EventStoreReadRepository:
    """Query access to persisted events."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker
        self.logger = logger.bind(service="eventstore_read")

    async def fetch_events(
        self,
        aggregate_ids: Sequence[str],
        block_height: Optional[int] = None,
        version: Optional[int] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        Page through the events of the given aggregates.

        Args:
            aggregate_ids: Aggregates to read
            block_height: Only events at or below this height
            version: Only events from this version onward
            limit: Page size, unbounded if None
            offset: Number of matching events to skip

        Returns:
            {"events": [...], "total": <matching events>}
        """
        conditions = [EventRecord.aggregate_id.in_(list(aggregate_ids))]
        if block_height is not None:
            conditions.append(EventRecord.block_height <= block_height)
        if version is not None:
            conditions.append(EventRecord.version >= version)

        query = (
            select(EventRecord)
            .where(*conditions)
            .order_by(EventRecord.aggregate_id, EventRecord.version)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        try:
            async with self.session_maker() as session:
                total = await session.scalar(
                    select(func.count()).select_from(EventRecord).where(*conditions)
                )
                result = await session.execute(query)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            self.logger.error("Failed to fetch events", aggregate_ids=list(aggregate_ids), error=str(e))
            raise PersistenceError(f"Failed to fetch events: {e}") from e

        return {
            "events": [to_dict(record) for record in records],
            "total": total or 0,
        }

    async def get_snapshot_by_height(self, aggregate: AggregateRoot, block_height: int) -> Dict[str, Any]:
        """State of the aggregate after replaying its events up to ``block_height``."""
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(EventRecord)
                    .where(
                        EventRecord.aggregate_id == aggregate.aggregate_id,
                        EventRecord.block_height <= block_height,
                    )
                    .order_by(EventRecord.version)
                )
                records = result.scalars().all()
        except SQLAlchemyError as e:
            self.logger.error("Failed to load snapshot", aggregate_id=aggregate.aggregate_id, error=str(e))
            raise PersistenceError(f"Failed to load snapshot of {aggregate.aggregate_id}: {e}") from e

        aggregate.load_from_history(to_event(record) for record in records)
        return aggregate.to_snapshot()

    async def get_many_snapshots_by_height(
        self,
        aggregates: Sequence[AggregateRoot],
        block_height: int
    ) -> List[Dict[str, Any]]:
        return list(await asyncio.gather(
            *(self.get_snapshot_by_height(aggregate, block_height) for aggregate in aggregates)
        ))
