"""
Write side of the event store.

Every mutating operation runs in a single database transaction, so either all
appended (and deleted) events of all given aggregates become visible together
or none do. Events are published only after the transaction committed.
"""

from typing import Iterable, List, Sequence, TypeVar, Union

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from evm_crawler.core.exceptions import PersistenceError
from evm_crawler.framework.aggregate import AggregateRoot, EMPTY_BLOCK_HEIGHT
from evm_crawler.framework.publisher import EventPublisher
from evm_crawler.models.event import EventRecord

from .serialization import to_event, to_record

logger = structlog.get_logger(__name__)

A = TypeVar("A", bound=AggregateRoot)


class EventStoreWriteRepository:
    """Rehydrates aggregates and appends their events atomically."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], publisher: EventPublisher):
        self.session_maker = session_maker
        self.publisher = publisher
        self.logger = logger.bind(service="eventstore_write")

    async def get_one(self, aggregate: A) -> A:
        """Replay every persisted event of the aggregate onto the given instance."""
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(EventRecord)
                    .where(EventRecord.aggregate_id == aggregate.aggregate_id)
                    .order_by(EventRecord.version)
                )
                records = result.scalars().all()
        except SQLAlchemyError as e:
            self.logger.error("Failed to load aggregate", aggregate_id=aggregate.aggregate_id, error=str(e))
            raise PersistenceError(
                f"Failed to load aggregate {aggregate.aggregate_id}: {e}",
                {"aggregate_id": aggregate.aggregate_id}
            ) from e

        aggregate.load_from_history(to_event(record) for record in records)
        return aggregate

    async def save(self, aggregates: Union[AggregateRoot, Sequence[AggregateRoot]]) -> None:
        """Append the uncommitted events of all aggregates in one transaction."""
        aggregates = self._as_list(aggregates)
        records = self._collect_records(aggregates)
        if not records:
            return

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    session.add_all(records)
        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to save aggregates",
                aggregate_ids=[a.aggregate_id for a in aggregates],
                events=len(records),
                error=str(e)
            )
            raise PersistenceError(
                f"Failed to save events: {e}",
                {"aggregate_ids": [a.aggregate_id for a in aggregates]}
            ) from e

        self.logger.debug("Events saved", events=len(records))
        await self._publish(aggregates)

    async def rollback(
        self,
        models_to_rollback: Iterable[AggregateRoot],
        block_height: int,
        models_to_save: Iterable[AggregateRoot] = (),
    ) -> None:
        """
        Truncate history above ``block_height`` and append new events, atomically.

        A height of EMPTY_BLOCK_HEIGHT (or below) removes the whole history of
        the rolled back aggregates.
        """
        rollback_ids = [model.aggregate_id for model in models_to_rollback]
        models_to_save = self._as_list(list(models_to_save))
        records = self._collect_records(models_to_save)

        statement = delete(EventRecord).where(EventRecord.aggregate_id.in_(rollback_ids))
        if block_height > EMPTY_BLOCK_HEIGHT:
            statement = statement.where(EventRecord.block_height > block_height)
        statement = statement.execution_options(synchronize_session=False)

        try:
            async with self.session_maker() as session:
                async with session.begin():
                    if rollback_ids:
                        await session.execute(statement)
                    session.add_all(records)
        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to roll back aggregates",
                aggregate_ids=rollback_ids,
                block_height=block_height,
                error=str(e)
            )
            raise PersistenceError(
                f"Failed to roll back events: {e}",
                {"aggregate_ids": rollback_ids, "block_height": block_height}
            ) from e

        self.logger.info(
            "Aggregates rolled back",
            aggregate_ids=rollback_ids,
            block_height=block_height,
            saved_events=len(records)
        )
        await self._publish(models_to_save)

    @staticmethod
    def _as_list(aggregates) -> List[AggregateRoot]:
        if isinstance(aggregates, AggregateRoot):
            return [aggregates]
        return list(aggregates)

    @staticmethod
    def _collect_records(aggregates: List[AggregateRoot]) -> List[EventRecord]:
        return [
            to_record(event)
            for aggregate in aggregates
            for event in aggregate.get_uncommitted_events()
        ]

    async def _publish(self, aggregates: List[AggregateRoot]) -> None:
        for aggregate in aggregates:
            await self.publisher.publish_all(aggregate.commit())
