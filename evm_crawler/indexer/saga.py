"""
Network saga - turns network events into blocks queue commands.

Delivery is at-least-once with bounded retries, so every action here must be
safe to repeat.
"""

import asyncio
import uuid
from typing import Awaitable, Callable

import structlog

from evm_crawler.core.config import Settings
from evm_crawler.framework.events import BasicEvent
from evm_crawler.framework.publisher import EventPublisher
from evm_crawler.network.events import (
    NetworkInitializedEvent,
    NetworkBlocksAddedEvent,
    NetworkReorganizedEvent,
    NetworkClearedEvent,
)
from evm_crawler.services.blocks_queue import BlocksQueueService
from evm_crawler.services.network_command_factory import NetworkCommandFactoryService

logger = structlog.get_logger(__name__)


def execute_with_retry(
    command: Callable[[BasicEvent], Awaitable[None]],
    max_retries: int = 3,
    retry_delay: float = 0.5,
) -> Callable[[BasicEvent], Awaitable[None]]:
    """
    Wrap a saga command with bounded retries and exponential backoff.

    After the last attempt the failure is logged and the event dropped, so a
    broken reaction never fails the write that published the event.
    """

    async def handler(event: BasicEvent) -> None:
        for attempt in range(max_retries):
            try:
                await command(event)
                return
            except Exception as e:
                if attempt < max_retries - 1:
                    wait_time = retry_delay * (2 ** attempt)
                    logger.warning(
                        "⚠️ Saga command failed, retrying",
                        event_type=event.event_type,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        wait_time=wait_time,
                        error=str(e)
                    )
                    await asyncio.sleep(wait_time)
                else:
                    logger.error(
                        "❌ Saga command failed, giving up",
                        event_type=event.event_type,
                        request_id=event.request_id,
                        max_retries=max_retries,
                        error=str(e),
                        error_type=type(e).__name__,
                        exc_info=True
                    )

    return handler


class NetworkSaga:
    """Reacts to network events; never touches the event store."""

    def __init__(
        self,
        blocks_queue: BlocksQueueService,
        network_command_factory: NetworkCommandFactoryService,
        config: Settings,
    ):
        self.blocks_queue = blocks_queue
        self.network_command_factory = network_command_factory
        self.max_retries = config.saga_max_retries
        self.retry_delay = config.saga_retry_delay
        self.logger = logger.bind(service="network_saga")

    def register(self, publisher: EventPublisher) -> None:
        """Subscribe every reaction to the publisher."""
        reactions = {
            NetworkInitializedEvent: self.on_network_initialized,
            NetworkBlocksAddedEvent: self.on_blocks_added,
            NetworkReorganizedEvent: self.on_network_reorganized,
            NetworkClearedEvent: self.on_network_cleared,
        }
        for event_cls, command in reactions.items():
            publisher.subscribe(
                event_cls,
                execute_with_retry(command, self.max_retries, self.retry_delay)
            )

    async def on_network_initialized(self, event: NetworkInitializedEvent) -> None:
        await self.blocks_queue.start(event.block_height)

    async def on_blocks_added(self, event: NetworkBlocksAddedEvent) -> None:
        await self.blocks_queue.confirm_processed_batch(
            [block["hash"] for block in event.payload.get("blocks", [])]
        )

    async def on_network_reorganized(self, event: NetworkReorganizedEvent) -> None:
        await self.blocks_queue.reorganize_blocks(event.block_height)

    async def on_network_cleared(self, event: NetworkClearedEvent) -> None:
        self.logger.info("Network cleared, reinitializing")
        await self.network_command_factory.init(request_id=str(uuid.uuid4()))
