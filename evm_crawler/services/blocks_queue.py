"""
Blocks queue - the fetch pipeline feeding batches to the crawler.

Loads contiguous blocks above the current position from the provider and
delivers them one batch at a time. The position only moves forward once the
batch was confirmed, and jumps back when the network reorganises.
"""

import asyncio
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import structlog

from evm_crawler.core.config import Settings

logger = structlog.get_logger(__name__)

BatchHandler = Callable[[List[Dict[str, Any]], str], Awaitable[None]]


class QueueStatus(Enum):
    """Status of the blocks queue loader."""
    STOPPED = "stopped"
    RUNNING = "running"
    FINISHED = "finished"


class BlocksQueueService:
    """Single-consumer polling loader."""

    def __init__(self, provider, config: Settings, batch_handler: Optional[BatchHandler] = None):
        self.provider = provider
        self.batch_size = config.blocks_queue_batch_size
        self.poll_interval = config.blocks_queue_poll_interval
        self.retry_delay = config.blocks_queue_retry_delay
        self.max_block_height = config.max_block_height
        self.logger = logger.bind(service="blocks_queue")
        self.status = QueueStatus.STOPPED

        self._batch_handler = batch_handler
        self._next_height: Optional[int] = None
        self._in_flight: Dict[str, int] = {}
        self._reorganized = False
        self._should_stop = False
        self._task: Optional[asyncio.Task] = None

    def set_batch_handler(self, batch_handler: BatchHandler) -> None:
        self._batch_handler = batch_handler

    @property
    def next_height(self) -> Optional[int]:
        """Height of the next block to deliver."""
        return self._next_height

    @property
    def in_flight(self) -> Dict[str, int]:
        """Delivered but unconfirmed blocks, hash -> height."""
        return dict(self._in_flight)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_finished(self) -> bool:
        return (
            self.max_block_height is not None
            and self._next_height is not None
            and self._next_height > self.max_block_height
        )

    async def start(self, height: int) -> None:
        """Begin loading right after ``height``. Calling it again only moves the position."""
        self._next_height = height + 1
        self._in_flight.clear()

        if self.is_running:
            self.logger.info("Blocks queue repositioned", next_height=self._next_height)
            return

        self._should_stop = False
        self._task = asyncio.create_task(self._run())
        self.status = QueueStatus.RUNNING
        self.logger.info("🚀 Blocks queue started", next_height=self._next_height)

    async def confirm_processed_batch(self, block_hashes: Iterable[str]) -> None:
        """Release committed blocks. Unknown hashes are ignored."""
        for block_hash in block_hashes:
            self._in_flight.pop(block_hash, None)

    async def reorganize_blocks(self, height: int) -> None:
        """Drop everything above ``height`` and continue from there."""
        dropped = len(self._in_flight)
        self._in_flight.clear()
        self._next_height = height + 1
        self._reorganized = True
        self.logger.info("Blocks queue reorganized", height=height, dropped_blocks=dropped)

    async def stop(self) -> None:
        self._should_stop = True
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.status = QueueStatus.STOPPED
        self.logger.info("Blocks queue stopped")

    async def wait_closed(self) -> None:
        """Wait until the loader exits or is stopped."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def load_next_batch(self) -> bool:
        """
        Fetch and deliver one batch.

        Returns:
            False when there was nothing to load yet
        """
        if self._batch_handler is None:
            raise RuntimeError("Blocks queue has no batch handler")
        if self._next_height is None:
            return False

        tip = await self.provider.get_current_block_height()
        last_height = tip if self.max_block_height is None else min(tip, self.max_block_height)
        if self._next_height > last_height:
            return False

        first_height = self._next_height
        end_height = min(first_height + self.batch_size - 1, last_height)
        blocks = await self.provider.get_many_blocks_by_heights(list(range(first_height, end_height + 1)))

        self._in_flight = {block["hash"]: block["blockNumber"] for block in blocks}
        self._reorganized = False

        await self._batch_handler(blocks, str(uuid.uuid4()))

        if self._reorganized:
            self._reorganized = False
        elif self._in_flight:
            self.logger.warning(
                "Batch was not confirmed, it will be redelivered",
                from_height=first_height,
                to_height=end_height
            )
            self._in_flight.clear()
        else:
            self._next_height = end_height + 1
        return True

    async def _run(self) -> None:
        while not self._should_stop:
            if self.is_finished:
                self.status = QueueStatus.FINISHED
                self.logger.info("🏁 Max block height reached", max_block_height=self.max_block_height)
                break
            try:
                loaded = await self.load_next_batch()
                if not loaded:
                    await asyncio.sleep(self.poll_interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error(
                    "❌ Failed to deliver batch, retrying",
                    next_height=self._next_height,
                    retry_delay=self.retry_delay,
                    error=str(e),
                    error_type=type(e).__name__
                )
                await asyncio.sleep(self.retry_delay)
