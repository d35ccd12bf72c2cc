"""
Network aggregate - the canonical chain height owned by the crawler write path.
"""

from typing import Any, Dict, List, Optional, Protocol

import structlog

from evm_crawler.core.exceptions import ForkDetectedError, ValidationError
from evm_crawler.framework.aggregate import AggregateRoot, EMPTY_BLOCK_HEIGHT

from .blockchain import Blockchain, LightBlock
from .events import (
    NetworkInitializedEvent,
    NetworkBlocksAddedEvent,
    NetworkReorganizedEvent,
    NetworkClearedEvent,
)

logger = structlog.get_logger(__name__)

NETWORK_AGGREGATE_ID = "network"


class BlockSource(Protocol):
    """What the reorganisation walk needs from the data source."""

    async def get_one_block_by_height(self, height: int) -> Optional[Dict[str, Any]]:
        ...


class Network(AggregateRoot):
    """
    Chain head of the crawler.

    Accepts only batches that continue the retained chain, and walks back
    against the data source to find the fork point on reorganisation.
    """

    def __init__(self, aggregate_id: str = NETWORK_AGGREGATE_ID, max_size: int = 1000):
        super().__init__(aggregate_id)
        self.chain = Blockchain(max_size=max_size)
        self.initialized = False
        self.logger = logger.bind(service="network", aggregate_id=aggregate_id)

    @property
    def current_block_height(self) -> Optional[int]:
        """Last persisted height, or None if nothing was ever persisted."""
        return self.last_block_height if self.initialized else None

    def init(self, request_id: str, start_height: int) -> None:
        self.apply(NetworkInitializedEvent(
            aggregate_id=self.aggregate_id,
            request_id=request_id,
            block_height=start_height,
        ))

    def add_blocks(self, request_id: str, blocks: List[Dict[str, Any]]) -> None:
        """
        Append a batch to the chain.

        Raises:
            ValidationError: If the batch is empty or a block is malformed
            ForkDetectedError: If the batch does not chain from the current head
        """
        if not blocks:
            raise ValidationError("Cannot add an empty batch", {"request_id": request_id})

        try:
            light_blocks = [LightBlock.from_block(block) for block in blocks]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed block in batch: {e}", {"request_id": request_id})

        self._validate_next_blocks(light_blocks)

        self.apply(NetworkBlocksAddedEvent(
            aggregate_id=self.aggregate_id,
            request_id=request_id,
            block_height=light_blocks[-1].height,
            payload={"blocks": [block.to_block() for block in light_blocks]},
        ))

    async def reorganisation(self, reorg_height: int, request_id: str, service: BlockSource) -> None:
        """
        Walk back from ``reorg_height`` until the local block matches the canonical one.

        Every mismatching local block is dropped. The walk stops early when the
        retained chain runs out; that height is then treated as the fork point.
        """
        height = reorg_height
        removed: List[Dict[str, Any]] = []

        while height > EMPTY_BLOCK_HEIGHT:
            local_block = self.chain.find_block_by_height(height)
            if local_block is None:
                if removed or len(self.chain):
                    self.logger.warning(
                        "Reorganisation walked past retained chain",
                        height=height,
                        retained=len(self.chain)
                    )
                break

            canonical = await service.get_one_block_by_height(height)
            if (
                canonical is not None
                and canonical.get("hash") == local_block.hash
                and canonical.get("parentHash") == local_block.parent_hash
            ):
                break

            removed.append(local_block.to_dict())
            height -= 1

        self.logger.info(
            "Network reorganisation point found",
            request_id=request_id,
            reorg_height=reorg_height,
            new_height=height,
            removed_blocks=len(removed)
        )

        self.apply(NetworkReorganizedEvent(
            aggregate_id=self.aggregate_id,
            request_id=request_id,
            block_height=height,
            payload={"blocks": removed},
        ))

    def clear_chain(self, request_id: str) -> None:
        self.apply(NetworkClearedEvent(
            aggregate_id=self.aggregate_id,
            request_id=request_id,
            block_height=EMPTY_BLOCK_HEIGHT,
        ))

    def to_snapshot(self) -> Dict[str, Any]:
        snapshot = super().to_snapshot()
        snapshot["initialized"] = self.initialized
        snapshot["chain"] = self.chain.to_list()
        return snapshot

    def _validate_next_blocks(self, blocks: List[LightBlock]) -> None:
        expected_height = self.last_block_height + 1
        previous = self.chain.last_block

        for block in blocks:
            if block.height != expected_height:
                raise ForkDetectedError(
                    "Block height does not continue the chain",
                    {"expected_height": expected_height, "block_height": block.height}
                )
            if previous is not None and block.parent_hash != previous.hash:
                raise ForkDetectedError(
                    "Block parent hash does not match the chain head",
                    {"block_height": block.height, "parent_hash": block.parent_hash, "head_hash": previous.hash}
                )
            previous = block
            expected_height += 1

    # Event handlers

    def on_network_initialized_event(self, event: NetworkInitializedEvent) -> None:
        self.initialized = True
        self.chain.truncate_to_height(event.block_height)

    def on_network_blocks_added_event(self, event: NetworkBlocksAddedEvent) -> None:
        self.initialized = True
        self.chain.add_blocks([LightBlock.from_block(block) for block in event.payload["blocks"]])

    def on_network_reorganized_event(self, event: NetworkReorganizedEvent) -> None:
        self.chain.truncate_to_height(event.block_height)

    def on_network_cleared_event(self, event: NetworkClearedEvent) -> None:
        self.initialized = False
        self.chain.clear()
