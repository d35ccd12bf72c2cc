"""
Command entry points of the crawler write side.
"""

import uuid
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from evm_crawler.indexer.handlers.add_blocks_batch import AddBlocksBatchCommandHandler
    from evm_crawler.indexer.handlers.init_network import InitNetworkCommandHandler


class NetworkCommandFactoryService:
    """Routes commands to their handlers."""

    def __init__(
        self,
        init_handler: "InitNetworkCommandHandler",
        add_blocks_handler: "AddBlocksBatchCommandHandler",
    ):
        self.init_handler = init_handler
        self.add_blocks_handler = add_blocks_handler

    async def init(self, request_id: Optional[str] = None) -> None:
        await self.init_handler.execute(request_id or str(uuid.uuid4()))

    async def handle_batch(self, batch: List[Dict[str, Any]], request_id: str) -> None:
        await self.add_blocks_handler.execute(batch, request_id)
