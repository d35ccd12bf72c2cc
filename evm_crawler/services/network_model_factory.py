"""
Builds and rehydrates the network aggregate.
"""

from evm_crawler.core.config import Settings
from evm_crawler.eventstore.write_repository import EventStoreWriteRepository
from evm_crawler.network.network import Network, NETWORK_AGGREGATE_ID


class NetworkModelFactoryService:
    """The single place that knows how the network aggregate is constructed."""

    def __init__(self, repository: EventStoreWriteRepository, config: Settings):
        self.repository = repository
        self.max_size = max(config.blocks_queue_batch_size, config.network_max_chain_size)

    def create_new_model(self) -> Network:
        return Network(aggregate_id=NETWORK_AGGREGATE_ID, max_size=self.max_size)

    async def init_model(self) -> Network:
        return await self.repository.get_one(self.create_new_model())
