"""
Reorganisation recovery: brings the network and every read model back to one height.
"""

from typing import Optional

import structlog

from evm_crawler.eventstore.write_repository import EventStoreWriteRepository
from evm_crawler.framework.factory import ModelFactoryService
from evm_crawler.network.network import Network
from evm_crawler.services.network_model_factory import NetworkModelFactoryService

logger = structlog.get_logger(__name__)


class ReorganisationCommandHandler:
    """
    Rolls durable history back to the network's fork point.

    The rollback target is read from the network after its own walk, which can
    go deeper than the height where the fork was first noticed. Each call
    starts from the stored head, so repeated calls converge on the same height.
    """

    def __init__(
        self,
        network_model_factory: NetworkModelFactoryService,
        model_factory: ModelFactoryService,
        event_store: EventStoreWriteRepository,
        blockchain_provider,
    ):
        self.network_model_factory = network_model_factory
        self.model_factory = model_factory
        self.event_store = event_store
        self.blockchain_provider = blockchain_provider
        self.logger = logger.bind(service="reorganisation")

    async def execute(self, request_id: str, network_model: Optional[Network] = None) -> int:
        """
        Run the recovery.

        Args:
            request_id: Request that triggered the recovery
            network_model: Freshly rehydrated network without pending events;
                loaded from the store when omitted

        Returns:
            The height all state was rolled back to
        """
        if network_model is None or network_model.get_uncommitted_events():
            network_model = await self.network_model_factory.init_model()

        await network_model.reorganisation(
            reorg_height=network_model.last_block_height,
            request_id=request_id,
            service=self.blockchain_provider,
        )

        # The walk may have gone deeper than the detected fork
        reorg_height = network_model.last_block_height

        await self.event_store.rollback(
            models_to_rollback=self.model_factory.create_new_models(),
            block_height=reorg_height,
            models_to_save=[network_model],
        )

        self.logger.info("🔄 Blocks successfully reorganized", request_id=request_id, block_height=reorg_height)
        return reorg_height
