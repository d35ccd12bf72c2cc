"""
Startup height reconciliation.
"""

from typing import Optional

import structlog

from evm_crawler.core.config import Settings
from evm_crawler.core.exceptions import DataResetRequiredError, NetworkInitializationCancelledError
from evm_crawler.eventstore.write_repository import EventStoreWriteRepository
from evm_crawler.framework.aggregate import EMPTY_BLOCK_HEIGHT
from evm_crawler.framework.factory import ModelFactoryService
from evm_crawler.framework.publisher import EventPublisher
from evm_crawler.services.network_model_factory import NetworkModelFactoryService

logger = structlog.get_logger(__name__)


class InitNetworkCommandHandler:
    """
    Decides where ingestion resumes and records it as one NetworkInitializedEvent.

    When the configured start height leaves a gap above the persisted data,
    the operator must confirm wiping everything; the wipe publishes a
    NetworkClearedEvent and the next initialization starts from scratch.
    """

    def __init__(
        self,
        network_model_factory: NetworkModelFactoryService,
        model_factory: ModelFactoryService,
        event_store: EventStoreWriteRepository,
        publisher: EventPublisher,
        blockchain_provider,
        console_prompt,
        config: Settings,
    ):
        self.network_model_factory = network_model_factory
        self.model_factory = model_factory
        self.event_store = event_store
        self.publisher = publisher
        self.blockchain_provider = blockchain_provider
        self.console_prompt = console_prompt
        self.config = config
        self.logger = logger.bind(service="init_network")

    async def execute(self, request_id: str) -> None:
        current_network_height = await self.blockchain_provider.get_current_block_height()

        network_model = await self.network_model_factory.init_model()

        config_start_height = self.config.start_block_height
        current_db_height = network_model.current_block_height

        try:
            start_height = self.determine_start_height(
                current_db_height,
                config_start_height,
                current_network_height
            )
        except DataResetRequiredError:
            self.logger.info("Clearing database as requested by user", request_id=request_id)

            await self.event_store.rollback(
                models_to_rollback=[*self.model_factory.create_new_models(), network_model],
                block_height=EMPTY_BLOCK_HEIGHT,
            )

            # Published only; the saga reinitializes on it
            network_model.clear_chain(request_id)
            await self.publisher.publish_all(network_model.commit())

            self.logger.info("Database cleared successfully, network will be reinitialized")
            return

        network_model.init(request_id, start_height)
        await self.event_store.save(network_model)

        self.logger.info(
            "Network successfully initialized",
            request_id=request_id,
            last_indexed_height=start_height,
            next_block_to_process=start_height + 1,
            current_network_height=current_network_height
        )

    def determine_start_height(
        self,
        current_db_height: Optional[int],
        config_start_height: Optional[int],
        current_network_height: int,
    ) -> int:
        """
        Resolve the last indexed height to resume after.

        Raises:
            NetworkInitializationCancelledError: If the operator declined the data reset
            DataResetRequiredError: If the operator confirmed the data reset
        """
        # Empty database - first launch
        if current_db_height is None:
            if config_start_height is None:
                # Listen mode: follow the tip
                return current_network_height - 1
            # Historical mode
            return config_start_height - 1

        if config_start_height is None:
            return current_db_height

        # Already covered, reprocessing is not needed
        if config_start_height <= current_db_height:
            return current_db_height

        if config_start_height > current_db_height + 1:
            confirmed = self.console_prompt.ask_data_reset_confirmation(
                config_start_height,
                current_db_height
            )
            if not confirmed:
                self.logger.info("Network initialization cancelled by user")
                raise NetworkInitializationCancelledError(config_start_height, current_db_height)
            raise DataResetRequiredError(config_start_height, current_db_height)

        return current_db_height
