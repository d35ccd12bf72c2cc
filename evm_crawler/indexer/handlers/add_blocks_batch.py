"""
Batch ingestion: applies one batch to the network and every read model, atomically.
"""

from typing import Any, Dict, List, Optional

import structlog

from evm_crawler.core.exceptions import ForkDetectedError
from evm_crawler.core.metrics import MetricsService
from evm_crawler.eventstore.write_repository import EventStoreWriteRepository
from evm_crawler.framework.factory import ModelFactoryService
from evm_crawler.services.network_model_factory import NetworkModelFactoryService

from .reorganisation import ReorganisationCommandHandler

logger = structlog.get_logger(__name__)


class AddBlocksBatchCommandHandler:
    """
    Handles one delivered batch.

    Either the network and all models advance by exactly this batch in one
    store transaction, or nothing is written. A fork hands over to the
    reorganisation handler and returns normally; any other error propagates.
    """

    def __init__(
        self,
        network_model_factory: NetworkModelFactoryService,
        model_factory: ModelFactoryService,
        event_store: EventStoreWriteRepository,
        reorganisation_handler: ReorganisationCommandHandler,
        metrics: MetricsService,
        blockchain_provider=None,
        network_config: Optional[Dict[str, Any]] = None,
    ):
        self.network_model_factory = network_model_factory
        self.model_factory = model_factory
        self.event_store = event_store
        self.reorganisation_handler = reorganisation_handler
        self.metrics = metrics
        self.blockchain_provider = blockchain_provider
        self.network_config = network_config or {}
        self.logger = logger.bind(service="add_blocks_batch")

    async def execute(self, batch: List[Dict[str, Any]], request_id: str) -> None:
        log = self.logger.bind(request_id=request_id, **_height_range(batch))

        network_model = await self.network_model_factory.init_model()

        async with self.metrics.track("framework_restore_models"):
            models = await self.model_factory.restore_models()

        services = {"provider": self.blockchain_provider}
        try:
            try:
                network_model.add_blocks(request_id, batch)
            except ForkDetectedError as e:
                log.warning("Fork detected, reorganising", reason=e.message, **e.details)
                await self.reorganisation_handler.execute(request_id, network_model)
                return

            for block in batch:
                async with self.metrics.track("framework_parse_block"):
                    for model in models:
                        await model.parse_block(
                            block,
                            network_config=self.network_config,
                            services=services,
                        )

            async with self.metrics.track("system_eventstore_save"):
                await self.event_store.save([*models, network_model])
        except Exception as e:
            log.error(
                "Error while loading blocks",
                error=str(e),
                error_type=type(e).__name__
            )
            raise

        log.info("✅ Blocks successfully loaded", blocks_height=batch[-1].get("blockNumber"))
        log.debug(
            "Batch stats",
            blocks_length=len(batch),
            blocks_size=sum(block.get("size") or 0 for block in batch),
            tx_length=sum(len(block.get("transactions") or []) for block in batch),
            framework_restore_models=self.metrics.get_metric("framework_restore_models"),
            framework_parse_block_total=self.metrics.get_metric("framework_parse_block"),
            system_eventstore_save_total=self.metrics.get_metric("system_eventstore_save"),
        )


def _height_range(batch: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not batch:
        return {"from_height": None, "to_height": None}
    return {
        "from_height": batch[0].get("blockNumber"),
        "to_height": batch[-1].get("blockNumber"),
    }
