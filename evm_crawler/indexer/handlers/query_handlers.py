"""
Query handlers: events and model snapshots for external readers.
"""

import sys
from typing import Any, Dict, List, Union

from evm_crawler.api.schemas import FetchEventsQuery, GetModelsQuery
from evm_crawler.core.exceptions import ModelNotFoundError
from evm_crawler.eventstore.read_repository import EventStoreReadRepository
from evm_crawler.framework.factory import ModelFactoryService
from evm_crawler.services.network_model_factory import NetworkModelFactoryService

LATEST_BLOCK_HEIGHT = sys.maxsize


class FetchEventsQueryHandler:
    """Paginated events of the requested aggregates."""

    def __init__(self, read_repository: EventStoreReadRepository):
        self.read_repository = read_repository

    async def execute(self, query: FetchEventsQuery) -> Dict[str, Any]:
        return await self.read_repository.fetch_events(
            query.model_ids,
            block_height=query.filter.block_height,
            version=query.filter.version,
            limit=query.paging.limit,
            offset=query.paging.offset,
        )


class GetModelsQueryHandler:
    """Snapshots of registered models (and the network) at a height."""

    def __init__(
        self,
        read_repository: EventStoreReadRepository,
        model_factory: ModelFactoryService,
        network_model_factory: NetworkModelFactoryService,
    ):
        self.read_repository = read_repository
        self.model_factory = model_factory
        self.network_model_factory = network_model_factory

    async def execute(self, query: GetModelsQuery) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """
        Returns:
            One snapshot dict when a single model matched, a list otherwise

        Raises:
            ModelNotFoundError: If none of the ids is a registered model
        """
        candidates = [*self.model_factory.create_new_models(), self.network_model_factory.create_new_model()]
        models = [model for model in candidates if model.aggregate_id in query.model_ids]

        if not models:
            raise ModelNotFoundError(query.model_ids)

        block_height = query.filter.block_height
        if block_height is None:
            block_height = LATEST_BLOCK_HEIGHT

        if len(models) == 1:
            return await self.read_repository.get_snapshot_by_height(models[0], block_height)
        return await self.read_repository.get_many_snapshots_by_height(models, block_height)
