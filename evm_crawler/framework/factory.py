"""
Read model factory: builds fresh model instances and rehydrates them.
"""

import asyncio
from typing import List, Sequence, TypeVar, TYPE_CHECKING

from .model import Model, ModelType

if TYPE_CHECKING:
    from evm_crawler.eventstore.write_repository import EventStoreWriteRepository

T = TypeVar("T", bound=Model)


class ModelFactoryService:
    """Creates and restores registered read models."""

    def __init__(self, repository: "EventStoreWriteRepository", model_types: Sequence[ModelType]):
        self.repository = repository
        self.model_types = list(model_types)

    def create_new_model(self, model_cls: ModelType) -> Model:
        return model_cls()

    def create_new_models(self) -> List[Model]:
        return [self.create_new_model(model_cls) for model_cls in self.model_types]

    async def restore_model(self, model: T) -> T:
        return await self.repository.get_one(model)

    async def restore_models(self) -> List[Model]:
        """Rehydrate a fresh instance of every registered model concurrently."""
        models = self.create_new_models()
        return list(await asyncio.gather(*(self.restore_model(model) for model in models)))
