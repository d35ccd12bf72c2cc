"""
Main entry point for the crawler service.
Wires the event store, the write-side handlers, the saga and the blocks queue.
"""

import asyncio
import importlib
import signal
import sys
from typing import Any, List, Optional, Sequence

import structlog

from evm_crawler.api.schemas import FetchEventsQuery, GetModelsQuery
from evm_crawler.core.config import Settings, NetworkConfig, settings as default_settings
from evm_crawler.core.database import init_database, close_database, DatabaseManager
from evm_crawler.core.exceptions import ConfigurationError, NetworkInitializationCancelledError
from evm_crawler.core.logging import setup_logging
from evm_crawler.core.metrics import MetricsService
from evm_crawler.eventstore import EventStoreReadRepository, EventStoreWriteRepository
from evm_crawler.framework import EventPublisher, Model, ModelFactoryService, ModelType
from evm_crawler.indexer.handlers import (
    AddBlocksBatchCommandHandler,
    FetchEventsQueryHandler,
    GetModelsQueryHandler,
    InitNetworkCommandHandler,
    ReorganisationCommandHandler,
)
from evm_crawler.indexer.saga import NetworkSaga
from evm_crawler.network.network import NETWORK_AGGREGATE_ID
from evm_crawler.services.blockchain_provider import BlockchainProviderService
from evm_crawler.services.blocks_queue import BlocksQueueService
from evm_crawler.services.console_prompt import ConsolePromptService
from evm_crawler.services.network_command_factory import NetworkCommandFactoryService
from evm_crawler.services.network_model_factory import NetworkModelFactoryService

logger = structlog.get_logger(__name__)


def load_models(paths: Sequence[str]) -> List[ModelType]:
    """Import read model classes from "package.module:ClassName" paths."""
    model_types = []
    for path in paths:
        module_name, _, class_name = path.partition(":")
        if not module_name or not class_name:
            raise ConfigurationError(f"Invalid model path: {path}", {"path": path})
        try:
            module = importlib.import_module(module_name)
            model_types.append(getattr(module, class_name))
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Cannot load model {path}: {e}", {"path": path})
    return model_types


def validate_models(model_types: Sequence[ModelType]) -> List[ModelType]:
    """Every model must be a Model subclass with its own aggregate id."""
    seen = {NETWORK_AGGREGATE_ID}
    for model_cls in model_types:
        if not isinstance(model_cls, type) or not issubclass(model_cls, Model):
            raise ConfigurationError(f"{model_cls!r} is not a Model subclass")
        aggregate_id = model_cls().aggregate_id
        if aggregate_id in seen:
            raise ConfigurationError(
                f"Duplicate aggregate id: {aggregate_id}",
                {"aggregate_id": aggregate_id, "model": model_cls.__name__}
            )
        seen.add(aggregate_id)
    return list(model_types)


class CrawlerApp:
    """
    Crawler service coordinator.

    Startup runs the network initialization once; from then on the saga keeps
    the blocks queue in step with committed events until stop() is called or
    the configured max height is reached.
    """

    def __init__(
        self,
        models: Sequence[ModelType],
        config: Optional[Settings] = None,
        blockchain_provider=None,
        console_prompt=None,
    ):
        self.config = config or default_settings
        self.model_types = validate_models(models)
        self.blockchain_provider = blockchain_provider or BlockchainProviderService(self.config)
        self.console_prompt = console_prompt or ConsolePromptService()
        self.metrics = MetricsService()
        self.publisher = EventPublisher()
        self.running = False
        self._initialized = False

    async def initialize(self) -> None:
        """Connect the database and build every component."""
        logger.info("🚀 Initializing crawler", models=[m.__name__ for m in self.model_types])

        session_maker = await init_database(self.config)
        await DatabaseManager.create_tables()

        self.event_store = EventStoreWriteRepository(session_maker, self.publisher)
        self.read_repository = EventStoreReadRepository(session_maker)

        self.model_factory = ModelFactoryService(self.event_store, self.model_types)
        self.network_model_factory = NetworkModelFactoryService(self.event_store, self.config)

        self.reorganisation_handler = ReorganisationCommandHandler(
            self.network_model_factory,
            self.model_factory,
            self.event_store,
            self.blockchain_provider,
        )
        self.add_blocks_handler = AddBlocksBatchCommandHandler(
            self.network_model_factory,
            self.model_factory,
            self.event_store,
            self.reorganisation_handler,
            self.metrics,
            blockchain_provider=self.blockchain_provider,
            network_config=NetworkConfig.get_provider_config(self.config),
        )
        self.init_handler = InitNetworkCommandHandler(
            self.network_model_factory,
            self.model_factory,
            self.event_store,
            self.publisher,
            self.blockchain_provider,
            self.console_prompt,
            self.config,
        )
        self.command_factory = NetworkCommandFactoryService(self.init_handler, self.add_blocks_handler)

        self.blocks_queue = BlocksQueueService(
            self.blockchain_provider,
            self.config,
            batch_handler=self.command_factory.handle_batch,
        )
        self.saga = NetworkSaga(self.blocks_queue, self.command_factory, self.config)
        self.saga.register(self.publisher)

        self.fetch_events_handler = FetchEventsQueryHandler(self.read_repository)
        self.get_models_handler = GetModelsQueryHandler(
            self.read_repository,
            self.model_factory,
            self.network_model_factory,
        )

        self._initialized = True
        logger.info("✅ Crawler initialized")

    async def start(self) -> None:
        """Initialize the network and run until the blocks queue exits."""
        if not self._initialized:
            await self.initialize()

        self.running = True
        await self.command_factory.init()
        await self.blocks_queue.wait_closed()
        self.running = False

    async def stop(self) -> None:
        logger.info("⏹️ Stopping crawler")
        self.running = False

        if self._initialized:
            await self.blocks_queue.stop()
            self.publisher.unsubscribe_all()
            self.metrics.log_metrics()

        close = getattr(self.blockchain_provider, "close", None)
        if close is not None:
            await close()
        await close_database()
        self._initialized = False

        logger.info("✅ Crawler stopped")

    async def query(self, query: Any) -> Any:
        """Run a read-side query."""
        if isinstance(query, FetchEventsQuery):
            return await self.fetch_events_handler.execute(query)
        if isinstance(query, GetModelsQuery):
            return await self.get_models_handler.execute(query)
        raise ConfigurationError(f"Unknown query: {type(query).__name__}")


async def bootstrap(models: Sequence[ModelType], config: Optional[Settings] = None, **kwargs) -> CrawlerApp:
    """Build and initialize a crawler; call start() on the result to run it."""
    app = CrawlerApp(models, config=config, **kwargs)
    await app.initialize()
    return app


async def main() -> int:
    """Run the crawler with the models named in the settings."""
    setup_logging(default_settings)

    app = CrawlerApp(load_models(default_settings.models), config=default_settings)

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        asyncio.create_task(app.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await app.start()
    except NetworkInitializationCancelledError as e:
        logger.error("❌ Startup cancelled", **e.details)
        return 1
    finally:
        await app.stop()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))
