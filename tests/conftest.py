"""
Shared fixtures: a temporary SQLite event store and fake collaborators.
"""

import pytest

from evm_crawler.core.config import Settings
from evm_crawler.core.database import init_database, close_database, DatabaseManager
from evm_crawler.eventstore import EventStoreReadRepository, EventStoreWriteRepository
from evm_crawler.framework import EventPublisher

from fakes import BlocksModel, EventRecorder, FakeBlockchainProvider, build_core, make_chain


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path}/eventstore.db",
        start_block_height=None,
        max_block_height=None,
        blocks_queue_batch_size=2,
        blocks_queue_poll_interval=0.01,
        blocks_queue_retry_delay=0.01,
        saga_max_retries=3,
        saga_retry_delay=0,
    )


@pytest.fixture
async def session_maker(settings):
    maker = await init_database(settings)
    await DatabaseManager.create_tables()
    yield maker
    await close_database()


@pytest.fixture
def publisher() -> EventPublisher:
    return EventPublisher()


@pytest.fixture
def recorder(publisher) -> EventRecorder:
    return EventRecorder(publisher)


@pytest.fixture
def event_store(session_maker, publisher) -> EventStoreWriteRepository:
    return EventStoreWriteRepository(session_maker, publisher)


@pytest.fixture
def read_repository(session_maker) -> EventStoreReadRepository:
    return EventStoreReadRepository(session_maker)


@pytest.fixture
def provider() -> FakeBlockchainProvider:
    return FakeBlockchainProvider(make_chain(0, 20), tip=100)


@pytest.fixture
def core(settings, event_store, publisher, provider):
    return build_core(settings, event_store, publisher, provider, [BlocksModel])
