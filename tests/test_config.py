"""
Test settings parsing and derived configuration.
"""

import pytest
from pydantic import ValidationError

from evm_crawler.core.config import DatabaseConfig, NetworkConfig, Settings


def test_heights_from_environment(monkeypatch):
    """Test heights are read from prefixed variables and blank means unset."""
    monkeypatch.setenv("EVM_CRAWLER_START_BLOCK_HEIGHT", "")
    monkeypatch.setenv("EVM_CRAWLER_MAX_BLOCK_HEIGHT", "500")

    config = Settings(_env_file=None)

    assert config.start_block_height is None
    assert config.max_block_height == 500


@pytest.mark.parametrize("overrides", [
    {"start_block_height": -1},
    {"blocks_queue_batch_size": 0},
    {"environment": "qa"},
    {"log_level": "chatty"},
])
def test_invalid_settings(overrides):
    """Test invalid values are rejected."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_log_level_is_normalized():
    """Test log level case does not matter."""
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize("url, expected", [
    ("sqlite:///./events.db", "sqlite+aiosqlite:///./events.db"),
    ("postgresql://user:pw@db/evm", "postgresql+asyncpg://user:pw@db/evm"),
    ("sqlite+aiosqlite:///x.db", "sqlite+aiosqlite:///x.db"),
])
def test_async_database_url(url, expected):
    """Test database URLs get the async driver."""
    config = Settings(_env_file=None, database_url=url)

    assert DatabaseConfig.get_database_url(config) == expected


def test_engine_config_depends_on_backend():
    """Test pool options are only used for server databases."""
    config = Settings(_env_file=None, database_pool_size=3)

    assert DatabaseConfig.get_engine_config("sqlite+aiosqlite:///x.db", config) == {}
    assert DatabaseConfig.get_engine_config("postgresql+asyncpg://db/evm", config)["pool_size"] == 3


def test_provider_config():
    """Test the network config handed to read models."""
    config = Settings(_env_file=None, network_provider_url="http://node:8545", network_chain_id=137)

    assert NetworkConfig.get_provider_config(config) == {
        "endpoint": "http://node:8545",
        "chain_id": 137,
        "timeout": 30,
    }
