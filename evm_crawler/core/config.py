"""
Configuration management using Pydantic Settings.
Every option can be set from the environment with the EVM_CRAWLER_ prefix.
"""

from typing import Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Crawler settings with environment-based configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EVM_CRAWLER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    debug: bool = False
    environment: str = "development"

    # Event store
    database_url: str = "sqlite+aiosqlite:///./eventstore/evm.db"
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # Network provider
    network_provider_url: str = "http://localhost:8545"
    network_request_timeout: int = 30  # seconds
    network_chain_id: int = 1
    network_max_chain_size: int = 1000

    # Business settings
    start_block_height: Optional[int] = Field(
        default=None,
        description="Block height from which processing begins. If unset, only new blocks are followed."
    )
    max_block_height: Optional[int] = Field(
        default=None,
        description="Maximum block height to be processed. Unset means no limit."
    )

    # Blocks queue
    blocks_queue_batch_size: int = 1
    blocks_queue_poll_interval: float = 1.0  # seconds
    blocks_queue_retry_delay: float = 5.0  # seconds

    # Saga
    saga_max_retries: int = 3
    saga_retry_delay: float = 0.5  # seconds

    # Read models, as "package.module:ClassName" import paths
    models: List[str] = []

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console
    log_file: Optional[str] = None

    @field_validator("start_block_height", "max_block_height", mode="before")
    @classmethod
    def empty_height_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("start_block_height", "max_block_height")
    @classmethod
    def validate_height(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Block height must not be negative")
        return v

    @field_validator("blocks_queue_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Blocks queue batch size must be at least 1")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


# Global settings instance
settings = Settings()


class DatabaseConfig:
    """Database-specific configuration."""

    @staticmethod
    def get_database_url(config: Optional[Settings] = None) -> str:
        """Get database URL with its async driver."""
        url = (config or settings).database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://")
        elif url.startswith("sqlite://"):
            return url.replace("sqlite://", "sqlite+aiosqlite://")
        return url

    @staticmethod
    def get_engine_config(url: str, config: Optional[Settings] = None) -> dict:
        """Get SQLAlchemy engine configuration."""
        if url.startswith("sqlite"):
            # SQLite serializes writers itself; pool sizing does not apply
            return {}
        config = config or settings
        return {
            "pool_size": config.database_pool_size,
            "max_overflow": config.database_max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }


class NetworkConfig:
    """Network provider configuration handed to read models."""

    @staticmethod
    def get_provider_config(config: Optional[Settings] = None) -> dict:
        """Get JSON-RPC provider configuration."""
        config = config or settings
        return {
            "endpoint": config.network_provider_url,
            "chain_id": config.network_chain_id,
            "timeout": config.network_request_timeout,
        }
