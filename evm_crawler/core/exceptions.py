"""
Custom exception classes for the crawler.
Provides structured error handling across all modules.
"""

from typing import Any, Optional, Dict


class CrawlerException(Exception):
    """Base exception class for the EVM crawler."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(CrawlerException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class PersistenceError(CrawlerException):
    """Raised when the event store fails. Nothing of the failed operation is committed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PERSISTENCE_ERROR", details)


class BlockchainProviderError(CrawlerException):
    """Raised when the network provider fails or returns garbage."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROVIDER_ERROR", details)


class ForkDetectedError(CrawlerException):
    """
    Raised by the network aggregate when a batch does not chain from its head.

    Recoverable: the batch handler turns it into a reorganisation.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "FORK_DETECTED", details)


class NetworkInitializationCancelledError(CrawlerException):
    """Raised when the operator declines the data reset at startup."""

    def __init__(self, config_start_height: int, current_db_height: int):
        super().__init__(
            "Network initialization cancelled by user",
            "INITIALIZATION_CANCELLED",
            {
                "config_start_height": config_start_height,
                "current_db_height": current_db_height,
            }
        )


class DataResetRequiredError(CrawlerException):
    """Raised when the operator confirmed that all persisted data must be cleared."""

    def __init__(self, config_start_height: int, current_db_height: int):
        super().__init__(
            "Data reset required",
            "DATA_RESET_REQUIRED",
            {
                "config_start_height": config_start_height,
                "current_db_height": current_db_height,
            }
        )


class ValidationError(CrawlerException):
    """Raised when data validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(CrawlerException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_FOUND", details)


class ModelNotFoundError(NotFoundError):
    """Raised when a query names models that are not registered."""

    def __init__(self, model_ids: list):
        super().__init__(
            f"No models found for: {', '.join(model_ids)}",
            {"model_ids": list(model_ids)}
        )
