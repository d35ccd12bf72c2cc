"""
EVM crawler core.

Follows an EVM chain into an event-sourced network aggregate and any number of
user read models, surviving restarts and chain reorganisations.
"""

from evm_crawler.framework import BasicEvent, Model
from evm_crawler.main import CrawlerApp, bootstrap

__version__ = "0.1.0"

__all__ = [
    "BasicEvent",
    "Model",
    "CrawlerApp",
    "bootstrap",
]
