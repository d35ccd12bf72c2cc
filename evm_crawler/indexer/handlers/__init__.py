"""
Command and query handlers of the crawler.
"""

from .add_blocks_batch import AddBlocksBatchCommandHandler
from .init_network import InitNetworkCommandHandler
from .reorganisation import ReorganisationCommandHandler
from .query_handlers import FetchEventsQueryHandler, GetModelsQueryHandler

__all__ = [
    "AddBlocksBatchCommandHandler",
    "InitNetworkCommandHandler",
    "ReorganisationCommandHandler",
    "FetchEventsQueryHandler",
    "GetModelsQueryHandler",
]
