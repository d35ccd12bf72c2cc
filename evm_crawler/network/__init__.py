"""
Network aggregate, its light chain and its domain events.
"""

from .blockchain import Blockchain, LightBlock
from .events import (
    NetworkInitializedEvent,
    NetworkBlocksAddedEvent,
    NetworkReorganizedEvent,
    NetworkClearedEvent,
)
from .network import Network, NETWORK_AGGREGATE_ID

__all__ = [
    "Blockchain",
    "LightBlock",
    "NetworkInitializedEvent",
    "NetworkBlocksAddedEvent",
    "NetworkReorganizedEvent",
    "NetworkClearedEvent",
    "Network",
    "NETWORK_AGGREGATE_ID",
]
