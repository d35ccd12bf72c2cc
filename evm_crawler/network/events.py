"""
Domain events of the network aggregate.
"""

from evm_crawler.framework.events import BasicEvent


class NetworkInitializedEvent(BasicEvent):
    """Startup resolved the resume height; block_height is the last indexed height."""


class NetworkBlocksAddedEvent(BasicEvent):
    """A batch was accepted; payload["blocks"] holds the block headers (number, hash, parent hash)."""


class NetworkReorganizedEvent(BasicEvent):
    """History above block_height was abandoned; payload["blocks"] lists the removed blocks."""


class NetworkClearedEvent(BasicEvent):
    """All data was wiped by the operator. Published only, never persisted."""
