"""
User read model base class.
"""

from typing import Any, Dict, Optional, Type

from .aggregate import AggregateRoot


class Model(AggregateRoot):
    """
    A user-defined projection over the chain.

    Subclasses take no constructor arguments, pass their aggregate id to
    ``super().__init__`` and implement parse_block(), applying whatever events
    they derive from the block.

    Example:
        class BlocksModel(Model):
            def __init__(self):
                super().__init__("blocks")
                self.hashes = set()

            async def parse_block(self, block, network_config=None, services=None):
                self.apply(BlockAddedEvent(
                    aggregate_id=self.aggregate_id,
                    request_id=None,
                    block_height=block["blockNumber"],
                    payload={"hash": block["hash"]},
                ))

            def on_block_added_event(self, event):
                self.hashes.add(event.payload["hash"])
    """

    async def parse_block(
        self,
        block: Dict[str, Any],
        network_config: Optional[Dict[str, Any]] = None,
        services: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError("method parse_block() has to be implemented")


ModelType = Type[Model]
