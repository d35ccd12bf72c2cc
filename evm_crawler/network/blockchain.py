"""
Bounded in-memory chain of light blocks kept by the network aggregate.
"""

from collections import deque
from dataclasses import dataclass, asdict
from typing import Any, Deque, Dict, List, Optional


@dataclass(frozen=True)
class LightBlock:
    """Just enough of a block to check parent linkage."""
    height: int
    hash: str
    parent_hash: str

    @classmethod
    def from_block(cls, block: Dict[str, Any]) -> "LightBlock":
        return cls(
            height=int(block["blockNumber"]),
            hash=block["hash"],
            parent_hash=block["parentHash"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_block(self) -> Dict[str, Any]:
        """Header-only block dict, readable by from_block()."""
        return {
            "blockNumber": self.height,
            "hash": self.hash,
            "parentHash": self.parent_hash,
        }


class Blockchain:
    """Keeps the last ``max_size`` blocks in height order."""

    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self._blocks: Deque[LightBlock] = deque(maxlen=max_size)

    def __len__(self) -> int:
        return len(self._blocks)

    @property
    def last_block(self) -> Optional[LightBlock]:
        return self._blocks[-1] if self._blocks else None

    @property
    def last_block_height(self) -> Optional[int]:
        last = self.last_block
        return last.height if last else None

    def find_block_by_height(self, height: int) -> Optional[LightBlock]:
        if not self._blocks:
            return None
        offset = height - self._blocks[0].height
        if offset < 0 or offset >= len(self._blocks):
            return None
        return self._blocks[offset]

    def add_blocks(self, blocks: List[LightBlock]) -> None:
        self._blocks.extend(blocks)

    def truncate_to_height(self, height: int) -> List[LightBlock]:
        """Remove every block above ``height`` and return them, highest first."""
        removed = []
        while self._blocks and self._blocks[-1].height > height:
            removed.append(self._blocks.pop())
        return removed

    def clear(self) -> None:
        self._blocks.clear()

    def to_list(self) -> List[Dict[str, Any]]:
        return [block.to_dict() for block in self._blocks]
