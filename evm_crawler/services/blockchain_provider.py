"""
EVM JSON-RPC client used as the crawler's data source.
Provides the current chain tip and block lookups by height.
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
import structlog

from evm_crawler.core.config import Settings, NetworkConfig
from evm_crawler.core.exceptions import BlockchainProviderError


logger = structlog.get_logger(__name__)


def normalize_block(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a JSON-RPC block into the dict shape read models receive."""
    block = dict(raw)
    block["blockNumber"] = int(raw["number"], 16)
    block["size"] = int(raw.get("size") or "0x0", 16)
    block["transactions"] = list(raw.get("transactions") or [])
    return block


class BlockchainProviderService:
    """
    Async JSON-RPC client for an EVM node.

    Provides high-level methods for:
    - Reading the current chain tip
    - Fetching one or many blocks with full transactions
    """

    def __init__(self, config: Settings, session: Optional[aiohttp.ClientSession] = None):
        self.config = NetworkConfig.get_provider_config(config)
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)
        self.logger = logger.bind(service="blockchain_provider")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config["timeout"])
            )
            self._owns_session = True
        return self._session

    async def _call(self, method: str, params: List[Any]) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            async with self._get_session().post(self.config["endpoint"], json=request) as response:
                if response.status != 200:
                    raise BlockchainProviderError(
                        f"Provider returned HTTP {response.status}",
                        {"method": method, "status": response.status}
                    )
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.error("Provider request failed", method=method, error=str(e))
            raise BlockchainProviderError(f"Provider request {method} failed: {e}", {"method": method})

        if data.get("error"):
            raise BlockchainProviderError(
                f"Provider error for {method}: {data['error']}",
                {"method": method, "error": data["error"]}
            )
        return data.get("result")

    async def get_current_block_height(self) -> int:
        """Get the height of the chain tip."""
        result = await self._call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError):
            raise BlockchainProviderError("Invalid block number from provider", {"result": result})

    async def get_one_block_by_height(self, height: int) -> Optional[Dict[str, Any]]:
        """Get a block with full transactions, or None if the node does not have it."""
        raw = await self._call("eth_getBlockByNumber", [hex(height), True])
        if raw is None:
            return None
        return normalize_block(raw)

    async def get_many_blocks_by_heights(self, heights: Sequence[int]) -> List[Dict[str, Any]]:
        """Get blocks for all heights, in the order of ``heights``."""
        blocks = await asyncio.gather(*(self.get_one_block_by_height(h) for h in heights))
        missing = [h for h, block in zip(heights, blocks) if block is None]
        if missing:
            raise BlockchainProviderError("Provider is missing blocks", {"heights": missing})
        return list(blocks)
