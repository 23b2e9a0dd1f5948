"""EVM JSON-RPC client with fallback support."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import DataUnavailable

logger = logging.getLogger(__name__)


class EvmClient:
    """EVM RPC client with automatic endpoint fallback.

    Every request carries a total timeout so a stalled endpoint can only
    cost one ``rpc_timeout`` per endpoint before the call fails over.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise DataUnavailable(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise DataUnavailable(
            f"All RPC endpoints failed for {method}. Last error: {last_error}"
        )

    async def eth_call(self, to: str, data: bytes) -> bytes:
        """Execute a view call against the latest block and return raw output."""
        result = await self.rpc_call(
            "eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"]
        )
        if not isinstance(result, str) or not result.startswith("0x"):
            raise DataUnavailable(f"Malformed eth_call result from {to}: {result!r}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise DataUnavailable(f"Malformed eth_call result from {to}: {e}") from e

    async def block_number(self) -> int:
        result = await self.rpc_call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as e:
            raise DataUnavailable(f"Malformed block number: {result!r}") from e

    async def get_block(self, number: int) -> dict[str, Any]:
        """Get a block header (without transactions)."""
        result = await self.rpc_call("eth_getBlockByNumber", [hex(number), False])
        if not result:
            raise DataUnavailable(f"Block {number} not found")
        return result

    async def get_logs(
        self,
        address: str,
        topics: list[Any],
        from_block: int,
        to_block: int,
    ) -> list[dict[str, Any]]:
        """Get logs emitted by ``address`` matching ``topics`` in a block range."""
        result = await self.rpc_call(
            "eth_getLogs",
            [
                {
                    "address": address,
                    "topics": topics,
                    "fromBlock": hex(from_block),
                    "toBlock": hex(to_block),
                }
            ],
        )
        if result is None:
            raise DataUnavailable("eth_getLogs returned no result")
        return list(result)
