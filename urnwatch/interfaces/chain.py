"""Chain client protocol — EVM JSON-RPC abstraction."""
from typing import Any, Protocol


class ChainClient(Protocol):
    """Abstract interface for side-effect-free chain reads."""

    async def eth_call(self, to: str, data: bytes) -> bytes: ...

    async def block_number(self) -> int: ...

    async def get_block(self, number: int) -> dict[str, Any]: ...

    async def get_logs(
        self,
        address: str,
        topics: list[Any],
        from_block: int,
        to_block: int,
    ) -> list[dict[str, Any]]: ...
