"""Rico protocol adapter — named view reads against the diamond and helpers."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from ...chains.evm.abi import (
    checksum,
    decode_address,
    decode_bytes32,
    decode_uint256,
    encode_call,
    event_topic,
)
from ...config import ContractsConfig
from ...errors import DataUnavailable
from ...interfaces.chain import ChainClient
from ...models import IlkParams, PoolPosition, StateChangeEvent
from . import parser

logger = logging.getLogger(__name__)

NEW_PALM2_TOPIC = event_topic("NewPalm2(bytes32,bytes32,bytes32,bytes32)")


def _log_position(log: dict) -> tuple[int, int]:
    return int(log.get("blockNumber") or "0x0", 16), int(log.get("logIndex") or "0x0", 16)


class RicoAdapter:
    """Read vat/vox state of the Rico diamond plus the pool-position helpers.

    Vat and vox facets both live at the diamond address.
    """

    def __init__(self, chain_client: ChainClient, config: ContractsConfig) -> None:
        self._client = chain_client
        self._config = config
        self.diamond = config.diamond
        self.npfm = config.npfm
        self.uniwrapper = config.uniwrapper

    @property
    def protocol_name(self) -> str:
        return "rico"

    async def _call(self, to: str, signature: str, arg_types=(), args=()) -> bytes:
        data = await self._client.eth_call(to, encode_call(signature, arg_types, args))
        if not data:
            raise DataUnavailable(f"{signature} at {to} returned no data")
        return data

    # ------------------------------------------------------------------
    # Vat
    # ------------------------------------------------------------------

    async def par(self) -> int:
        return decode_uint256(await self._call(self.diamond, "par()"))

    async def ink(self, ilk: str, usr: str, pool: bool = False) -> tuple[int, ...]:
        """Raw collateral of ``usr`` in ``ilk``; position ids for the pool class."""
        data = await self._call(
            self.diamond,
            "ink(bytes32,address)",
            ["bytes32", "address"],
            [parser.encode_key(ilk), checksum(usr)],
        )
        return parser.decode_ink(data, pool)

    async def urns(self, ilk: str, usr: str) -> int:
        """Normalized debt (``art``) of ``usr`` in ``ilk``."""
        data = await self._call(
            self.diamond,
            "urns(bytes32,address)",
            ["bytes32", "address"],
            [parser.encode_key(ilk), checksum(usr)],
        )
        return decode_uint256(data)

    async def ilks(self, ilk: str) -> IlkParams:
        data = await self._call(
            self.diamond, "ilks(bytes32)", ["bytes32"], [parser.encode_key(ilk)]
        )
        return parser.decode_ilk(ilk, data)

    async def geth(self, ilk: str, char: str, indexes: Iterable[bytes] = ()) -> bytes:
        """Class characteristic ``char``, optionally scoped by index keys."""
        data = await self._call(
            self.diamond,
            "geth(bytes32,bytes32,bytes32[])",
            ["bytes32", "bytes32", "bytes32[]"],
            [parser.encode_key(ilk), parser.encode_key(char), list(indexes)],
        )
        return decode_bytes32(data)

    async def liqr(self, ilk: str, indexes: Iterable[bytes] = ()) -> int:
        return int.from_bytes(await self.geth(ilk, "liqr", indexes), "big")

    async def feed_source(self, ilk: str, indexes: Iterable[bytes] = ()) -> tuple[str, bytes]:
        """The (src, tag) a class, or one token of the pool class, is priced by."""
        indexes = list(indexes)
        src = parser.address_from_key(await self.geth(ilk, "src", indexes))
        tag = await self.geth(ilk, "tag", indexes)
        return src, tag

    # ------------------------------------------------------------------
    # Vox
    # ------------------------------------------------------------------

    async def tip(self) -> tuple[str, bytes]:
        """The (src, tag) the market price is read from."""
        data = await self._call(self.diamond, "tip()")
        return decode_address(data, 0), decode_bytes32(data, 1)

    async def way(self) -> int:
        return decode_uint256(await self._call(self.diamond, "way()"))

    async def tau(self) -> int:
        return decode_uint256(await self._call(self.diamond, "tau()"))

    async def how(self) -> int:
        return decode_uint256(await self._call(self.diamond, "how()"))

    # ------------------------------------------------------------------
    # Pool positions
    # ------------------------------------------------------------------

    async def positions(self, token_id: int) -> PoolPosition:
        data = await self._call(self.npfm, "positions(uint256)", ["uint256"], [token_id])
        return parser.decode_position(token_id, data)

    async def total(self, token_id: int, sqrt_price_x96: int) -> tuple[int, int]:
        """Underlying token amounts of a position at the given sqrt price."""
        data = await self._call(
            self.uniwrapper,
            "total(address,uint256,uint256)",
            ["address", "uint256", "uint256"],
            [checksum(self.npfm), token_id, sqrt_price_x96],
        )
        return decode_uint256(data, 0), decode_uint256(data, 1)

    # ------------------------------------------------------------------
    # Gems
    # ------------------------------------------------------------------

    async def balance_of(self, token: str, who: str) -> int:
        data = await self._call(
            token, "balanceOf(address)", ["address"], [checksum(who)]
        )
        return decode_uint256(data)

    async def decimals(self, token: str) -> int:
        return decode_uint256(await self._call(token, "decimals()"))

    # ------------------------------------------------------------------
    # Blocks and logs
    # ------------------------------------------------------------------

    async def block_number(self) -> int:
        return await self._client.block_number()

    async def block_timestamp(self, number: int) -> int:
        block = await self._client.get_block(number)
        try:
            return int(block["timestamp"], 16)
        except (KeyError, TypeError, ValueError) as e:
            raise DataUnavailable(f"Block {number} has no readable timestamp") from e

    async def state_changes(
        self,
        act: str,
        ilks: Iterable[str] = (),
        from_block: int = 0,
        to_block: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[StateChangeEvent]:
        """``NewPalm2`` logs for ``act``, newest first.

        An empty ``ilks`` matches every class.
        """
        if to_block is None:
            to_block = await self.block_number()
        ilk_topics = [parser.key_topic(i) for i in ilks] or None
        logs = await self._client.get_logs(
            self.diamond,
            [NEW_PALM2_TOPIC, parser.key_topic(act), ilk_topics],
            from_block,
            to_block,
        )
        logger.debug("Fetched %d %s logs up to block %d", len(logs), act, to_block)

        logs.sort(key=_log_position, reverse=True)
        if limit is not None:
            logs = logs[:limit]
        return [parser.decode_state_change(log) for log in logs]
