"""Feedbase price oracle — pulls (src, tag) feeds from the feedbase contract."""
import logging

from ..chains.evm.abi import checksum, decode_bytes32, decode_uint256, encode_call
from ..errors import DataUnavailable, PriceUnavailable
from ..interfaces.chain import ChainClient
from ..models import PriceQuote
from ..protocols.rico.parser import decode_key

logger = logging.getLogger(__name__)


class FeedbaseOracle:
    """Pull RAY-scaled prices from a feedbase.

    Prices are read fresh on every call; nothing is cached between polls.
    """

    def __init__(self, chain_client: ChainClient, feedbase_address: str) -> None:
        self._client = chain_client
        self.address = feedbase_address

    async def pull(self, src: str, tag: bytes) -> PriceQuote:
        """Pull the value ``src`` published under ``tag``.

        Returns ``(val, ttl)`` decoded as the first two words of the
        result; ``val`` is a bytes32 read as a big-endian integer.
        """
        call = encode_call(
            "pull(address,bytes32)", ["address", "bytes32"], [checksum(src), tag]
        )
        try:
            data = await self._client.eth_call(self.address, call)
            value = int.from_bytes(decode_bytes32(data, 0), "big")
            ttl = decode_uint256(data, 1)
        except DataUnavailable as e:
            raise PriceUnavailable(
                f"Feed {src}/{decode_key(tag)} unavailable: {e}"
            ) from e

        logger.debug("Pulled %s/%s = %d (ttl %d)", src, decode_key(tag), value, ttl)
        return PriceQuote(src=src, tag=tag, value=value, ttl=ttl)
