"""Pure decoding functions for Rico contract data — no I/O."""
from __future__ import annotations

from typing import Any

from eth_utils import to_checksum_address

from ...chains.evm.abi import (
    decode_address,
    decode_dynamic_bytes,
    decode_int256,
    decode_uint256,
    decode_uint256_array,
)
from ...errors import DataUnavailable, MalformedKey
from ...models import IlkParams, PoolPosition, StateChangeEvent
from ...units import narrow

KEY_WIDTH = 32
ADDRESS_WIDTH = 20


def encode_key(name: str) -> bytes:
    """Encode a class or attribute name as a right-zero-padded bytes32.

    Examples:
        ":uninft" → b":uninft" + 25 zero bytes
    """
    raw = name.encode("utf-8")
    if len(raw) > KEY_WIDTH:
        raise MalformedKey(f"'{name}' is {len(raw)} bytes, keys hold {KEY_WIDTH}")
    return raw.ljust(KEY_WIDTH, b"\0")


def decode_key(raw: bytes) -> str:
    return raw.rstrip(b"\0").decode("utf-8", errors="replace")


def key_topic(name: str) -> str:
    """A key as a 0x-prefixed log topic."""
    return "0x" + encode_key(name).hex()


def address_key(address: str) -> bytes:
    """Encode a token address as a characteristic index.

    The vat keys per-token characteristics of the pool class by the
    address bytes placed at the *start* of the word, zero-padded on the
    right (not the ABI's left padding).
    """
    try:
        raw = bytes.fromhex(address[2:] if address.startswith("0x") else address)
    except ValueError as e:
        raise MalformedKey(f"Not a hex address: {address}") from e
    if len(raw) != ADDRESS_WIDTH:
        raise MalformedKey(f"Address {address} is {len(raw)} bytes, expected {ADDRESS_WIDTH}")
    return raw.ljust(KEY_WIDTH, b"\0")


def address_from_key(raw: bytes) -> str:
    """Inverse of ``address_key``: the first 20 bytes of the word."""
    if len(raw) != KEY_WIDTH:
        raise DataUnavailable(f"Expected a 32-byte word, got {len(raw)} bytes")
    return to_checksum_address(raw[:ADDRESS_WIDTH])


def decode_ilk(name: str, data: bytes) -> IlkParams:
    """Decode ``vat.ilks(bytes32)``.

    Words: tart, rack, line, dust, fee, rho, chop, hook (address).
    """
    return IlkParams(
        name=name,
        tart=decode_uint256(data, 0),
        rack=decode_uint256(data, 1),
        line=decode_uint256(data, 2),
        dust=decode_uint256(data, 3),
        fee=decode_uint256(data, 4),
        rho=decode_uint256(data, 5),
        chop=decode_uint256(data, 6),
        hook=decode_address(data, 7),
    )


def decode_position(token_id: int, data: bytes) -> PoolPosition:
    """Decode ``positions(uint256)`` of the position manager.

    Words: nonce, operator, token0, token1, fee, tickLower (int24),
    tickUpper (int24), liquidity, then fee-growth and owed-token words that
    valuation does not use.
    """
    return PoolPosition(
        token_id=token_id,
        token0=decode_address(data, 2),
        token1=decode_address(data, 3),
        fee=decode_uint256(data, 4),
        tick_lower=decode_int256(data, 5),
        tick_upper=decode_int256(data, 6),
        liquidity=decode_uint256(data, 7),
    )


def decode_ink(data: bytes, pool: bool) -> tuple[int, ...]:
    """Decode ``vat.ink(bytes32,address)``, which returns opaque ``bytes``.

    For the pool class the payload is itself an ABI-encoded ``uint256[]``
    of position ids. For every other class it is one big-endian amount
    (empty when the urn was never opened).
    """
    payload = decode_dynamic_bytes(data)
    if pool:
        if not payload:
            return ()
        return decode_uint256_array(payload)
    return (narrow(int.from_bytes(payload, "big")),)


def decode_state_change(log: dict[str, Any]) -> StateChangeEvent:
    """Decode a ``NewPalm2(bytes32 act, bytes32 ilk, bytes32 usr, bytes32 val)`` log.

    ``act``, ``ilk`` and ``usr`` are indexed topics 1-3 (``usr`` holds the
    address in its first 20 bytes); ``val`` is the int256 data word.
    """
    try:
        topics = [bytes.fromhex(t[2:]) for t in log["topics"]]
        block_number = int(log["blockNumber"], 16)
        data = bytes.fromhex(log["data"][2:])
    except (KeyError, TypeError, ValueError) as e:
        raise DataUnavailable(f"Malformed log: {e}") from e
    if len(topics) < 4:
        raise DataUnavailable(f"NewPalm2 log has {len(topics)} topics, expected 4")

    return StateChangeEvent(
        block_number=block_number,
        act=decode_key(topics[1]),
        ilk=decode_key(topics[2]),
        usr=address_from_key(topics[3]),
        val=decode_int256(data, 0),
    )
