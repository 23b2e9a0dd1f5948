"""ABI call encoding and explicit word-level decoders.

Arguments are encoded and return data decoded with eth-abi. Each field is
read by a named function instead of a generic "decode to whatever type"
helper, so every reader states exactly which 32-byte word it reads and how.
"""
from __future__ import annotations

from typing import Any, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import keccak, to_checksum_address

from ...errors import DataUnavailable, MalformedKey


def selector(signature: str) -> bytes:
    """First four bytes of keccak256 of a canonical function signature."""
    return keccak(text=signature)[:4]


def event_topic(signature: str) -> str:
    """0x-prefixed topic0 for a canonical event signature."""
    return "0x" + keccak(text=signature).hex()


def checksum(address: Any) -> str:
    """EIP-55 form of ``address``; anything that is not 20 bytes of hex is malformed."""
    try:
        return to_checksum_address(address)
    except (TypeError, ValueError) as e:
        raise MalformedKey(f"Malformed address {address!r}: {e}") from e


def encode_call(signature: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> bytes:
    """Selector followed by the ABI-encoded arguments."""
    try:
        return selector(signature) + encode(list(arg_types), list(args))
    except EncodingError as e:
        raise MalformedKey(f"Cannot encode arguments of {signature}: {e}") from e


def _decode_at(abi_type: str, data: bytes, index: int) -> Any:
    # Skip the ``index`` head words before the one we want.
    types = ["bytes32"] * index + [abi_type]
    try:
        return decode(types, bytes(data))[index]
    except DecodingError as e:
        raise DataUnavailable(
            f"Cannot decode {abi_type} at word {index} of {len(data)} bytes: {e}"
        ) from e


def decode_uint256(data: bytes, index: int = 0) -> int:
    """Word ``index`` as a big-endian unsigned integer."""
    return _decode_at("uint256", data, index)


def decode_int256(data: bytes, index: int = 0) -> int:
    """Word ``index`` as a two's-complement signed integer (int24..int256)."""
    return _decode_at("int256", data, index)


def decode_address(data: bytes, index: int = 0) -> str:
    """Word ``index`` as an address: the low 20 bytes, left-padded with zeros."""
    return to_checksum_address(_decode_at("address", data, index))


def decode_bytes32(data: bytes, index: int = 0) -> bytes:
    """Word ``index`` verbatim."""
    return _decode_at("bytes32", data, index)


def decode_dynamic_bytes(data: bytes, index: int = 0) -> bytes:
    """A ``bytes`` value whose head sits at word ``index``.

    Layout: the head word holds the byte offset of the tail; the tail is a
    length word followed by the payload padded to a word boundary.
    """
    return _decode_at("bytes", data, index)


def decode_uint256_array(data: bytes, index: int = 0) -> tuple[int, ...]:
    """A ``uint256[]`` whose head sits at word ``index``.

    Layout: head word is the byte offset of the tail; the tail is a length
    word followed by one word per element.
    """
    return tuple(_decode_at("uint256[]", data, index))
