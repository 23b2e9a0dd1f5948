"""Addresses and ABI word builders shared by the tests."""
from __future__ import annotations

WALLET = "0x1111111111111111111111111111111111111111"
DIAMOND = "0x2222222222222222222222222222222222222222"
FEEDBASE = "0x3333333333333333333333333333333333333333"
NPFM = "0x4444444444444444444444444444444444444444"
UNIWRAPPER = "0x5555555555555555555555555555555555555555"
CHAINLINK = "0x6666666666666666666666666666666666666666"
WETH = "0x7777777777777777777777777777777777777777"
TOKEN_A = "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
TOKEN_B = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
T0 = 1_700_000_000


def word(value: int) -> bytes:
    """One ABI word: unsigned big-endian, or two's complement for negatives."""
    return (value % (1 << 256)).to_bytes(32, "big")


def words(*values: int) -> bytes:
    return b"".join(word(v) for v in values)


def address_word(address: str) -> bytes:
    """An address the ABI way: right-aligned in the word."""
    return bytes.fromhex(address[2:]).rjust(32, b"\0")


def left_address_word(address: str) -> bytes:
    """An address the way vat keys and NewPalm2 topics hold it: left-aligned."""
    return bytes.fromhex(address[2:]).ljust(32, b"\0")


def dynamic_bytes(payload: bytes) -> bytes:
    """ABI encoding of a single ``bytes`` return value."""
    padded = payload.ljust((len(payload) + 31) // 32 * 32, b"\0")
    return word(32) + word(len(payload)) + padded


def uint_array(*values: int) -> bytes:
    """ABI encoding of a single ``uint256[]`` value."""
    return word(32) + word(len(values)) + words(*values)
