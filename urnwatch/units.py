"""Fixed-point scales and width-checked integer helpers.

All on-chain quantities are unsigned 256-bit integers at one of a few
decimal scales. Python ints never overflow, so the contract widths are
enforced explicitly: products are checked against the intermediate width
*before* they are formed and results are narrowed back to 256 bits.
"""
from __future__ import annotations

from .errors import ArithmeticOverflow, DivideByZero

BLN = 10**9
WAD = 10**18
RAY = 10**27
RAD = 10**45
X96 = 2**96

BANKYEAR = ((24.0 * 365.0) + 6.0) * 3600.0

UINT256_BITS = 256
WIDE_BITS = 512
UINT256_MAX = 2**UINT256_BITS - 1


def _max_for(width: int) -> int:
    return (1 << width) - 1


def check_mul(a: int, b: int, width: int = WIDE_BITS) -> None:
    """Raise ArithmeticOverflow if ``a * b`` does not fit in ``width`` bits."""
    if a < 0 or b < 0:
        raise ArithmeticOverflow(f"negative operand in unsigned product: {a} * {b}")
    if a and b > _max_for(width) // a:
        raise ArithmeticOverflow(f"{a} * {b} exceeds {width} bits")


def mul(a: int, b: int, width: int = WIDE_BITS) -> int:
    check_mul(a, b, width)
    return a * b


def mul_div(a: int, b: int, denominator: int, width: int = WIDE_BITS) -> int:
    """Floor of ``a * b / denominator`` with the full product held in ``width`` bits."""
    if denominator == 0:
        raise DivideByZero(f"mul_div({a}, {b}, 0)")
    check_mul(a, b, width)
    return a * b // denominator


def narrow(value: int, bits: int = UINT256_BITS) -> int:
    """Return ``value`` unchanged if it fits an unsigned ``bits``-bit word."""
    if value < 0 or value >> bits:
        raise ArithmeticOverflow(f"{value} does not fit in {bits} bits")
    return value


def to_float(value: int, scale: int) -> float:
    """Convert a fixed-point integer to a float for display.

    The whole part is split off first so large values keep their
    fractional digits.
    """
    whole, frac = divmod(value, scale)
    return float(whole) + frac / scale


def wad(value: int) -> float:
    return to_float(value, WAD)


def ray(value: int) -> float:
    return to_float(value, RAY)


def rad(value: int) -> float:
    return to_float(value, RAD)
