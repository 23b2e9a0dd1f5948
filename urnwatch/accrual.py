"""Per-class debt index accrual.

``rack`` compounds by ``fee`` (a RAY-scaled per-second factor) once per
whole second since ``rho``. The chain only advances ``rho`` when someone
drips the class, so between drips the displayed debt has to be
synthesised locally from the stored index. The same per-second
factors drive the system price rate (``way``), annualised for display.
"""
from __future__ import annotations

import logging
import math

from .errors import DivideByZero
from .models import IlkParams
from .units import BANKYEAR, BLN, RAY, mul, mul_div, narrow

logger = logging.getLogger(__name__)

ITERATIVE = "iterative"
SQUARING = "squaring"
METHODS = (ITERATIVE, SQUARING)

# A worker that was suspended for this long pays O(elapsed) in the loop form.
SLOW_ACCRUAL_SECONDS = 7 * 24 * 3600


def elapsed_seconds(rho: int, now: float) -> int:
    """Whole seconds between ``rho`` and ``now``, never negative."""
    return max(0, int(now) - rho)


def syn_rack_iterative(rack: int, fee: int, elapsed: int) -> int:
    """Compound one second at a time, flooring after every step."""
    if fee == RAY or elapsed <= 0:
        return rack
    if elapsed > SLOW_ACCRUAL_SECONDS:
        logger.warning("Iterative accrual over %d seconds", elapsed)
    acc = rack
    for _ in range(elapsed):
        acc = narrow(mul_div(acc, fee, RAY))
    return acc


def rpow(x: int, n: int, base: int = RAY) -> int:
    """``x ** n`` at fixed-point ``base`` by repeated squaring, flooring each step."""
    z = base
    while n:
        if n & 1:
            z = narrow(mul_div(z, x, base))
        n >>= 1
        if n:
            x = narrow(mul_div(x, x, base))
    return z


def syn_rack_squaring(rack: int, fee: int, elapsed: int) -> int:
    """Approximate accrual: one floor per squaring instead of one per second.

    Cheaper over long gaps, but its last places can drift from the on-chain
    drip, which floors after every second.
    """
    if fee == RAY or elapsed <= 0:
        return rack
    return narrow(mul_div(rack, rpow(fee, elapsed), RAY))


def syn_rack(ilk: IlkParams, now: float, method: str = ITERATIVE) -> int:
    """Debt index of ``ilk`` as it would read after a drip at ``now``."""
    elapsed = elapsed_seconds(ilk.rho, now)
    if method == ITERATIVE:
        return syn_rack_iterative(ilk.rack, ilk.fee, elapsed)
    if method == SQUARING:
        return syn_rack_squaring(ilk.rack, ilk.fee, elapsed)
    raise ValueError(f"Unknown accrual method '{method}'")


def loan(art: int, syn_rack_: int, par: int) -> int:
    """Debt valued at the system price: ``art * rack * par / RAY / RAY``."""
    return narrow(mul_div(mul(art, syn_rack_), par, RAY) // RAY)


def debt(art: int, syn_rack_: int) -> int:
    """Display debt at WAD scale, rounded down to BLN precision first."""
    return narrow(mul_div(mul(art, syn_rack_), BLN, RAY) // BLN)


def annual_rate(rate: int) -> float:
    """A RAY per-second factor compounded over a bank year, as a fraction.

    ``RAY`` reads 0.0; a factor below ``RAY`` reads negative.
    """
    if rate == 0:
        return -1.0
    try:
        return math.expm1(BANKYEAR * math.log1p((rate - RAY) / RAY))
    except OverflowError:
        return math.inf


def projected_way(way: int, how: int, mar: int, par: int, elapsed: int) -> int:
    """Price rate after ``elapsed`` seconds of controller drift.

    Below ``par`` the market price pushes ``way`` up by ``how`` per second,
    above it down by ``1/how``. At ``mar == par`` the rate holds.
    """
    if mar == par or elapsed <= 0:
        return way
    if how == 0:
        raise DivideByZero("how is zero")
    step = how if mar < par else RAY * RAY // how
    return narrow(mul_div(way, rpow(step, elapsed), RAY))
