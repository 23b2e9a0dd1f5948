"""Collateral valuation for plain gem holdings and pool-position NFTs."""
from __future__ import annotations

import logging
from math import isqrt
from typing import Iterable

from ..errors import DivideByZero, PriceUnavailable
from ..interfaces.price_feed import PriceFeed
from ..protocols.rico import RicoAdapter
from ..protocols.rico.parser import address_key
from ..units import X96, mul, mul_div, narrow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure arithmetic
# ---------------------------------------------------------------------------


def simple_value(price: int, amount: int, liqr: int) -> int:
    """Value of a plain holding: ``price * amount / liqr``."""
    if liqr == 0:
        raise DivideByZero("liquidation ratio is zero")
    return narrow(mul_div(price, amount, liqr))


def synthetic_sqrt_price_x96(price0: int, price1: int) -> int:
    """Pool sqrt price implied by two feed prices.

    ``sqrt(price1 * 2**96 * 2**96 / price0)``, floored. The triple product
    needs the 512-bit intermediate; only the root is narrowed to 256 bits.
    """
    if price0 == 0:
        raise PriceUnavailable("token0 price is zero")
    ratio = mul_div(mul(price1, X96), X96, price0)
    return narrow(isqrt(ratio))


def pool_value(
    amount0: int,
    amount1: int,
    price0: int,
    price1: int,
    liqr0: int,
    liqr1: int,
) -> int:
    """``(amount0*price0 + amount1*price1) / max(liqr0, liqr1)``."""
    liqr = max(liqr0, liqr1)
    if liqr == 0:
        raise DivideByZero("both token liquidation ratios are zero")
    total = mul(amount0, price0) + mul(amount1, price1)
    return narrow(total // liqr)


# ---------------------------------------------------------------------------
# Chain-backed valuer
# ---------------------------------------------------------------------------


class PositionValuer:
    """Value collateral against live feed prices."""

    def __init__(
        self,
        adapter: RicoAdapter,
        feed: PriceFeed,
        pool_class: str = ":uninft",
    ) -> None:
        self._adapter = adapter
        self._feed = feed
        self.pool_class = pool_class

    async def value_gem(self, ilk: str, ink: int) -> int:
        """Value ``ink`` units of the gem backing ``ilk``."""
        liqr = await self._adapter.liqr(ilk)
        src, tag = await self._adapter.feed_source(ilk)
        quote = await self._feed.pull(src, tag)
        return simple_value(quote.value, ink, liqr)

    async def _token_terms(self, token: str) -> tuple[str, bytes, int]:
        """(src, tag, liqr) of one token inside the pool class."""
        index = [address_key(token)]
        src, tag = await self._adapter.feed_source(self.pool_class, index)
        liqr = await self._adapter.liqr(self.pool_class, index)
        return src, tag, liqr

    async def value_pool_position(self, token_id: int) -> int:
        position = await self._adapter.positions(token_id)

        # token0/token1 stay in the position manager's order
        src0, tag0, liqr0 = await self._token_terms(position.token0)
        src1, tag1, liqr1 = await self._token_terms(position.token1)
        if max(liqr0, liqr1) == 0:
            raise DivideByZero(f"position {token_id}: both liquidation ratios are zero")

        price0 = (await self._feed.pull(src0, tag0)).value
        price1 = (await self._feed.pull(src1, tag1)).value

        sqrt_price = synthetic_sqrt_price_x96(price0, price1)
        amount0, amount1 = await self._adapter.total(token_id, sqrt_price)

        value = pool_value(amount0, amount1, price0, price1, liqr0, liqr1)
        logger.debug(
            "Position %d: %d token0 + %d token1 at sqrtPriceX96 %d -> %d",
            token_id, amount0, amount1, sqrt_price, value,
        )
        return value

    async def value_pool_positions(self, token_ids: Iterable[int]) -> int:
        total = 0
        for token_id in token_ids:
            total += await self.value_pool_position(token_id)
        return narrow(total)
