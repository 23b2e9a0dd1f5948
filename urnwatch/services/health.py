"""Per-urn health: accrued debt, loan, collateral value and safety ratio."""
from __future__ import annotations

import logging

from .. import accrual
from ..models import VaultPosition
from ..protocols.rico import RicoAdapter
from ..units import BLN, WAD, mul, to_float
from .valuer import PositionValuer

logger = logging.getLogger(__name__)


def safety_ratio(value: int, loan: int) -> float:
    """Collateral value over loan, 1.0 at the liquidation boundary.

    The quotient is taken at BLN precision in integers before converting,
    so the result is always finite; an urn without a loan reads 0.0.
    """
    if loan == 0:
        return 0.0
    return to_float(mul(value, BLN) // loan, BLN)


class CollateralHealthComputer:
    """Combine accrual and valuation into one ``VaultPosition``."""

    def __init__(
        self,
        adapter: RicoAdapter,
        valuer: PositionValuer,
        accrual_method: str = accrual.ITERATIVE,
    ) -> None:
        self._adapter = adapter
        self._valuer = valuer
        self._accrual_method = accrual_method

    async def compute(self, ilk: str, usr: str, par: int, now: float) -> VaultPosition:
        pool = ilk == self._valuer.pool_class

        ink = await self._adapter.ink(ilk, usr, pool=pool)
        art = await self._adapter.urns(ilk, usr)
        params = await self._adapter.ilks(ilk)

        rack = accrual.syn_rack(params, now, self._accrual_method)
        loan = accrual.loan(art, rack, par)
        debt = accrual.debt(art, rack)

        if pool:
            token_ids = tuple(ink)
            amount = 0
            value = await self._valuer.value_pool_positions(token_ids)
        else:
            token_ids = ()
            amount = ink[0]
            value = await self._valuer.value_gem(ilk, amount)

        safety = safety_ratio(value, loan)
        logger.info(
            "Urn %s: art=%d debt=%.4f loan=%d value=%d safety=%.4f",
            ilk, art, to_float(debt, WAD), loan, value, safety,
        )

        return VaultPosition(
            ilk=ilk,
            ink=amount,
            token_ids=token_ids,
            art=art,
            debt=debt,
            loan=loan,
            value=value,
            safety=safety,
        )
