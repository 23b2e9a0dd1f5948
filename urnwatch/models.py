"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class IlkParams:
    """Per-class parameters as returned by ``vat.ilks``.

    ``rack`` and ``fee`` are RAY, ``line`` and ``dust`` RAD, ``rho`` a unix
    timestamp. ``tink``/``inkd`` are optional gem telemetry.
    """

    name: str
    tart: int
    rack: int
    line: int
    dust: int
    fee: int
    rho: int
    chop: int
    hook: str
    tink: Optional[int] = None
    inkd: Optional[int] = None


@dataclass(frozen=True)
class PoolPosition:
    """Concentrated-liquidity position; token0/token1 in protocol order."""

    token_id: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int


@dataclass(frozen=True)
class PriceQuote:
    """A feed value at RAY scale together with the (src, tag) it came from."""

    src: str
    tag: bytes
    value: int
    ttl: int = 0


@dataclass(frozen=True)
class VaultPosition:
    """Derived metrics for one urn."""

    ilk: str
    ink: int = 0
    token_ids: tuple[int, ...] = ()
    art: int = 0
    debt: int = 0
    loan: int = 0
    value: int = 0
    safety: float = 0.0
    stale: bool = False
    error: str = ""


@dataclass(frozen=True)
class SystemRates:
    way: int = 0
    tau: int = 0
    how: int = 0


@dataclass(frozen=True)
class StateChangeEvent:
    """A decoded ``NewPalm2`` log."""

    block_number: int
    act: str
    ilk: str
    usr: str
    val: int


@dataclass(frozen=True)
class Snapshot:
    """Everything one poll produced. Replaced wholesale, never patched."""

    vaults: tuple[VaultPosition, ...] = ()
    ilks: tuple[IlkParams, ...] = ()
    par: int = 0
    mar: int = 0
    rates: SystemRates = field(default_factory=SystemRates)
    xau: int = 0
    events: tuple[StateChangeEvent, ...] = ()
    block: int = 0
    block_timestamp: int = 0
    taken_at: float = 0.0

    def vault(self, ilk: str) -> Optional[VaultPosition]:
        for position in self.vaults:
            if position.ilk == ilk:
                return position
        return None
