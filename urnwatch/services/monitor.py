"""Monitor wiring — builds the chain stack and drives one-shot or continuous runs."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from .. import accrual
from ..chains.evm import EvmClient
from ..config import AppConfig
from ..models import IlkParams, Snapshot, VaultPosition
from ..oracles import FeedbaseOracle
from ..protocols.rico import RicoAdapter
from ..state import SharedStateStore, StoreStatus, ViewSelection
from ..units import RAY, WAD, rad, to_float
from .health import CollateralHealthComputer
from .pipeline import DataSnapshotPipeline, SnapshotWorker
from .valuer import PositionValuer

logger = logging.getLogger(__name__)


class Monitor:
    """Owns the pipeline, the shared store and a minimal console consumer."""

    def __init__(self, config: AppConfig, selection: Optional[ViewSelection] = None) -> None:
        self._config = config

        self._client = EvmClient(config.chain)
        self._adapter = RicoAdapter(self._client, config.contracts)
        self._oracle = FeedbaseOracle(self._client, config.contracts.feedbase)

        valuer = PositionValuer(self._adapter, self._oracle, config.ilks.pool_class)
        health = CollateralHealthComputer(
            self._adapter, valuer, config.monitor.accrual_method
        )

        self.store = SharedStateStore(
            config.ilks.known, config.ilks.key_mappings, selection
        )
        self.pipeline = DataSnapshotPipeline(
            config, self._adapter, self._oracle, health, self.store
        )

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_wallet(address: str) -> str:
        if len(address) > 16:
            return f"{address[:10]}...{address[-6:]}"
        return address

    def _get_status(self, vault: VaultPosition) -> str:
        if vault.stale:
            return "⏳ STALE"
        if vault.loan == 0:
            return "➖ No loan"
        if vault.safety < 1.0:
            return "🚨 UNSAFE"
        if vault.safety < self._config.monitor.safety_warning:
            return "⚠️ WARNING"
        return "✅ Safe"

    @staticmethod
    def _time_str(timestamp: float) -> str:
        return datetime.fromtimestamp(timestamp, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _owner(self) -> str:
        wallet = self._config.wallet
        return wallet.nickname or self._format_wallet(wallet.address)

    @staticmethod
    def _rate_line(snapshot: Snapshot) -> str:
        rates = snapshot.rates
        if snapshot.mar < snapshot.par:
            trend = "mar < par, price rate rising"
        elif snapshot.mar > snapshot.par:
            trend = "mar > par, price rate falling"
        else:
            trend = "mar = par, price rate stable"
        elapsed = accrual.elapsed_seconds(rates.tau, snapshot.taken_at)
        next_way = accrual.projected_way(
            rates.way, rates.how, snapshot.mar, snapshot.par, elapsed
        )
        return (
            f"{trend} · now {accrual.annual_rate(rates.way):+.6%}/yr"
            f" · next poke {accrual.annual_rate(next_way):+.6%}/yr"
        )

    def _ilk_line(self, ilk: IlkParams) -> str:
        line = (
            f"ilk {ilk.name}: tart {to_float(ilk.tart, WAD):,.4f} "
            f"rack {to_float(ilk.rack, RAY):.9f} dust {rad(ilk.dust):,.2f} "
            f"fee {accrual.annual_rate(ilk.fee):.4%}/yr rho {self._time_str(ilk.rho)} UTC"
        )
        if ilk.tink is not None and ilk.inkd is not None:
            line += f" · locked {ilk.tink / 10**ilk.inkd:,.4f}"
        return line

    def _build_summary(self, snapshot: Snapshot, status: StoreStatus) -> str:
        lines = [f"📊 {self._owner()}'s urns · block {snapshot.block}", ""]
        for vault in snapshot.vaults:
            collateral = (
                f"{len(vault.token_ids)} positions"
                if vault.token_ids
                else f"ink {to_float(vault.ink, WAD):,.4f}"
            )
            lines.append(
                f"{vault.ilk} · {self._get_status(vault)} · {collateral} · "
                f"debt {to_float(vault.debt, WAD):,.4f} · safety {vault.safety:.4f}"
            )
        lines += [
            "",
            f"par {to_float(snapshot.par, RAY):.6f} · mar {to_float(snapshot.mar, RAY):.6f}"
            f" · xau {to_float(snapshot.xau, RAY):,.2f}",
            self._rate_line(snapshot),
        ]
        for ilk in snapshot.ilks:
            lines.append(self._ilk_line(ilk))
        for event in snapshot.events:
            lines.append(
                f"#{event.block_number} {event.act} {event.ilk} "
                f"{self._format_wallet(event.usr)} {to_float(event.val, WAD):+,.4f}"
            )
        lines += ["", f"{self._time_str(snapshot.taken_at)} UTC · age {status.age_seconds:.0f}s"]
        if status.last_error:
            lines.append(f"last refresh failed: {status.last_error}")
        return "\n".join(lines)

    def _log_snapshot(self) -> Optional[Snapshot]:
        snapshot = self.store.snapshot()
        status = self.store.status()
        if snapshot is None:
            logger.warning("No snapshot yet: %s", status.last_error or "awaiting first poll")
            return None
        logger.info("%s", self._build_summary(snapshot, status))
        return snapshot

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def check(self) -> Optional[Snapshot]:
        """Run a single cycle and log the result."""
        await self.pipeline.run_cycle()
        return self._log_snapshot()

    def watch(
        self,
        refresh_seconds: Optional[int] = None,
        poll_timeout: float = 0.2,
        max_updates: Optional[int] = None,
    ) -> None:
        """Run the worker in the background and log every fresh snapshot.

        The foreground only ever waits on the change signal with a bounded
        timeout, so it stays responsive while the worker is mid-cycle.
        """
        worker = SnapshotWorker(self.pipeline, refresh_seconds)
        worker.start()
        updates = 0
        seen_failures = 0
        try:
            while max_updates is None or updates < max_updates:
                if self.store.wait_changed(poll_timeout):
                    self._log_snapshot()
                    updates += 1
                    seen_failures = 0
                    continue
                status = self.store.status(time.time())
                if status.consecutive_failures > seen_failures:
                    seen_failures = status.consecutive_failures
                    age = "n/a" if status.age_seconds is None else f"{status.age_seconds:.0f}s"
                    logger.warning(
                        "Refresh failed (%d in a row), snapshot age %s: %s",
                        seen_failures, age, status.last_error,
                    )
        except KeyboardInterrupt:
            logger.info("Stopping")
        finally:
            worker.stop()
