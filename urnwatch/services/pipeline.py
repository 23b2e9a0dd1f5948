"""Snapshot pipeline — one full chain read per poll, published atomically."""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Optional

from ..config import AppConfig
from ..errors import MonitorError
from ..interfaces.price_feed import PriceFeed
from ..models import IlkParams, Snapshot, StateChangeEvent, SystemRates, VaultPosition
from ..protocols.rico import RicoAdapter
from ..protocols.rico.parser import encode_key
from ..state import SharedStateStore, ViewSelection
from .health import CollateralHealthComputer

logger = logging.getLogger(__name__)


class DataSnapshotPipeline:
    """Collect every monitored urn and the market parameters into a Snapshot.

    In ``vault`` failure mode a failing urn is carried over from the
    previous snapshot marked stale, and a failing event query keeps the
    previous event window; anything else aborts the cycle. In ``cycle``
    mode the first failure aborts. An aborted cycle never touches the
    published snapshot.
    """

    def __init__(
        self,
        config: AppConfig,
        adapter: RicoAdapter,
        feed: PriceFeed,
        health: CollateralHealthComputer,
        store: SharedStateStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._adapter = adapter
        self._feed = feed
        self._health = health
        self._store = store
        self._clock = clock

    @property
    def _isolate_failures(self) -> bool:
        return self._config.monitor.failure_mode == "vault"

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    async def _collect_vault(
        self, ilk: str, par: int, now: float, previous: Optional[Snapshot]
    ) -> VaultPosition:
        try:
            return await self._health.compute(ilk, self._config.wallet.address, par, now)
        except MonitorError as e:
            if not self._isolate_failures:
                raise
            logger.warning("Urn %s unavailable this cycle: %s", ilk, e)
            last = previous.vault(ilk) if previous else None
            return replace(last or VaultPosition(ilk=ilk), stale=True, error=str(e))

    async def _collect_ilk(self, ilk: str) -> IlkParams:
        params = await self._adapter.ilks(ilk)
        gem = self._config.ilks.gems.get(ilk)
        if gem:
            params = replace(
                params,
                tink=await self._adapter.balance_of(gem, self._adapter.diamond),
                inkd=await self._adapter.decimals(gem),
            )
        return params

    async def _collect_events(
        self, view: ViewSelection, block: int, previous: Optional[Snapshot]
    ) -> tuple[StateChangeEvent, ...]:
        if view.event_kind is None:
            return ()
        try:
            events = await self._adapter.state_changes(
                view.event_kind,
                view.active_ilks,
                from_block=self._config.monitor.events_from_block,
                to_block=block,
                limit=self._config.monitor.max_events,
            )
        except MonitorError as e:
            if not self._isolate_failures:
                raise
            logger.warning("Event window unavailable this cycle: %s", e)
            return previous.events if previous else ()
        return tuple(events)

    async def _pull_mar(self) -> int:
        src, tag = await self._adapter.tip()
        return (await self._feed.pull(src, tag)).value

    async def collect(
        self, view: ViewSelection, previous: Optional[Snapshot] = None
    ) -> Snapshot:
        """Read everything for one poll. Raises on a cycle-aborting failure."""
        now = self._clock()

        block = await self._adapter.block_number()
        block_timestamp = await self._adapter.block_timestamp(block)
        par = await self._adapter.par()

        vaults = []
        for ilk in self._config.ilks.monitored:
            vaults.append(await self._collect_vault(ilk, par, now, previous))

        mar = await self._pull_mar()

        # only classes the view is showing
        ilks = []
        for ilk in view.active_ilks:
            ilks.append(await self._collect_ilk(ilk))

        rates = SystemRates(
            way=await self._adapter.way(),
            tau=await self._adapter.tau(),
            how=await self._adapter.how(),
        )
        xau = (
            await self._feed.pull(
                self._config.contracts.chainlink_feed,
                encode_key(self._config.reference_tag),
            )
        ).value

        events = await self._collect_events(view, block, previous)

        return Snapshot(
            vaults=tuple(vaults),
            ilks=tuple(ilks),
            par=par,
            mar=mar,
            rates=rates,
            xau=xau,
            events=events,
            block=block,
            block_timestamp=block_timestamp,
            taken_at=now,
        )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run_cycle(self) -> bool:
        """Collect and publish one snapshot. Returns False if the cycle failed."""
        view = self._store.view()
        previous = self._store.snapshot()
        try:
            snapshot = await self.collect(view, previous)
        except Exception as e:
            logger.error("Snapshot cycle failed, keeping previous snapshot: %s", e)
            self._store.record_failure(str(e), at=self._clock())
            return False

        self._store.publish(snapshot)
        stale = sum(1 for v in snapshot.vaults if v.stale)
        logger.info(
            "Published snapshot at block %d (%d urns, %d stale, %d events)",
            snapshot.block, len(snapshot.vaults), stale, len(snapshot.events),
        )
        return True

    async def run_forever(
        self,
        refresh_seconds: Optional[int] = None,
        stop: Optional[threading.Event] = None,
    ) -> None:
        """Poll until ``stop`` is set (or forever)."""
        interval = refresh_seconds or self._config.monitor.refresh_seconds
        logger.info("Starting snapshot pipeline (refreshing every %d seconds)", interval)

        while stop is None or not stop.is_set():
            await self.run_cycle()
            if stop is None:
                await asyncio.sleep(interval)
            else:
                await asyncio.to_thread(stop.wait, interval)


class SnapshotWorker(threading.Thread):
    """Background thread running the pipeline on its own event loop."""

    def __init__(
        self,
        pipeline: DataSnapshotPipeline,
        refresh_seconds: Optional[int] = None,
    ) -> None:
        super().__init__(name="snapshot-worker", daemon=True)
        self._pipeline = pipeline
        self._refresh_seconds = refresh_seconds
        self._stop_event = threading.Event()

    def run(self) -> None:
        asyncio.run(self._pipeline.run_forever(self._refresh_seconds, self._stop_event))

    def stop(self) -> None:
        self._stop_event.set()
