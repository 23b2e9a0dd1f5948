"""Shared state between the polling worker and the presentation layer.

Two independently locked values live here: the view selection, written
only by input handling, and the latest snapshot, written only by the
pipeline. Both are immutable, so a lock is only ever held for the time it
takes to swap or read a reference; never across a chain call or a render.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from .errors import UnknownCollateralClass
from .models import Snapshot


@dataclass(frozen=True)
class ViewSelection:
    """What the presentation layer currently wants refreshed.

    ``active_ilks`` limits which class parameters are queried;
    ``event_kind`` (an ``act`` such as ``"art"``) enables the event window.
    """

    active_ilks: tuple[str, ...] = ()
    event_kind: Optional[str] = None


@dataclass(frozen=True)
class StoreStatus:
    """Freshness of the published snapshot, readable after failed cycles too."""

    has_snapshot: bool
    age_seconds: Optional[float]
    last_error: str
    last_failure_at: Optional[float]
    consecutive_failures: int


class SharedStateStore:
    def __init__(
        self,
        known_ilks: Iterable[str],
        key_mappings: Optional[dict[str, str]] = None,
        selection: Optional[ViewSelection] = None,
        snapshot: Optional[Snapshot] = None,
    ) -> None:
        self._known_ilks = frozenset(known_ilks)
        self._key_mappings = dict(key_mappings or {})

        self._view_lock = threading.Lock()
        self._view = selection or ViewSelection()
        self._check_ilks(self._view.active_ilks)

        self._snapshot_lock = threading.Lock()
        self._snapshot = snapshot
        self._last_error = ""
        self._last_failure_at: Optional[float] = None
        self._consecutive_failures = 0

        self._changed = threading.Event()

    def _check_ilks(self, ilks: Iterable[str]) -> None:
        for ilk in ilks:
            if ilk not in self._known_ilks:
                raise UnknownCollateralClass(f"'{ilk}' is not a configured collateral class")

    # ------------------------------------------------------------------
    # Snapshot (pipeline writes, presentation reads)
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[Snapshot]:
        """The latest snapshot.

        Snapshots are deeply immutable, so the shared reference is as good
        as a copy and stays consistent after the lock is released.
        """
        with self._snapshot_lock:
            return self._snapshot

    def publish(self, snapshot: Snapshot) -> None:
        """Replace the snapshot as a whole and raise the change signal."""
        with self._snapshot_lock:
            self._snapshot = snapshot
            self._last_error = ""
            self._consecutive_failures = 0
        self._changed.set()

    def record_failure(self, error: str, at: Optional[float] = None) -> None:
        """Note a failed cycle. The published snapshot is left untouched."""
        with self._snapshot_lock:
            self._last_error = error
            self._last_failure_at = time.time() if at is None else at
            self._consecutive_failures += 1

    def status(self, now: Optional[float] = None) -> StoreStatus:
        now = time.time() if now is None else now
        with self._snapshot_lock:
            snapshot = self._snapshot
            last_error = self._last_error
            last_failure_at = self._last_failure_at
            failures = self._consecutive_failures
        return StoreStatus(
            has_snapshot=snapshot is not None,
            age_seconds=None if snapshot is None else max(0.0, now - snapshot.taken_at),
            last_error=last_error,
            last_failure_at=last_failure_at,
            consecutive_failures=failures,
        )

    # ------------------------------------------------------------------
    # Change signal
    # ------------------------------------------------------------------

    def consume_changed(self) -> bool:
        """True once per publish since the last call; never blocks."""
        if self._changed.is_set():
            self._changed.clear()
            return True
        return False

    def wait_changed(self, timeout: float) -> bool:
        """Wait at most ``timeout`` seconds for a publish, then consume it."""
        if self._changed.wait(timeout):
            self._changed.clear()
            return True
        return False

    # ------------------------------------------------------------------
    # View selection (input handling writes, pipeline and presentation read)
    # ------------------------------------------------------------------

    def view(self) -> ViewSelection:
        with self._view_lock:
            return self._view

    def update_view(self, change: Callable[[ViewSelection], ViewSelection]) -> ViewSelection:
        """Apply ``change`` to the current selection and store the result.

        ``change`` runs under the view lock and must be a pure function.
        """
        with self._view_lock:
            updated = change(self._view)
            self._check_ilks(updated.active_ilks)
            self._view = updated
            return updated

    def toggle_ilk(self, ilk: str) -> ViewSelection:
        self._check_ilks([ilk])

        def _toggle(view: ViewSelection) -> ViewSelection:
            if ilk in view.active_ilks:
                active = tuple(i for i in view.active_ilks if i != ilk)
            else:
                active = view.active_ilks + (ilk,)
            return replace(view, active_ilks=active)

        return self.update_view(_toggle)

    def select_key(self, key: str) -> Optional[ViewSelection]:
        """Toggle the class bound to ``key``; ``None`` if the key is unbound."""
        ilk = self._key_mappings.get(key)
        if ilk is None:
            return None
        return self.toggle_ilk(ilk)

    def set_event_kind(self, kind: Optional[str]) -> ViewSelection:
        return self.update_view(lambda view: replace(view, event_kind=kind))
