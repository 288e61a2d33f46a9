"""
autowin.core.registry - HandleRegistry: one entry per live window handle.

The registry is the only owner of per-handle state:

    hwnd -> HandleEntry
                .bus       SignalBus for that window's signals
                .monitor   MonitoredWindow while monitoring is enabled
                .destroyed set once Closed has been observed

Windows reuse HWND values after destruction.  A retired entry is never
looked up again: a later track() of the same number creates a fresh
entry with a fresh bus, while Window objects still holding the retired
entry keep raising InvalidHandle.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

from autowin.core.signals import SignalBus

if TYPE_CHECKING:
    from autowin.core.monitor import MonitoredWindow

log = logging.getLogger(__name__)


class HandleEntry:
    """Registry record for one live handle."""

    __slots__ = ("hwnd", "owner", "bus", "destroyed", "closed_signalled", "monitor")

    def __init__(self, hwnd: int, owner: Optional[tuple[int, int]] = None) -> None:
        self.hwnd = hwnd
        # (process_id, thread_id) that created the window, when known
        self.owner = owner
        self.bus = SignalBus(name=f"{hwnd:#010x}")
        self.destroyed = False
        self.closed_signalled = False
        self.monitor: Optional[MonitoredWindow] = None

    def __repr__(self) -> str:
        state = "destroyed" if self.destroyed else "live"
        return f"HandleEntry({self.hwnd:#010x}, {state})"


class HandleRegistry:
    """
    Deduplicated table of window handles seen by this process.

    Thread-safe.  Owned by a WindowManager and passed explicitly to the
    components that need it.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[int, HandleEntry] = {}

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def track(self, hwnd: int, owner: Optional[tuple[int, int]] = None) -> HandleEntry:
        """
        Return the entry for *hwnd*, creating it on first sight.

        If *owner* is given and the existing entry recorded a different
        owner, the HWND value has been recycled by another window: the
        stale entry is retired and a new one created.  Callers holding
        the stale entry must publish its Closed signal themselves; use
        track_checked() to learn about the replacement.
        """
        return self.track_checked(hwnd, owner)[0]

    def track_checked(
        self, hwnd: int, owner: Optional[tuple[int, int]] = None,
    ) -> tuple[HandleEntry, Optional[HandleEntry]]:
        """track() that also returns the stale entry it replaced, if any."""
        with self._lock:
            stale: Optional[HandleEntry] = None
            entry = self._entries.get(hwnd)
            if entry is not None and owner is not None:
                if entry.owner is None:
                    entry.owner = owner
                elif entry.owner != owner:
                    log.info(
                        "HWND %#010x recycled (owner %s -> %s)",
                        hwnd, entry.owner, owner,
                    )
                    stale = self.retire(hwnd, entry)
                    entry = None
            if entry is None:
                entry = HandleEntry(hwnd, owner)
                self._entries[hwnd] = entry
                log.debug("TRACK %#010x", hwnd)
            return entry, stale

    def get(self, hwnd: int) -> Optional[HandleEntry]:
        with self._lock:
            return self._entries.get(hwnd)

    def handles(self) -> set[int]:
        with self._lock:
            return set(self._entries)

    def __contains__(self, hwnd: object) -> bool:
        with self._lock:
            return hwnd in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Monitors
    # ------------------------------------------------------------------
    def monitor_for(self, hwnd: int) -> Optional[MonitoredWindow]:
        with self._lock:
            entry = self._entries.get(hwnd)
            return entry.monitor if entry is not None else None

    def attach_monitor(self, entry: HandleEntry, monitor: MonitoredWindow) -> MonitoredWindow:
        """
        Bind *monitor* to *entry* unless one is already bound.

        Returns the monitor that is bound afterwards, so at most one
        MonitoredWindow ever exists per handle.
        """
        with self._lock:
            if entry.destroyed:
                raise ValueError(f"{entry!r} has been retired")
            if entry.monitor is not None:
                return entry.monitor
            entry.monitor = monitor
            return monitor

    def detach_monitor(self, hwnd: int) -> Optional[MonitoredWindow]:
        with self._lock:
            entry = self._entries.get(hwnd)
            if entry is None or entry.monitor is None:
                return None
            monitor, entry.monitor = entry.monitor, None
            return monitor

    def monitored(self) -> list[MonitoredWindow]:
        with self._lock:
            return [e.monitor for e in self._entries.values() if e.monitor is not None]

    # ------------------------------------------------------------------
    # Retirement
    # ------------------------------------------------------------------
    def retire(self, hwnd: int, entry: Optional[HandleEntry] = None) -> Optional[HandleEntry]:
        """
        Forget a destroyed handle.

        When *entry* is given, only that exact entry is retired; a newer
        entry that reused the same HWND value is left alone.
        """
        with self._lock:
            current = self._entries.get(hwnd)
            if current is None or (entry is not None and current is not entry):
                if entry is not None:
                    entry.destroyed = True
                return None
            del self._entries[hwnd]
            current.destroyed = True
            current.monitor = None
            log.debug("RETIRE %#010x", hwnd)
            return current

    def clear(self) -> None:
        """Forget every handle and release anything blocked on their buses."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.monitor = None
            entry.bus.close()
