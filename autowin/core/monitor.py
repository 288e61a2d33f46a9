"""
autowin.core.monitor - MonitorEngine: polling change detection.

Each monitored handle gets a MonitoredWindow holding its last snapshot
and interval.  A single scheduler thread multiplexes every monitored
window through a heap of due times, so tracking many windows costs one
thread, not one per window.

A tick for one window:

  0. Bail out if monitoring was stopped (checked before any native call).
  1. Ask the gateway whether the window still exists.  If not, or if
     any native read fails mid-tick, the window is treated as closed:
     state -> STOPPED, handle retired from the registry, CLOSED
     published once, the window's bus closed.
  2. Take a fresh PropertySnapshot.
  3. Diff it against the previous one (see snapshot.diff_snapshots).
  4. Store the new snapshot, then publish the tick's signals in order.

The cached snapshot exists only for diffing; Window properties always
read fresh values from the gateway.

A monitor runs while anyone holds it: start_monitoring() takes a
persistent hold, acquire_observer() a counted temporary one for the
length of a wait.  stop_monitoring() drops them all.
"""

from __future__ import annotations

import enum
import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from typing import Optional, Union

from autowin.core.errors import AutowinError, InvalidHandle
from autowin.core.gateway import NativeWindowGateway
from autowin.core.registry import HandleEntry, HandleRegistry
from autowin.core.signals import SignalBus, WindowEvent, WindowSignal
from autowin.core.snapshot import PropertySnapshot, diff_snapshots

log = logging.getLogger(__name__)

Target = Union[int, HandleEntry]


class MonitorState(enum.Enum):
    UNMONITORED = "unmonitored"
    RUNNING = "running"
    STOPPED = "stopped"


class MonitoredWindow:
    """Monitoring state of one handle.  Owned by the HandleRegistry entry."""

    __slots__ = (
        "entry", "interval", "state", "snapshot", "due", "pinned", "leases", "_tick_lock",
    )

    def __init__(self, entry: HandleEntry, interval: float, snapshot: PropertySnapshot) -> None:
        self.entry = entry
        self.interval = interval
        self.state = MonitorState.UNMONITORED
        self.snapshot = snapshot
        self.due = 0.0
        # Held by start_monitoring(); only stop_monitoring() drops it.
        self.pinned = False
        # Temporary holders from acquire_observer().
        self.leases = 0
        # Serializes ticks of this handle; re-entrant so a callback may
        # tick its own window.
        self._tick_lock = threading.RLock()

    @property
    def hwnd(self) -> int:
        return self.entry.hwnd

    @property
    def bus(self) -> SignalBus:
        return self.entry.bus

    @property
    def running(self) -> bool:
        return self.state is MonitorState.RUNNING and not self.entry.destroyed

    def __repr__(self) -> str:
        return (
            f"MonitoredWindow({self.hwnd:#010x}, {self.state.value}, "
            f"every {self.interval:g}s)"
        )


class MonitorEngine:
    """
    Starts, stops and runs the per-window polling loops.

    With threaded=False no scheduler thread is started; the owner
    drives ticks through tick() or run_pending().
    """

    def __init__(
        self,
        gateway: NativeWindowGateway,
        registry: HandleRegistry,
        default_interval: float = 0.1,
        threaded: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._default_interval = default_interval
        self._threaded = threaded
        self._clock = clock

        self._cond = threading.Condition()
        # (due, seq, monitor); entries whose due no longer matches
        # monitor.due are stale and skipped.
        self._heap: list[tuple[float, int, MonitoredWindow]] = []
        self._seq = itertools.count()

        self._thread: Optional[threading.Thread] = None
        self._shutdown = False

    # ------------------------------------------------------------------
    # Public: control
    # ------------------------------------------------------------------
    def start_monitoring(self, target: Target, interval: Optional[float] = None) -> MonitoredWindow:
        """
        Begin polling a window until stop_monitoring().  Idempotent: on
        an already running handle only the interval is updated (kept as
        is when *interval* is None).

        Raises:
            InvalidHandle: The window is already gone (CLOSED is
                           published for it before raising).
        """
        return self._start(target, interval, pin=True)

    def acquire_observer(self, target: Target) -> MonitoredWindow:
        """
        Take a temporary hold on a window's monitor, starting it at the
        default interval if needed.  Pair with release_observer().

        Raises:
            InvalidHandle: The window is already gone.
        """
        return self._start(target, None, pin=False)

    def release_observer(self, monitor: MonitoredWindow) -> bool:
        """
        Drop a hold taken by acquire_observer().  The monitor stops once
        the last hold is gone and nobody called start_monitoring() on it.
        Returns True if this release stopped it.
        """
        with self._cond:
            if monitor.leases > 0:
                monitor.leases -= 1
            if monitor.leases or monitor.pinned or not monitor.running:
                return False
            if monitor.entry.monitor is not monitor:
                return False
            self._detach(monitor.entry, monitor)
        log.info("UNMONITOR %#010x (last observer released)", monitor.hwnd)
        return True

    def stop_monitoring(self, target: Target) -> bool:
        """
        Stop polling a window, dropping every hold on it.  No-op
        (returns False) if not monitored.

        Once this returns, no new tick of the handle starts; a tick
        already in flight may still publish its batch.
        """
        entry = self._entry(target)
        if entry is None:
            return False
        with self._cond:
            monitor = entry.monitor
            if monitor is None:
                return False
            self._detach(entry, monitor)
        log.info("UNMONITOR %#010x", entry.hwnd)
        return True

    def is_monitoring(self, target: Target) -> bool:
        entry = self._entry(target)
        return entry is not None and entry.monitor is not None and entry.monitor.running

    def monitor_for(self, target: Target) -> Optional[MonitoredWindow]:
        entry = self._entry(target)
        return entry.monitor if entry is not None else None

    @property
    def count(self) -> int:
        return len(self._registry.monitored())

    # ------------------------------------------------------------------
    # Public: ticking
    # ------------------------------------------------------------------
    def tick(self, target: Union[Target, MonitoredWindow]) -> list[WindowSignal]:
        """
        Run one poll of a window now and publish what changed.

        Returns the signals published (empty if nothing changed or the
        window is not being monitored).
        """
        if isinstance(target, MonitoredWindow):
            monitor: Optional[MonitoredWindow] = target
        else:
            monitor = self.monitor_for(target)
        if monitor is None:
            return []

        with monitor._tick_lock:
            if not monitor.running:
                return []

            hwnd = monitor.hwnd
            try:
                alive = self._gateway.is_alive(hwnd)
                current = self._gateway.snapshot(hwnd) if alive else None
            except (AutowinError, OSError) as e:
                log.debug("Tick %#010x: native read failed (%s)", hwnd, e)
                current = None

            if current is None:
                closed = self.retire_entry(monitor.entry)
                return [closed] if closed is not None else []

            previous = monitor.snapshot
            batch = [
                WindowSignal(kind, hwnd, args, current)
                for kind, args in diff_snapshots(previous, current)
            ]
            monitor.snapshot = current

            for signal in batch:
                log.debug("SIGNAL %s", signal)
                monitor.bus.publish(signal.kind, signal)
            return batch

    def run_pending(self) -> int:
        """Tick every monitor whose due time has passed.  Returns the count."""
        ran = 0
        while True:
            with self._cond:
                monitor = self._pop_due(self._clock())
            if monitor is None:
                return ran
            self._run_and_reschedule(monitor)
            ran += 1

    def retire_entry(self, entry: HandleEntry) -> Optional[WindowSignal]:
        """
        Declare a window destroyed: stop its monitor, drop it from the
        registry, publish CLOSED exactly once and close its bus.

        Returns the CLOSED signal, or None if the entry was already
        retired by someone else.
        """
        with self._cond:
            if entry.closed_signalled:
                return None
            entry.closed_signalled = True
            monitor = entry.monitor
            if monitor is not None:
                monitor.state = MonitorState.STOPPED
            self._registry.retire(entry.hwnd, entry)
            entry.destroyed = True
            entry.monitor = None
            self._cond.notify_all()

        last = monitor.snapshot if monitor is not None else None
        signal = WindowSignal(WindowEvent.CLOSED, entry.hwnd, (), last)
        log.info("CLOSED %#010x", entry.hwnd)
        entry.bus.publish(WindowEvent.CLOSED, signal)
        entry.bus.close()
        return signal

    def shutdown(self, timeout: Optional[float] = 2.0) -> None:
        """Stop every monitor and the scheduler thread."""
        with self._cond:
            self._shutdown = True
            for monitor in self._registry.monitored():
                monitor.state = MonitorState.STOPPED
                self._registry.detach_monitor(monitor.hwnd)
            self._heap.clear()
            self._cond.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        log.debug("MonitorEngine shut down")

    # ------------------------------------------------------------------
    # Internal: scheduling
    # ------------------------------------------------------------------
    def _entry(self, target: Target, create: bool = False) -> Optional[HandleEntry]:
        if isinstance(target, HandleEntry):
            return target
        if create:
            return self._registry.track(target)
        return self._registry.get(target)

    def _start(self, target: Target, interval: Optional[float], pin: bool) -> MonitoredWindow:
        if interval is not None and interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        if self._shutdown:
            raise RuntimeError("MonitorEngine has been shut down")

        entry = self._entry(target, create=True)
        if entry is None or entry.destroyed:
            hwnd = target if isinstance(target, int) else target.hwnd
            raise InvalidHandle(hwnd)

        with self._cond:
            existing = entry.monitor
            if existing is not None and existing.running:
                self._hold(existing, interval, pin)
                return existing

        try:
            snapshot = self._gateway.snapshot(entry.hwnd)
        except (AutowinError, OSError) as e:
            log.debug("start_monitoring %#010x: %s", entry.hwnd, e)
            self.retire_entry(entry)
            raise InvalidHandle(entry.hwnd) from e

        if interval is None:
            interval = self._default_interval
        monitor = MonitoredWindow(entry, interval, snapshot)
        with self._cond:
            bound = self._registry.attach_monitor(entry, monitor)
            if bound is not monitor:
                # Lost a race with another start.
                self._hold(bound, interval, pin)
                return bound
            self._hold(monitor, None, pin)
            monitor.state = MonitorState.RUNNING
            self._schedule(monitor, self._clock() + interval)
            self._cond.notify_all()

        log.info("MONITOR %#010x every %gs", entry.hwnd, interval)
        self._ensure_thread()
        return monitor

    def _hold(self, monitor: MonitoredWindow, interval: Optional[float], pin: bool) -> None:
        # Caller holds self._cond.
        if pin:
            monitor.pinned = True
            if interval is not None:
                self._set_interval(monitor, interval)
        else:
            monitor.leases += 1

    def _detach(self, entry: HandleEntry, monitor: MonitoredWindow) -> None:
        # Caller holds self._cond.
        if self._registry.get(entry.hwnd) is entry:
            self._registry.detach_monitor(entry.hwnd)
        else:
            entry.monitor = None
        monitor.state = MonitorState.STOPPED
        monitor.pinned = False
        monitor.leases = 0
        self._cond.notify_all()

    def _set_interval(self, monitor: MonitoredWindow, interval: float) -> None:
        # Caller holds self._cond.
        if monitor.interval == interval:
            return
        monitor.interval = interval
        self._schedule(monitor, min(monitor.due, self._clock() + interval))
        self._cond.notify_all()
        log.debug("MONITOR %#010x interval -> %gs", monitor.hwnd, interval)

    def _schedule(self, monitor: MonitoredWindow, due: float) -> None:
        # Caller holds self._cond.
        monitor.due = due
        heapq.heappush(self._heap, (due, next(self._seq), monitor))

    def _pop_due(self, now: float) -> Optional[MonitoredWindow]:
        # Caller holds self._cond.
        while self._heap:
            due, _, monitor = self._heap[0]
            if not monitor.running or due != monitor.due:
                heapq.heappop(self._heap)
                continue
            if due > now:
                return None
            heapq.heappop(self._heap)
            return monitor
        return None

    def _run_and_reschedule(self, monitor: MonitoredWindow) -> None:
        try:
            self.tick(monitor)
        except Exception:
            log.exception("Error ticking %#010x", monitor.hwnd)
        with self._cond:
            if monitor.running:
                self._schedule(monitor, self._clock() + monitor.interval)

    # ------------------------------------------------------------------
    # Internal: scheduler thread
    # ------------------------------------------------------------------
    def _ensure_thread(self) -> None:
        if not self._threaded:
            return
        with self._cond:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(
                target=self._loop, daemon=True, name="autowin-monitor",
            )
            self._thread.start()

    def _loop(self) -> None:
        log.debug("Monitor loop started")
        while True:
            with self._cond:
                while not self._shutdown:
                    monitor = self._pop_due(self._clock())
                    if monitor is not None:
                        break
                    if self._heap:
                        delay = max(0.0, self._heap[0][0] - self._clock())
                        self._cond.wait(delay)
                    else:
                        self._cond.wait()
                if self._shutdown:
                    break
            self._run_and_reschedule(monitor)
        log.debug("Monitor loop stopped")
