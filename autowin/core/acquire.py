"""
autowin.core.acquire - WindowAcquirer: bind a launched process to its window.

Launching a program is easy; knowing which window it produced is not.
Single-instance applications (many editors, browsers, explorer) hand a
new launch over to an already running instance: the process we started
exits at once and an *existing* process opens or raises the window.

acquire() resolves this with a baseline diff:

  1. Record every top-level window (pid, visibility) and the foreground
     window before launching.  Each call keeps its own baseline.
  2. Launch the process, keep its PID.
  3. Poll.  Tier 1: a user-facing window owned by that PID that is not
     in the baseline.  Windows of its child processes (a launcher stub
     such as `cmd /c app.exe` that stays alive) rank after its own.
  4. Only once the launched process has exited without a tier-1 match:
     Tier 2: any user-facing window not in the baseline, whoever owns
     it.  Tier 3 (best effort): a baseline window of the same program
     family that was hidden and is now visible, or became foreground.
  5. Earliest-detected candidate of the first satisfied tier wins.

Tiers are always tried in that order; checking tier 2 while the
launched process still runs would bind it to windows opened by
unrelated concurrent launches.  Handles returned by an in-flight call
are claimed so two concurrent calls never return the same window.
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from autowin.core import spawn
from autowin.core.errors import AutowinError, LaunchError
from autowin.core.filter import is_user_window
from autowin.core.gateway import NativeWindowGateway, Prop
from autowin.core.registry import HandleRegistry
from autowin.core.snapshot import PropertySnapshot

log = logging.getLogger(__name__)


class AcquireStatus(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"        # process exited, no window surfaced
    TIMED_OUT = "timed_out"        # deadline hit, process still running
    LAUNCH_FAILED = "launch_failed"


@dataclass(frozen=True, slots=True)
class AcquireResult:
    status: AcquireStatus
    hwnd: int = 0
    pid: int = 0
    # 1 = own PID, 2 = baseline delta, 3 = family window resurfaced
    tier: int = 0
    elapsed: float = 0.0
    error: str = ""

    @property
    def found(self) -> bool:
        return self.status is AcquireStatus.FOUND


@dataclass(frozen=True, slots=True)
class BaselineEntry:
    pid: int
    visible: bool


@dataclass(slots=True)
class SpawnRequest:
    """Everything one acquire() call knows about its launch."""

    command: str
    timeout: float
    baseline: dict[int, BaselineEntry] = field(default_factory=dict)
    foreground: int = 0
    started: float = 0.0
    pid: int = 0


class WindowAcquirer:
    """Launches commands and resolves the window each launch surfaced."""

    def __init__(
        self,
        gateway: NativeWindowGateway,
        registry: HandleRegistry,
        interval: float = 0.075,
        exit_grace: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._interval = interval
        self._exit_grace = exit_grace
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.Lock()
        # hwnd -> time it was handed out
        self._claimed: dict[int, float] = {}
        # call id -> start time, for every acquire() in flight
        self._inflight: dict[int, float] = {}
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Baseline
    # ------------------------------------------------------------------
    def capture_baseline(self) -> tuple[dict[int, BaselineEntry], int]:
        """Snapshot {hwnd: (pid, visible)} of all windows, plus the foreground."""
        baseline: dict[int, BaselineEntry] = {}
        for hwnd in self._gateway.enumerate_top_level_windows():
            try:
                baseline[hwnd] = BaselineEntry(
                    pid=self._gateway.get_property(hwnd, Prop.PROCESS_ID),
                    visible=self._gateway.get_property(hwnd, Prop.VISIBLE),
                )
            except (AutowinError, OSError):
                # Died while enumerating; still counts as "old".
                baseline[hwnd] = BaselineEntry(pid=0, visible=False)
        return baseline, self._gateway.foreground_window()

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------
    def acquire(self, command: str, timeout: float) -> AcquireResult:
        """Launch *command* and return the window it surfaced."""
        call_id = next(self._ids)
        started = self._clock()
        with self._lock:
            self._inflight[call_id] = started
        try:
            return self._acquire(command, timeout, started)
        finally:
            with self._lock:
                del self._inflight[call_id]
                self._prune_claims()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _acquire(self, command: str, timeout: float, started: float) -> AcquireResult:
        baseline, foreground = self.capture_baseline()
        request = SpawnRequest(
            command=command,
            timeout=timeout,
            baseline=baseline,
            foreground=foreground,
            started=started,
        )
        log.debug(
            "acquire %r: baseline of %d windows", command, len(baseline),
        )

        try:
            request.pid = self._gateway.create_process(command)
        except LaunchError as e:
            log.error("acquire %r: launch failed: %s", command, e)
            return AcquireResult(AcquireStatus.LAUNCH_FAILED, error=str(e))

        try:
            exe = spawn.executable_name(command)
        except LaunchError:
            exe = ""

        deadline = started + timeout
        exited_at: Optional[float] = None
        family: set[int] = {request.pid}
        # hwnd -> (poll number, enumeration index) of first detection
        first_seen: dict[int, tuple[int, int]] = {}
        snapshots: dict[int, Optional[PropertySnapshot]] = {}

        for poll in itertools.count():
            current = self._gateway.enumerate_top_level_windows()
            fresh = [h for h in current if h not in baseline]

            # Snapshot each new window until it qualifies.
            for hwnd in fresh:
                snap = snapshots.get(hwnd)
                if snap is None or not is_user_window(snap):
                    snapshots[hwnd] = self._snapshot(hwnd)

            # --- Tier 1: own PID, then its children, not in baseline ---
            owned = [
                h for h in fresh
                if snapshots.get(h) is not None
                and snapshots[h].process_id in family
                and is_user_window(snapshots[h])
            ]
            own = [h for h in owned if snapshots[h].process_id == request.pid]
            children = [h for h in owned if snapshots[h].process_id != request.pid]
            result = self._claim_first(
                _ordered(own, current, poll, first_seen)
                + _ordered(children, current, poll, first_seen),
                request, tier=1,
            )
            if result is not None:
                return result

            if exited_at is None:
                if self._gateway.is_process_alive(request.pid):
                    family |= self._gateway.child_pids(request.pid)
                else:
                    exited_at = self._clock()
                    log.debug(
                        "acquire %r: PID %d exited without a window, "
                        "falling back to baseline delta",
                        command, request.pid,
                    )

            if exited_at is not None:
                # --- Tier 2: any new user window ---
                tier2 = [
                    h for h in fresh
                    if snapshots.get(h) is not None and is_user_window(snapshots[h])
                ]
                result = self._claim_first(
                    _ordered(tier2, current, poll, first_seen), request, tier=2,
                )
                if result is not None:
                    return result

                # --- Tier 3: family window resurfaced ---
                tier3 = self._resurfaced(request, current, family, exe)
                result = self._claim_first(
                    _ordered(tier3, current, poll, first_seen), request, tier=3,
                )
                if result is not None:
                    return result

            now = self._clock()
            if exited_at is not None and now - exited_at >= self._exit_grace:
                log.info(
                    "acquire %r: PID %d exited, no window found", command, request.pid,
                )
                return AcquireResult(
                    AcquireStatus.NOT_FOUND, pid=request.pid, elapsed=now - started,
                )
            if now >= deadline:
                status = AcquireStatus.TIMED_OUT if exited_at is None else AcquireStatus.NOT_FOUND
                log.info(
                    "acquire %r: %s after %.2fs", command, status.value, now - started,
                )
                return AcquireResult(status, pid=request.pid, elapsed=now - started)

            self._sleep(min(self._interval, deadline - now))

        raise AssertionError("poll loop exited")

    def _snapshot(self, hwnd: int) -> Optional[PropertySnapshot]:
        try:
            return self._gateway.snapshot(hwnd)
        except (AutowinError, OSError):
            return None

    def _resurfaced(
        self, request: SpawnRequest, current: list[int], family: set[int], exe: str,
    ) -> list[int]:
        """Baseline windows of the launched program that became visible or foreground."""
        foreground = self._gateway.foreground_window()
        names: dict[int, str] = {}
        found: list[int] = []
        for hwnd in current:
            before = request.baseline.get(hwnd)
            if before is None or before.pid == 0:
                continue
            if before.pid not in family:
                if not exe:
                    continue
                if before.pid not in names:
                    names[before.pid] = self._gateway.process_name(before.pid).lower()
                if names[before.pid] != exe:
                    continue
            snap = self._snapshot(hwnd)
            if snap is None or not is_user_window(snap):
                continue
            became_visible = not before.visible and snap.visible
            became_foreground = hwnd == foreground and hwnd != request.foreground
            if became_visible or became_foreground:
                found.append(hwnd)
        return found

    def _claim_first(
        self, candidates: list[int], request: SpawnRequest, tier: int,
    ) -> Optional[AcquireResult]:
        for hwnd in candidates:
            with self._lock:
                if hwnd in self._claimed:
                    continue
                self._claimed[hwnd] = self._clock()

            snap = self._snapshot(hwnd)
            owner = (snap.process_id, snap.thread_id) if snap is not None else None
            self._registry.track(hwnd, owner)
            elapsed = self._clock() - request.started
            log.info(
                "acquire %r: window %#010x (tier %d, PID %d) after %.2fs",
                request.command, hwnd, tier, request.pid, elapsed,
            )
            return AcquireResult(
                AcquireStatus.FOUND,
                hwnd=hwnd,
                pid=request.pid,
                tier=tier,
                elapsed=elapsed,
            )
        return None

    def _prune_claims(self) -> None:
        # Caller holds self._lock.  A claim only matters to calls that
        # started before it was made; later calls see it in their baseline.
        if not self._inflight:
            self._claimed.clear()
            return
        oldest = min(self._inflight.values())
        for hwnd, claimed_at in list(self._claimed.items()):
            if claimed_at < oldest:
                del self._claimed[hwnd]


def _ordered(
    candidates: list[int],
    current: list[int],
    poll: int,
    first_seen: dict[int, tuple[int, int]],
) -> list[int]:
    """Sort candidates by first detection (poll, then Z-order position)."""
    for hwnd in candidates:
        first_seen.setdefault(hwnd, (poll, current.index(hwnd)))
    return sorted(candidates, key=first_seen.__getitem__)
