"""
autowin.core.manager - WindowManager: the caller-facing entry point.

WindowManager owns one of each moving part and wires them together:

  1. A HandleRegistry - the single table of handles seen so far.
  2. A MonitorEngine - polls monitored windows and publishes signals.
  3. A WindowAcquirer - launches commands and finds their windows.

Everything a script needs goes through it:

    with WindowManager() as wm:
        notepad = wm.spawn("notepad.exe")
        notepad.maximize().wait(2)
        for win in wm.find("Visual Studio Code"):
            print(win)
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from autowin.config.settings import Settings
from autowin.core import keys
from autowin.core.acquire import AcquireResult, WindowAcquirer
from autowin.core.alert import MB_OK, AlertInstance
from autowin.core.errors import AutowinError
from autowin.core.filter import Matcher, as_predicate, is_user_window
from autowin.core.gateway import NativeWindowGateway, Prop
from autowin.core.monitor import MonitorEngine
from autowin.core.registry import HandleRegistry
from autowin.core.window import Window

log = logging.getLogger(__name__)


# ============================================================================
# WindowManager
# ============================================================================
class WindowManager:
    """
    Discovers, spawns and wraps windows.

    Args:
        gateway:  Native layer.  Defaults to the Win32 implementation.
        settings: Timings.  Defaults to Settings.from_env().
        threaded: Run the monitor on its own thread.  With False,
                  call monitor.run_pending() yourself.
    """

    def __init__(
        self,
        gateway: Optional[NativeWindowGateway] = None,
        settings: Optional[Settings] = None,
        threaded: bool = True,
    ) -> None:
        if gateway is None:
            from autowin.core.win32_gateway import Win32Gateway
            gateway = Win32Gateway()
        self.gateway = gateway
        self.settings = settings if settings is not None else Settings.from_env()

        self.registry = HandleRegistry()
        self.monitor = MonitorEngine(
            gateway,
            self.registry,
            default_interval=self.settings.monitor_interval,
            threaded=threaded,
        )
        self.acquirer = WindowAcquirer(
            gateway,
            self.registry,
            interval=self.settings.acquire_interval,
            exit_grace=self.settings.exit_grace,
        )

        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Public: window access
    # ------------------------------------------------------------------
    def window(self, hwnd: int) -> Optional[Window]:
        """Wrap an existing HWND, or None if no such window exists."""
        if not self.gateway.is_alive(hwnd):
            return None
        try:
            owner = (
                self.gateway.get_property(hwnd, Prop.PROCESS_ID),
                self.gateway.get_property(hwnd, Prop.THREAD_ID),
            )
        except AutowinError:
            return None
        return self._wrap(hwnd, owner)

    def windows(self, user_only: bool = True) -> list[Window]:
        """Every top-level window in Z-order, user-facing ones by default."""
        return self.find(None, user_only=user_only)

    def foreground(self) -> Optional[Window]:
        hwnd = self.gateway.foreground_window()
        return self.window(hwnd) if hwnd else None

    # ------------------------------------------------------------------
    # Public: search
    # ------------------------------------------------------------------
    def find(self, matcher: Matcher = None, user_only: bool = False) -> list[Window]:
        """
        All windows matching *matcher*, in Z-order.

        *matcher* is a title substring, a compiled regex, a WindowMatcher
        or any (PropertySnapshot) -> bool callable.
        """
        return [
            self._wrap(snap.hwnd, (snap.process_id, snap.thread_id))
            for snap in self._matching(matcher, user_only)
        ]

    def find_first(self, matcher: Matcher = None, user_only: bool = False) -> Optional[Window]:
        for snap in self._matching(matcher, user_only):
            return self._wrap(snap.hwnd, (snap.process_id, snap.thread_id))
        return None

    def wait_for(
        self,
        matcher: Matcher = None,
        timeout: Optional[float] = None,
        user_only: bool = False,
    ) -> Optional[Window]:
        """Poll until a window matches.  None if *timeout* elapsed first."""
        deadline = None if timeout is None else time.monotonic() + timeout
        interval = self.settings.wait_for_interval
        while True:
            win = self.find_first(matcher, user_only=user_only)
            if win is not None:
                return win
            if deadline is None:
                time.sleep(interval)
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                log.debug("wait_for: no match within %ss", timeout)
                return None
            time.sleep(min(interval, remaining))

    def _matching(self, matcher: Matcher, user_only: bool):
        predicate = as_predicate(matcher)
        for hwnd in self.gateway.enumerate_top_level_windows():
            try:
                snap = self.gateway.snapshot(hwnd)
            except (AutowinError, OSError):
                # Gone between enumeration and the read.
                continue
            if user_only and not is_user_window(snap):
                continue
            if predicate(snap):
                yield snap

    # ------------------------------------------------------------------
    # Public: spawning
    # ------------------------------------------------------------------
    def acquire(self, command: str, timeout: Optional[float] = None) -> AcquireResult:
        """Launch *command* and report in detail how its window was found."""
        if timeout is None:
            timeout = self.settings.acquire_timeout
        return self.acquirer.acquire(command, timeout)

    def spawn(self, command: str, timeout: Optional[float] = None) -> Optional[Window]:
        """
        Launch *command* and return the window it surfaced.

        Returns None if the process could not be started or no window
        appeared in time; use acquire() to tell those cases apart.
        """
        result = self.acquire(command, timeout)
        if not result.found:
            log.info("spawn %r: %s", command, result.status.value)
            return None
        entry = self.registry.get(result.hwnd)
        if entry is None or entry.destroyed:
            return self.window(result.hwnd)
        return Window(entry, self.gateway, self.monitor)

    def spawn_async(self, command: str, timeout: Optional[float] = None) -> Future:
        """spawn() on a worker thread.  The Future resolves to Window or None."""
        return self._pool().submit(self.spawn, command, timeout)

    def _pool(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._closed:
                raise RuntimeError("WindowManager has been shut down")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(thread_name_prefix="autowin-spawn")
            return self._executor

    # ------------------------------------------------------------------
    # Public: input and dialogs
    # ------------------------------------------------------------------
    def wait_for_key(self, combo: str, timeout: Optional[float] = None) -> bool:
        """Block until *combo* (e.g. "ctrl+shift+q") is held."""
        return keys.wait_for_key(
            self.gateway, combo, timeout, interval=self.settings.key_poll_interval,
        )

    def alert(self, text: str, title: str = "autowin", style: int = MB_OK) -> AlertInstance:
        """Show a message box without blocking."""
        return AlertInstance(self.gateway, text, title, style).show()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        """Stop monitoring, release blocked waiters, drop every handle."""
        with self._executor_lock:
            if self._closed:
                return
            self._closed = True
            executor, self._executor = self._executor, None
        self.monitor.shutdown()
        if executor is not None:
            executor.shutdown(wait=False)
        self.registry.clear()
        log.info("WindowManager shut down")

    def __enter__(self) -> WindowManager:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _wrap(self, hwnd: int, owner: tuple[int, int]) -> Window:
        entry, stale = self.registry.track_checked(hwnd, owner)
        if stale is not None:
            self.monitor.retire_entry(stale)
        return Window(entry, self.gateway, self.monitor)

    def __repr__(self) -> str:
        return f"WindowManager(tracked={len(self.registry)}, monitored={self.monitor.count})"

