"""
Shared fixtures: an in-memory desktop standing in for the OS.

FakeGateway implements NativeWindowGateway over plain dicts so every
component can be exercised without touching real windows.
"""

import itertools
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import pytest

from autowin.config.settings import Settings
from autowin.core.errors import Denied, InvalidHandle, LaunchError
from autowin.core.gateway import (
    WRITABLE_PROPS,
    ControlMessage,
    NativeWindowGateway,
    Prop,
)
from autowin.core.manager import WindowManager
from autowin.core.monitor import MonitorEngine
from autowin.core.registry import HandleRegistry
from autowin.core.spawn import executable_name
from autowin.core.styles import WS_OVERLAPPEDWINDOW


# ============================================================================
# FAKE DESKTOP
# ============================================================================

@dataclass
class FakeWindow:
    hwnd: int
    title: str = ""
    class_name: str = "FakeWindowClass"
    pid: int = 1000
    tid: int = 1
    x: int = 0
    y: int = 0
    width: int = 800
    height: int = 600
    style: int = WS_OVERLAPPEDWINDOW
    ex_style: int = 0
    visible: bool = True
    minimized: bool = False
    maximized: bool = False
    enabled: bool = True


@dataclass
class FakeProcess:
    pid: int
    name: str
    alive: bool = True
    children: set = field(default_factory=set)


Launcher = Callable[["FakeGateway", int], None]


class FakeGateway(NativeWindowGateway):
    """Scripted desktop.  Thread-safe enough for the concurrency tests."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.windows: dict[int, FakeWindow] = {}
        self.z_order: list[int] = []
        self.foreground = 0
        self.processes: dict[int, FakeProcess] = {}
        self.launchers: dict[str, Launcher] = {}
        self.denied: set[tuple[int, Prop]] = set()
        self.keys_down: set[int] = set()
        self.apply_controls = True
        self.sent: list[tuple[int, ControlMessage]] = []
        self.native_calls = 0
        self.box_result = 1
        self.box_release: Optional[threading.Event] = None
        self._hwnds = itertools.count(0x10000, 0x10)
        self._pids = itertools.count(5000)

    # ------------------------------------------------------------------
    # Scripting helpers
    # ------------------------------------------------------------------
    def add_window(self, hwnd: Optional[int] = None, **props) -> int:
        with self.lock:
            if hwnd is None:
                hwnd = next(self._hwnds)
            self.windows[hwnd] = FakeWindow(hwnd=hwnd, **props)
            self.z_order.insert(0, hwnd)
            pid = self.windows[hwnd].pid
            self.processes.setdefault(pid, FakeProcess(pid, "fake.exe"))
            return hwnd

    def destroy(self, hwnd: int) -> None:
        with self.lock:
            self.windows.pop(hwnd, None)
            if hwnd in self.z_order:
                self.z_order.remove(hwnd)
            if self.foreground == hwnd:
                self.foreground = 0

    def add_process(self, name: str, pid: Optional[int] = None, alive: bool = True) -> int:
        with self.lock:
            if pid is None:
                pid = next(self._pids)
            self.processes[pid] = FakeProcess(pid, name, alive)
            return pid

    def exit_process(self, pid: int) -> None:
        with self.lock:
            self.processes[pid].alive = False

    def _window(self, hwnd: int) -> FakeWindow:
        self.native_calls += 1
        win = self.windows.get(hwnd)
        if win is None:
            raise InvalidHandle(hwnd)
        return win

    # ------------------------------------------------------------------
    # NativeWindowGateway
    # ------------------------------------------------------------------
    def enumerate_top_level_windows(self) -> list[int]:
        with self.lock:
            self.native_calls += 1
            return list(self.z_order)

    def is_alive(self, hwnd: int) -> bool:
        with self.lock:
            self.native_calls += 1
            return hwnd in self.windows

    def get_property(self, hwnd: int, prop: Prop):
        with self.lock:
            win = self._window(hwnd)
            if prop is Prop.TITLE:
                return win.title
            if prop is Prop.CLASS_NAME:
                return win.class_name
            if prop is Prop.PROCESS_ID:
                return win.pid
            if prop is Prop.THREAD_ID:
                return win.tid
            if prop is Prop.BOUNDS:
                return (win.x, win.y, win.width, win.height)
            if prop is Prop.STYLE:
                return win.style
            if prop is Prop.EX_STYLE:
                return win.ex_style
            if prop is Prop.VISIBLE:
                return win.visible
            if prop is Prop.MINIMIZED:
                return win.minimized
            if prop is Prop.MAXIMIZED:
                return win.maximized
            if prop is Prop.FOCUSED:
                return self.foreground == hwnd
            if prop is Prop.ENABLED:
                return win.enabled
            raise ValueError(prop)

    def set_property(self, hwnd: int, prop: Prop, value) -> None:
        with self.lock:
            win = self._window(hwnd)
            if prop not in WRITABLE_PROPS or (hwnd, prop) in self.denied:
                raise Denied(hwnd, f"set {prop.value}")
            if prop is Prop.BOUNDS:
                win.x, win.y, win.width, win.height = value
            elif prop is Prop.TITLE:
                win.title = value
            elif prop is Prop.STYLE:
                win.style = value
            elif prop is Prop.EX_STYLE:
                win.ex_style = value
            elif prop is Prop.ENABLED:
                win.enabled = value

    def send_control_message(self, hwnd: int, message: ControlMessage) -> bool:
        with self.lock:
            win = self._window(hwnd)
            self.sent.append((hwnd, message))
            if not self.apply_controls:
                return True
            if message is ControlMessage.CLOSE:
                self.destroy(hwnd)
            elif message is ControlMessage.MINIMIZE:
                win.minimized, win.maximized = True, False
            elif message is ControlMessage.MAXIMIZE:
                win.minimized, win.maximized = False, True
            elif message is ControlMessage.RESTORE:
                win.minimized = win.maximized = False
            elif message is ControlMessage.SHOW:
                win.visible = True
            elif message is ControlMessage.HIDE:
                win.visible = False
            elif message is ControlMessage.FOCUS:
                win.minimized = False
                self.foreground = hwnd
            return True

    def foreground_window(self) -> int:
        with self.lock:
            return self.foreground

    def create_process(self, command: str) -> int:
        launcher = self.launchers.get(command)
        if launcher is None:
            raise LaunchError(f"cannot find {command!r}")
        pid = self.add_process(executable_name(command))
        launcher(self, pid)
        return pid

    def is_process_alive(self, pid: int) -> bool:
        with self.lock:
            proc = self.processes.get(pid)
            return proc is not None and proc.alive

    def process_name(self, pid: int) -> str:
        with self.lock:
            proc = self.processes.get(pid)
            return proc.name if proc is not None else ""

    def child_pids(self, pid: int) -> set[int]:
        with self.lock:
            proc = self.processes.get(pid)
            return set(proc.children) if proc is not None and proc.alive else set()

    def is_key_down(self, vk: int) -> bool:
        return vk in self.keys_down

    def message_box(self, text: str, title: str, style: int) -> int:
        if self.box_release is not None:
            self.box_release.wait(5)
        return self.box_result


class FakeClock:
    """Manual clock; sleep() advances time and runs due callbacks."""

    def __init__(self) -> None:
        self.now = 0.0
        self._scheduled: list[tuple[float, Callable[[], None]]] = []

    def __call__(self) -> float:
        return self.now

    def at(self, when: float, callback: Callable[[], None]) -> None:
        self._scheduled.append((when, callback))
        self._scheduled.sort(key=lambda item: item[0])

    def sleep(self, seconds: float) -> None:
        self.now += seconds
        while self._scheduled and self._scheduled[0][0] <= self.now:
            _, callback = self._scheduled.pop(0)
            callback()


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    reg = HandleRegistry()
    yield reg
    reg.clear()


@pytest.fixture
def engine(gateway, registry, clock):
    """A MonitorEngine driven by hand (no scheduler thread)."""
    eng = MonitorEngine(gateway, registry, default_interval=0.1, threaded=False, clock=clock)
    yield eng
    eng.shutdown()


@pytest.fixture
def fast_settings():
    return Settings(
        monitor_interval=0.01,
        acquire_interval=0.01,
        acquire_timeout=1.0,
        exit_grace=0.2,
        wait_for_interval=0.01,
        key_poll_interval=0.005,
    )


@pytest.fixture
def wm(gateway, fast_settings):
    manager = WindowManager(gateway=gateway, settings=fast_settings)
    yield manager
    manager.shutdown()
