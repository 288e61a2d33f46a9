"""
autowin.core.window - The Window handle.

Each Window instance is a lightweight, live handle to a real top-level
window.  Properties read through the gateway on demand so the data is
always fresh; the monitor's cached snapshot is never used for reads.

Commands (close, minimize, ...) issue their native call and return at
once with a CompletionToken:

    win.minimize()              # fire and forget
    win.minimize().wait(2.0)    # block until Minimized is observed
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Hashable
from typing import TYPE_CHECKING, Any, Optional

from autowin.core import styles
from autowin.core.awaitable import CompletionToken
from autowin.core.errors import InvalidHandle
from autowin.core.gateway import ControlMessage, NativeWindowGateway, Prop
from autowin.core.registry import HandleEntry
from autowin.core.signals import SignalCallback, Subscription, WindowEvent, WindowSignal
from autowin.core.snapshot import PropertySnapshot

if TYPE_CHECKING:
    from autowin.core.monitor import MonitorEngine

log = logging.getLogger(__name__)


# ============================================================================
# WindowState enum
# ============================================================================
class WindowState(enum.Enum):
    """Observable state of a window."""
    NORMAL = "normal"
    MINIMIZED = "minimized"
    MAXIMIZED = "maximized"
    HIDDEN = "hidden"


# ============================================================================
# Window
# ============================================================================
class Window:
    """
    Represents a single top-level window on the system.

    A Window is bound to one HandleRegistry entry.  Once that entry has
    been retired (the window closed), every read and command raises
    InvalidHandle, even if the OS hands the same HWND value to a new
    window later.

    Equality and hashing are based on the registry entry, so two Window
    objects for the same live handle compare equal.
    """

    __slots__ = ("_entry", "_gateway", "_monitor")

    def __init__(
        self,
        entry: HandleEntry,
        gateway: NativeWindowGateway,
        monitor: MonitorEngine,
    ) -> None:
        self._entry = entry
        self._gateway = gateway
        self._monitor = monitor

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    @property
    def hwnd(self) -> int:
        return self._entry.hwnd

    @property
    def is_valid(self) -> bool:
        """True if the underlying OS window still exists."""
        if self._entry.destroyed:
            return False
        return self._gateway.is_alive(self._entry.hwnd)

    # ------------------------------------------------------------------
    # Native access
    # ------------------------------------------------------------------
    def _check(self) -> int:
        if self._entry.destroyed:
            raise InvalidHandle(self._entry.hwnd)
        return self._entry.hwnd

    def _closed(self) -> None:
        # Found dead outside of a tick; make it official.
        self._monitor.retire_entry(self._entry)

    def _get(self, prop: Prop) -> Any:
        hwnd = self._check()
        try:
            return self._gateway.get_property(hwnd, prop)
        except InvalidHandle:
            self._closed()
            raise

    def _set(self, prop: Prop, value: Any) -> None:
        hwnd = self._check()
        try:
            self._gateway.set_property(hwnd, prop, value)
        except InvalidHandle:
            self._closed()
            raise
        log.debug("SET %s %#010x = %r", prop.value, hwnd, value)

    # ------------------------------------------------------------------
    # Descriptors (read live)
    # ------------------------------------------------------------------
    @property
    def title(self) -> str:
        return self._get(Prop.TITLE)

    @title.setter
    def title(self, value: str) -> None:
        self._set(Prop.TITLE, value)

    @property
    def class_name(self) -> str:
        return self._get(Prop.CLASS_NAME)

    @property
    def pid(self) -> int:
        return self._get(Prop.PROCESS_ID)

    @property
    def thread_id(self) -> int:
        return self._get(Prop.THREAD_ID)

    @property
    def process_name(self) -> str:
        return self._gateway.process_name(self.pid)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def bounds(self) -> tuple[int, int, int, int]:
        """(x, y, width, height)"""
        return tuple(self._get(Prop.BOUNDS))

    @bounds.setter
    def bounds(self, value: tuple[int, int, int, int]) -> None:
        x, y, width, height = value
        self._set(Prop.BOUNDS, (int(x), int(y), int(width), int(height)))

    @property
    def x(self) -> int:
        return self.bounds[0]

    @property
    def y(self) -> int:
        return self.bounds[1]

    @property
    def width(self) -> int:
        return self.bounds[2]

    @property
    def height(self) -> int:
        return self.bounds[3]

    @property
    def position(self) -> tuple[int, int]:
        x, y, _, _ = self.bounds
        return (x, y)

    @position.setter
    def position(self, value: tuple[int, int]) -> None:
        self.move(*value)

    @property
    def size(self) -> tuple[int, int]:
        _, _, width, height = self.bounds
        return (width, height)

    @size.setter
    def size(self, value: tuple[int, int]) -> None:
        self.resize(*value)

    def move_resize(self, x: int, y: int, width: int, height: int) -> None:
        """Reposition and resize the window."""
        self.bounds = (x, y, width, height)

    def move(self, x: int, y: int) -> None:
        """Move without changing size."""
        _, _, width, height = self.bounds
        self.bounds = (x, y, width, height)

    def resize(self, width: int, height: int) -> None:
        """Resize without moving."""
        x, y, _, _ = self.bounds
        self.bounds = (x, y, width, height)

    # ------------------------------------------------------------------
    # Style flags
    # ------------------------------------------------------------------
    @property
    def style(self) -> int:
        return self._get(Prop.STYLE)

    @style.setter
    def style(self, value: int) -> None:
        self._set(Prop.STYLE, value)

    @property
    def ex_style(self) -> int:
        return self._get(Prop.EX_STYLE)

    @ex_style.setter
    def ex_style(self, value: int) -> None:
        self._set(Prop.EX_STYLE, value)

    @property
    def is_visible(self) -> bool:
        return self._get(Prop.VISIBLE)

    @property
    def is_minimized(self) -> bool:
        return self._get(Prop.MINIMIZED)

    @property
    def is_maximized(self) -> bool:
        return self._get(Prop.MAXIMIZED)

    @property
    def is_focused(self) -> bool:
        return self._get(Prop.FOCUSED)

    @property
    def is_enabled(self) -> bool:
        return self._get(Prop.ENABLED)

    @is_enabled.setter
    def is_enabled(self, value: bool) -> None:
        self._set(Prop.ENABLED, bool(value))

    @property
    def is_child(self) -> bool:
        return bool(self.style & styles.WS_CHILD)

    @property
    def is_tool_window(self) -> bool:
        return bool(self.ex_style & styles.WS_EX_TOOLWINDOW)

    @property
    def is_topmost(self) -> bool:
        return bool(self.ex_style & styles.WS_EX_TOPMOST)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def state(self) -> WindowState:
        if not self.is_visible:
            return WindowState.HIDDEN
        if self.is_minimized:
            return WindowState.MINIMIZED
        if self.is_maximized:
            return WindowState.MAXIMIZED
        return WindowState.NORMAL

    def snapshot(self) -> PropertySnapshot:
        """Capture every property now, in one go."""
        hwnd = self._check()
        try:
            return self._gateway.snapshot(hwnd)
        except InvalidHandle:
            self._closed()
            raise

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def close(self) -> CompletionToken:
        """Request a graceful close; completes on Closed."""
        return self._command(
            ControlMessage.CLOSE,
            WindowEvent.CLOSED,
            satisfied=lambda: not self._gateway.is_alive(self._entry.hwnd),
        )

    def minimize(self) -> CompletionToken:
        return self._command(
            ControlMessage.MINIMIZE,
            WindowEvent.MINIMIZED,
            satisfied=lambda: self.is_minimized,
        )

    def maximize(self) -> CompletionToken:
        return self._command(
            ControlMessage.MAXIMIZE,
            WindowEvent.MAXIMIZED,
            satisfied=lambda: self.is_maximized,
        )

    def restore(self) -> CompletionToken:
        return self._command(
            ControlMessage.RESTORE,
            WindowEvent.RESTORED,
            satisfied=lambda: not self.is_minimized and not self.is_maximized,
        )

    def focus(self) -> CompletionToken:
        """Bring the window to the foreground, restoring it if minimized."""
        return self._command(
            ControlMessage.FOCUS,
            WindowEvent.FOCUSED,
            satisfied=lambda: self.is_focused,
        )

    def show(self) -> CompletionToken:
        return self._command(
            ControlMessage.SHOW,
            WindowEvent.CHANGED,
            predicate=_changed("visible", True),
            satisfied=lambda: self.is_visible,
        )

    def hide(self) -> CompletionToken:
        return self._command(
            ControlMessage.HIDE,
            WindowEvent.CHANGED,
            predicate=_changed("visible", False),
            satisfied=lambda: not self.is_visible,
        )

    def _command(
        self,
        message: ControlMessage,
        kind: WindowEvent,
        satisfied: Callable[[], bool],
        predicate: Optional[Callable[[Any], bool]] = None,
    ) -> CompletionToken:
        hwnd = self._check()
        token = CompletionToken(
            self._entry.bus,
            kind,
            predicate=predicate,
            satisfied=satisfied,
            observe=self._observe,
            abort_on=(WindowEvent.CLOSED,),
            description=f"{message.value} {hwnd:#010x}",
        )
        try:
            token.sent = self._gateway.send_control_message(hwnd, message)
        except InvalidHandle:
            token.cancel()
            self._closed()
            raise
        log.debug("%s %#010x (sent=%s)", message.value.upper(), hwnd, token.sent)
        return token

    def _observe(self) -> Optional[Callable[[], None]]:
        """Hold the monitor for the duration of a wait."""
        monitor = self._monitor.acquire_observer(self._entry)
        return lambda: self._monitor.release_observer(monitor)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def connect(self, kind: WindowEvent, callback: SignalCallback) -> Subscription:
        """
        Call *callback* with every WindowSignal of *kind*.

        Signals are only produced while the window is monitored, so this
        keeps the window monitored until stop_monitoring(), starting at
        the default interval if it was not running.
        """
        self._check()
        sub = self._entry.bus.connect(kind, callback)
        self._monitor.start_monitoring(self._entry)
        return sub

    def wait(self, kind: Hashable, timeout: Optional[float] = None) -> WindowSignal:
        """
        Block until the next signal of *kind* and return it.

        Raises TimedOut, or BusClosed if the window closes first (unless
        waiting for CLOSED itself).
        """
        self._check()
        release = self._observe_quietly()
        try:
            return self._entry.bus.wait(kind, timeout)
        finally:
            if release is not None:
                release()

    def _observe_quietly(self) -> Optional[Callable[[], None]]:
        try:
            return self._observe()
        except InvalidHandle:
            # Already closed; the bus is closed too and wait() reports it.
            return None

    def start_monitoring(self, interval: Optional[float] = None) -> None:
        self._check()
        self._monitor.start_monitoring(self._entry, interval)

    def stop_monitoring(self) -> bool:
        return self._monitor.stop_monitoring(self._entry)

    @property
    def is_monitored(self) -> bool:
        return self._monitor.is_monitoring(self._entry)

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if isinstance(other, Window):
            return self._entry is other._entry
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._entry.hwnd)

    def __repr__(self) -> str:
        try:
            title = self.title if self.is_valid else "<destroyed>"
        except InvalidHandle:
            title = "<destroyed>"
        return f"Window(hwnd={self.hwnd:#010x}, title={title!r})"

    def __str__(self) -> str:
        try:
            snap = self.snapshot()
        except InvalidHandle:
            return f"[{self.hwnd:#010x}] <destroyed>"
        if not snap.visible:
            state = WindowState.HIDDEN
        elif snap.minimized:
            state = WindowState.MINIMIZED
        elif snap.maximized:
            state = WindowState.MAXIMIZED
        else:
            state = WindowState.NORMAL
        return (
            f"[{self.hwnd:#010x}] {snap.title!r} | "
            f"PID:{snap.process_id} | "
            f"{state.value} | "
            f"{snap.width}x{snap.height}+{snap.x}+{snap.y}"
        )


def _changed(field_name: str, value: Any) -> Callable[[Any], bool]:
    def matches(signal: Any) -> bool:
        return isinstance(signal, WindowSignal) and signal.args == (field_name, value)
    return matches
