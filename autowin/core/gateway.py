"""
autowin.core.gateway - The native primitive layer, as an interface.

Everything above this module talks to the OS only through a
NativeWindowGateway.  The Windows implementation lives in
win32_gateway; tests drive the same code paths with an in-memory
gateway.

Contract for implementations:
    - Reads on a destroyed window raise InvalidHandle.
    - Refused writes raise Denied and leave the property unchanged.
    - create_process() raises LaunchError when nothing was started.
"""

from __future__ import annotations

import abc
import enum
from typing import Any

from autowin.core.errors import InvalidHandle
from autowin.core.snapshot import PropertySnapshot


class Prop(enum.Enum):
    """Named window properties understood by get/set_property()."""

    TITLE = "title"
    CLASS_NAME = "class_name"
    PROCESS_ID = "process_id"
    THREAD_ID = "thread_id"
    BOUNDS = "bounds"           # (x, y, width, height)
    STYLE = "style"
    EX_STYLE = "ex_style"
    VISIBLE = "visible"
    MINIMIZED = "minimized"
    MAXIMIZED = "maximized"
    FOCUSED = "focused"
    ENABLED = "enabled"


WRITABLE_PROPS: frozenset[Prop] = frozenset({
    Prop.TITLE,
    Prop.BOUNDS,
    Prop.STYLE,
    Prop.EX_STYLE,
    Prop.ENABLED,
})


class ControlMessage(enum.Enum):
    """Commands sent through send_control_message()."""

    CLOSE = "close"
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"
    RESTORE = "restore"
    SHOW = "show"
    HIDE = "hide"
    FOCUS = "focus"


class NativeWindowGateway(abc.ABC):
    """Primitive window and process operations."""

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def enumerate_top_level_windows(self) -> list[int]:
        """All top-level HWNDs, in Z-order (topmost first)."""

    @abc.abstractmethod
    def is_alive(self, hwnd: int) -> bool:
        """True while *hwnd* refers to an existing window."""

    @abc.abstractmethod
    def get_property(self, hwnd: int, prop: Prop) -> Any:
        """Read one property.  Raises InvalidHandle for dead windows."""

    @abc.abstractmethod
    def set_property(self, hwnd: int, prop: Prop, value: Any) -> None:
        """Write one property.  Raises Denied or InvalidHandle."""

    @abc.abstractmethod
    def send_control_message(self, hwnd: int, message: ControlMessage) -> bool:
        """Issue a command without waiting for its effect."""

    @abc.abstractmethod
    def foreground_window(self) -> int:
        """HWND of the foreground window (0 if none)."""

    def snapshot(self, hwnd: int) -> PropertySnapshot:
        """
        Capture every property of *hwnd*.

        Implementations with a cheaper batched read should override this.
        """
        if not self.is_alive(hwnd):
            raise InvalidHandle(hwnd)
        x, y, width, height = self.get_property(hwnd, Prop.BOUNDS)
        return PropertySnapshot(
            hwnd=hwnd,
            title=self.get_property(hwnd, Prop.TITLE),
            class_name=self.get_property(hwnd, Prop.CLASS_NAME),
            process_id=self.get_property(hwnd, Prop.PROCESS_ID),
            thread_id=self.get_property(hwnd, Prop.THREAD_ID),
            x=x,
            y=y,
            width=width,
            height=height,
            style=self.get_property(hwnd, Prop.STYLE),
            ex_style=self.get_property(hwnd, Prop.EX_STYLE),
            visible=self.get_property(hwnd, Prop.VISIBLE),
            minimized=self.get_property(hwnd, Prop.MINIMIZED),
            maximized=self.get_property(hwnd, Prop.MAXIMIZED),
            focused=self.get_property(hwnd, Prop.FOCUSED),
            enabled=self.get_property(hwnd, Prop.ENABLED),
        )

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def create_process(self, command: str) -> int:
        """Start *command* and return its PID.  Raises LaunchError."""

    @abc.abstractmethod
    def is_process_alive(self, pid: int) -> bool:
        """True while the process is running."""

    @abc.abstractmethod
    def process_name(self, pid: int) -> str:
        """Executable name of a process ('' if unknown)."""

    @abc.abstractmethod
    def child_pids(self, pid: int) -> set[int]:
        """PIDs of every descendant of *pid* (empty if it exited)."""

    # ------------------------------------------------------------------
    # Input and dialogs
    # ------------------------------------------------------------------
    @abc.abstractmethod
    def is_key_down(self, vk: int) -> bool:
        """True while the virtual key is held."""

    @abc.abstractmethod
    def message_box(self, text: str, title: str, style: int) -> int:
        """Show a modal message box; blocks and returns the button id."""
