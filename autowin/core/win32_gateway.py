"""
autowin.core.win32_gateway - NativeWindowGateway backed by the real OS.

Window primitives go through the ctypes bindings in win32; process
bookkeeping through psutil; message boxes and key state through
pywin32's win32api.
"""

from __future__ import annotations

import logging
from typing import Any

import psutil
import win32api
import win32con

from autowin.core import spawn, win32
from autowin.core.errors import Denied, InvalidHandle
from autowin.core.gateway import ControlMessage, NativeWindowGateway, Prop
from autowin.core.snapshot import PropertySnapshot

log = logging.getLogger(__name__)


_SHOW_COMMANDS: dict[ControlMessage, int] = {
    ControlMessage.MINIMIZE: win32.SW_MINIMIZE,
    ControlMessage.MAXIMIZE: win32.SW_MAXIMIZE,
    ControlMessage.RESTORE: win32.SW_RESTORE,
    ControlMessage.SHOW: win32.SW_SHOW,
    ControlMessage.HIDE: win32.SW_HIDE,
}


class Win32Gateway(NativeWindowGateway):
    """The Windows implementation of the native primitive layer."""

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------
    def enumerate_top_level_windows(self) -> list[int]:
        return win32.list_windows()

    def is_alive(self, hwnd: int) -> bool:
        return win32.is_window_valid(hwnd)

    def foreground_window(self) -> int:
        return win32.get_foreground_window()

    def _check(self, hwnd: int) -> None:
        if not win32.is_window_valid(hwnd):
            raise InvalidHandle(hwnd)

    def get_property(self, hwnd: int, prop: Prop) -> Any:
        self._check(hwnd)
        if prop is Prop.TITLE:
            return win32.get_window_text(hwnd)
        if prop is Prop.CLASS_NAME:
            return win32.get_class_name(hwnd)
        if prop is Prop.PROCESS_ID:
            return win32.get_window_thread_process_id(hwnd)[1]
        if prop is Prop.THREAD_ID:
            return win32.get_window_thread_process_id(hwnd)[0]
        if prop is Prop.BOUNDS:
            left, top, right, bottom = win32.get_window_rect(hwnd)
            return (left, top, right - left, bottom - top)
        if prop is Prop.STYLE:
            return win32.get_window_style(hwnd)
        if prop is Prop.EX_STYLE:
            return win32.get_window_ex_style(hwnd)
        if prop is Prop.VISIBLE:
            return win32.is_window_visible(hwnd)
        if prop is Prop.MINIMIZED:
            return win32.is_window_iconic(hwnd)
        if prop is Prop.MAXIMIZED:
            return win32.is_window_zoomed(hwnd)
        if prop is Prop.FOCUSED:
            return win32.get_foreground_window() == hwnd
        if prop is Prop.ENABLED:
            return win32.is_window_enabled(hwnd)
        raise ValueError(f"unknown property {prop!r}")

    def snapshot(self, hwnd: int) -> PropertySnapshot:
        self._check(hwnd)
        thread_id, pid = win32.get_window_thread_process_id(hwnd)
        left, top, right, bottom = win32.get_window_rect(hwnd)
        snap = PropertySnapshot(
            hwnd=hwnd,
            title=win32.get_window_text(hwnd),
            class_name=win32.get_class_name(hwnd),
            process_id=pid,
            thread_id=thread_id,
            x=left,
            y=top,
            width=right - left,
            height=bottom - top,
            style=win32.get_window_style(hwnd),
            ex_style=win32.get_window_ex_style(hwnd),
            visible=win32.is_window_visible(hwnd),
            minimized=win32.is_window_iconic(hwnd),
            maximized=win32.is_window_zoomed(hwnd),
            focused=win32.get_foreground_window() == hwnd,
            enabled=win32.is_window_enabled(hwnd),
        )
        # The window may have died half-way through the reads.
        self._check(hwnd)
        return snap

    def set_property(self, hwnd: int, prop: Prop, value: Any) -> None:
        self._check(hwnd)
        if prop is Prop.TITLE:
            ok = win32.set_window_text(hwnd, str(value))
        elif prop is Prop.BOUNDS:
            x, y, width, height = value
            ok = win32.set_window_pos(hwnd, x, y, width, height)
        elif prop is Prop.STYLE:
            ok = win32.set_window_long(hwnd, win32.GWL_STYLE, value)
            if ok:
                win32.set_window_pos(
                    hwnd, 0, 0, 0, 0,
                    flags=(
                        win32.SWP_NOMOVE | win32.SWP_NOSIZE | win32.SWP_NOZORDER
                        | win32.SWP_NOACTIVATE | win32.SWP_FRAMECHANGED
                    ),
                )
        elif prop is Prop.EX_STYLE:
            ok = win32.set_window_long(hwnd, win32.GWL_EXSTYLE, value)
        elif prop is Prop.ENABLED:
            win32.enable_window(hwnd, bool(value))
            ok = win32.is_window_enabled(hwnd) == bool(value)
        else:
            raise ValueError(f"property {prop.value!r} is read-only")

        if not ok:
            error = win32.last_error()
            if error == win32.ERROR_INVALID_WINDOW_HANDLE or not win32.is_window_valid(hwnd):
                raise InvalidHandle(hwnd)
            log.warning(
                "set %s on %#010x failed (error %d)", prop.value, hwnd, error,
            )
            raise Denied(hwnd, f"set {prop.value}")

    def send_control_message(self, hwnd: int, message: ControlMessage) -> bool:
        self._check(hwnd)
        if message is ControlMessage.CLOSE:
            return win32.post_message(hwnd, win32.WM_CLOSE)
        if message is ControlMessage.FOCUS:
            if win32.is_window_iconic(hwnd):
                win32.show_window(hwnd, win32.SW_RESTORE)
            return win32.set_foreground_window(hwnd)
        # ShowWindow returns the previous visibility, not success.
        win32.show_window(hwnd, _SHOW_COMMANDS[message])
        return True

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------
    def create_process(self, command: str) -> int:
        return spawn.launch(command).pid

    def is_process_alive(self, pid: int) -> bool:
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return psutil.pid_exists(pid)

    def process_name(self, pid: int) -> str:
        try:
            return psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return ""

    def child_pids(self, pid: int) -> set[int]:
        try:
            return {c.pid for c in psutil.Process(pid).children(recursive=True)}
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return set()

    # ------------------------------------------------------------------
    # Input and dialogs
    # ------------------------------------------------------------------
    def is_key_down(self, vk: int) -> bool:
        return bool(win32api.GetAsyncKeyState(vk) & 0x8000)

    def message_box(self, text: str, title: str, style: int) -> int:
        return win32api.MessageBox(0, text, title, style | win32con.MB_SETFOREGROUND)
