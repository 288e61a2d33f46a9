"""
autowin.core.win32 - Low-level Win32 API bindings via ctypes.

Centralizes every user32/kernel32 call autowin makes so that no other
module needs to import ctypes directly.  Only win32_gateway imports
this module; it fails to import on non-Windows systems.
"""

from __future__ import annotations

import ctypes
import ctypes.wintypes
from typing import Callable

# ============================================================================
# DLL handles
# ============================================================================
user32 = ctypes.WinDLL("user32", use_last_error=True)
kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)

# ============================================================================
# Constants
# ============================================================================

# Window messages
WM_CLOSE = 0x0010

# ShowWindow commands
SW_HIDE = 0
SW_NORMAL = 1
SW_MAXIMIZE = 3
SW_SHOWNOACTIVATE = 4
SW_SHOW = 5
SW_MINIMIZE = 6
SW_RESTORE = 9

# GetWindowLong indices
GWL_STYLE = -16
GWL_EXSTYLE = -20

# SetWindowPos flags
SWP_NOSIZE = 0x0001
SWP_NOMOVE = 0x0002
SWP_NOZORDER = 0x0004
SWP_NOACTIVATE = 0x0010
SWP_FRAMECHANGED = 0x0020
HWND_TOP = 0

# GetLastError codes
ERROR_ACCESS_DENIED = 5
ERROR_INVALID_WINDOW_HANDLE = 1400

# ============================================================================
# Signatures (HWND is pointer sized; default int conversion truncates it)
# ============================================================================
EnumWindowsProc = ctypes.WINFUNCTYPE(
    ctypes.c_bool,
    ctypes.wintypes.HWND,
    ctypes.wintypes.LPARAM,
)

user32.EnumWindows.argtypes = [EnumWindowsProc, ctypes.wintypes.LPARAM]
user32.EnumWindows.restype = ctypes.wintypes.BOOL
user32.IsWindow.argtypes = [ctypes.wintypes.HWND]
user32.IsWindow.restype = ctypes.wintypes.BOOL
user32.GetWindowTextLengthW.argtypes = [ctypes.wintypes.HWND]
user32.GetWindowTextW.argtypes = [ctypes.wintypes.HWND, ctypes.wintypes.LPWSTR, ctypes.c_int]
user32.SetWindowTextW.argtypes = [ctypes.wintypes.HWND, ctypes.wintypes.LPCWSTR]
user32.SetWindowTextW.restype = ctypes.wintypes.BOOL
user32.GetClassNameW.argtypes = [ctypes.wintypes.HWND, ctypes.wintypes.LPWSTR, ctypes.c_int]
user32.GetWindowThreadProcessId.argtypes = [
    ctypes.wintypes.HWND, ctypes.POINTER(ctypes.wintypes.DWORD),
]
user32.GetWindowThreadProcessId.restype = ctypes.wintypes.DWORD
user32.GetWindowRect.argtypes = [ctypes.wintypes.HWND, ctypes.POINTER(ctypes.wintypes.RECT)]
user32.GetWindowRect.restype = ctypes.wintypes.BOOL
user32.GetWindowLongW.argtypes = [ctypes.wintypes.HWND, ctypes.c_int]
user32.GetWindowLongW.restype = ctypes.c_long
user32.SetWindowLongW.argtypes = [ctypes.wintypes.HWND, ctypes.c_int, ctypes.c_long]
user32.SetWindowLongW.restype = ctypes.c_long
user32.IsWindowVisible.argtypes = [ctypes.wintypes.HWND]
user32.IsIconic.argtypes = [ctypes.wintypes.HWND]
user32.IsZoomed.argtypes = [ctypes.wintypes.HWND]
user32.IsWindowEnabled.argtypes = [ctypes.wintypes.HWND]
user32.EnableWindow.argtypes = [ctypes.wintypes.HWND, ctypes.wintypes.BOOL]
user32.GetForegroundWindow.restype = ctypes.wintypes.HWND
user32.SetForegroundWindow.argtypes = [ctypes.wintypes.HWND]
user32.ShowWindow.argtypes = [ctypes.wintypes.HWND, ctypes.c_int]
user32.PostMessageW.argtypes = [
    ctypes.wintypes.HWND, ctypes.wintypes.UINT,
    ctypes.wintypes.WPARAM, ctypes.wintypes.LPARAM,
]
user32.PostMessageW.restype = ctypes.wintypes.BOOL
user32.SetWindowPos.argtypes = [
    ctypes.wintypes.HWND, ctypes.wintypes.HWND,
    ctypes.c_int, ctypes.c_int, ctypes.c_int, ctypes.c_int, ctypes.wintypes.UINT,
]
user32.SetWindowPos.restype = ctypes.wintypes.BOOL


def _hwnd(value: int | None) -> int:
    """ctypes hands HWND back as None for NULL."""
    return value or 0


# ============================================================================
# Wrapped API functions
# ============================================================================

def last_error() -> int:
    return ctypes.get_last_error()


def enum_windows(callback: Callable[[int, int], bool]) -> None:
    """Enumerate all top-level windows."""
    _cb = EnumWindowsProc(lambda hwnd, lparam: callback(_hwnd(hwnd), lparam))
    user32.EnumWindows(_cb, 0)


def list_windows() -> list[int]:
    """All top-level HWNDs in Z-order."""
    handles: list[int] = []

    def _collect(hwnd: int, _: int) -> bool:
        handles.append(hwnd)
        return True

    enum_windows(_collect)
    return handles


def get_window_text(hwnd: int) -> str:
    """Get the title bar text of a window."""
    length = user32.GetWindowTextLengthW(hwnd)
    if length == 0:
        return ""
    buf = ctypes.create_unicode_buffer(length + 1)
    user32.GetWindowTextW(hwnd, buf, length + 1)
    return buf.value


def set_window_text(hwnd: int, text: str) -> bool:
    return bool(user32.SetWindowTextW(hwnd, text))


def get_class_name(hwnd: int) -> str:
    """Get the window class name."""
    buf = ctypes.create_unicode_buffer(256)
    user32.GetClassNameW(hwnd, buf, 256)
    return buf.value


def get_window_thread_process_id(hwnd: int) -> tuple[int, int]:
    """Return (thread_id, pid) of the thread that created a window."""
    pid = ctypes.wintypes.DWORD()
    thread_id = user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
    return (thread_id, pid.value)


def get_window_rect(hwnd: int) -> tuple[int, int, int, int]:
    """Return (left, top, right, bottom) of the window."""
    rect = ctypes.wintypes.RECT()
    user32.GetWindowRect(hwnd, ctypes.byref(rect))
    return (rect.left, rect.top, rect.right, rect.bottom)


def get_window_style(hwnd: int) -> int:
    """Return the WS_* style bits."""
    return user32.GetWindowLongW(hwnd, GWL_STYLE) & 0xFFFFFFFF


def get_window_ex_style(hwnd: int) -> int:
    """Return the WS_EX_* extended style bits."""
    return user32.GetWindowLongW(hwnd, GWL_EXSTYLE) & 0xFFFFFFFF


def set_window_long(hwnd: int, index: int, value: int) -> bool:
    """
    SetWindowLongW with proper failure detection.

    A previous value of 0 is ambiguous, so failure is signalled by a
    non-zero GetLastError after clearing it.
    """
    ctypes.set_last_error(0)
    # The API takes a signed LONG.
    signed = ctypes.c_long(value & 0xFFFFFFFF).value
    previous = user32.SetWindowLongW(hwnd, index, signed)
    return previous != 0 or ctypes.get_last_error() == 0


def is_window_visible(hwnd: int) -> bool:
    return bool(user32.IsWindowVisible(hwnd))


def is_window_iconic(hwnd: int) -> bool:
    """True if the window is minimized."""
    return bool(user32.IsIconic(hwnd))


def is_window_zoomed(hwnd: int) -> bool:
    """True if the window is maximized."""
    return bool(user32.IsZoomed(hwnd))


def is_window_enabled(hwnd: int) -> bool:
    return bool(user32.IsWindowEnabled(hwnd))


def enable_window(hwnd: int, enable: bool) -> None:
    # Returns the previous disabled state, not success.
    user32.EnableWindow(hwnd, bool(enable))


def is_window_valid(hwnd: int) -> bool:
    """True if the window handle is still valid."""
    return bool(user32.IsWindow(hwnd))


def get_foreground_window() -> int:
    """Return the HWND of the current foreground window."""
    return _hwnd(user32.GetForegroundWindow())


def set_foreground_window(hwnd: int) -> bool:
    return bool(user32.SetForegroundWindow(hwnd))


def show_window(hwnd: int, cmd: int) -> bool:
    return bool(user32.ShowWindow(hwnd, cmd))


def post_message(hwnd: int, msg: int, wparam: int = 0, lparam: int = 0) -> bool:
    return bool(user32.PostMessageW(hwnd, msg, wparam, lparam))


def set_window_pos(
    hwnd: int,
    x: int,
    y: int,
    width: int,
    height: int,
    flags: int = SWP_NOZORDER | SWP_NOACTIVATE,
    insert_after: int = HWND_TOP,
) -> bool:
    """Move and resize a window."""
    return bool(
        user32.SetWindowPos(hwnd, insert_after, x, y, width, height, flags)
    )
