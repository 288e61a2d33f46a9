"""
autowin.core.errors - Exception types raised by autowin.

Absence is never an exception: lookups return None / empty lists and
acquisition reports AcquireStatus.NOT_FOUND.  The types below cover the
cases a caller must be able to tell apart.
"""

from __future__ import annotations


class AutowinError(Exception):
    """Base class for every autowin error."""


class LaunchError(AutowinError):
    """The process could not be created."""


class InvalidHandle(AutowinError):
    """Operation attempted on a window that no longer exists."""

    def __init__(self, hwnd: int, message: str = "") -> None:
        self.hwnd = hwnd
        super().__init__(message or f"window {hwnd:#010x} no longer exists")


class Denied(AutowinError):
    """The native layer refused the operation (usually privileges)."""

    def __init__(self, hwnd: int, what: str) -> None:
        self.hwnd = hwnd
        self.what = what
        super().__init__(f"{what} denied for window {hwnd:#010x}")


class TimedOut(AutowinError):
    """A deadline elapsed before the awaited condition happened."""


class BusClosed(AutowinError):
    """The signal bus was closed while (or before) waiting on it."""
