"""
autowin.core - Window discovery, monitoring and control.

This package contains:
    - gateway / win32_gateway : The native primitive layer and its Win32 backend
    - win32 : Low-level Win32 API bindings via ctypes
    - snapshot : Immutable property captures and diffing
    - signals : Event kinds and the SignalBus dispatch primitive
    - awaitable : CompletionToken returned by window commands
    - registry : HandleRegistry, one entry per live handle
    - monitor : MonitorEngine, polling change detection
    - acquire : WindowAcquirer, process-to-window resolution
    - window : The Window handle
    - filter : Window matching rules
    - manager : WindowManager, the caller-facing entry point
"""

from autowin.core.acquire import AcquireResult, AcquireStatus
from autowin.core.alert import AlertEvent, AlertInstance
from autowin.core.awaitable import CompletionToken
from autowin.core.errors import (
    AutowinError,
    BusClosed,
    Denied,
    InvalidHandle,
    LaunchError,
    TimedOut,
)
from autowin.core.filter import WindowMatcher
from autowin.core.gateway import ControlMessage, NativeWindowGateway, Prop
from autowin.core.manager import WindowManager
from autowin.core.signals import SignalBus, Subscription, WindowEvent, WindowSignal
from autowin.core.snapshot import PropertySnapshot
from autowin.core.window import Window, WindowState

__all__ = [
    "AcquireResult", "AcquireStatus",
    "AlertEvent", "AlertInstance",
    "CompletionToken",
    "AutowinError", "BusClosed", "Denied", "InvalidHandle", "LaunchError", "TimedOut",
    "WindowMatcher",
    "ControlMessage", "NativeWindowGateway", "Prop",
    "WindowManager",
    "SignalBus", "Subscription", "WindowEvent", "WindowSignal",
    "PropertySnapshot",
    "Window", "WindowState",
]
