"""
autowin.core.signals - Event kinds and the SignalBus dispatch primitive.

A SignalBus is a per-owner publish/subscribe channel.  Every event kind
supports two consumption modes over the same dispatch path:

  * connect(kind, callback)  - callback runs on every publish of *kind*
  * wait(kind, timeout)      - block until the next publish of *kind*

publish() delivers to the subscribers registered at the moment it was
called, in registration order, then wakes every waiter registered at
that moment.  Nothing is queued or replayed: an event published while
nobody listens is dropped once waiters have been checked.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from autowin.core.errors import BusClosed, TimedOut

if TYPE_CHECKING:
    from autowin.core.snapshot import PropertySnapshot

log = logging.getLogger(__name__)


# ============================================================================
# Event kinds
# ============================================================================
class WindowEvent(enum.Enum):
    """Signals a monitored window can raise."""

    # The window no longer exists.  Always the last signal of a handle.
    CLOSED = "closed"

    # Came back from minimized/maximized, or became visible.
    RESTORED = "restored"

    MINIMIZED = "minimized"
    MAXIMIZED = "maximized"

    # Became / stopped being the foreground window.
    FOCUSED = "focused"
    UNFOCUSED = "unfocused"

    # args = (x, y)
    MOVED = "moved"

    # args = (width, height)
    RESIZED = "resized"

    # args = (field_name, new_value); one per changed field.
    CHANGED = "changed"


@dataclass(frozen=True, slots=True)
class WindowSignal:
    """Payload delivered for every WindowEvent."""

    kind: WindowEvent
    hwnd: int
    args: tuple = ()
    snapshot: Optional[PropertySnapshot] = field(default=None, compare=False)

    def __str__(self) -> str:
        if self.args:
            detail = ", ".join(repr(a) for a in self.args)
            return f"{self.kind.value}({detail}) on {self.hwnd:#010x}"
        return f"{self.kind.value} on {self.hwnd:#010x}"


# Callbacks receive the published payload.
SignalCallback = Callable[[Any], None]


# ============================================================================
# Subscription
# ============================================================================
class Subscription:
    """Handle returned by SignalBus.connect(); disconnect() to stop."""

    __slots__ = ("_bus", "kind", "callback", "active")

    def __init__(self, bus: SignalBus, kind: Hashable, callback: SignalCallback) -> None:
        self._bus = bus
        self.kind = kind
        self.callback = callback
        self.active = True

    def disconnect(self) -> bool:
        return self._bus.disconnect(self)

    def __repr__(self) -> str:
        state = "active" if self.active else "disconnected"
        return f"Subscription({self.kind!r}, {state})"


class _Waiter:
    """One blocked wait() call."""

    __slots__ = ("event", "payload", "closed")

    def __init__(self) -> None:
        self.event = threading.Event()
        self.payload: Any = None
        self.closed = False

    def resolve(self, payload: Any) -> None:
        self.payload = payload
        self.event.set()

    def abort(self) -> None:
        self.closed = True
        self.event.set()


# ============================================================================
# SignalBus
# ============================================================================
class SignalBus:
    """
    Publish/subscribe channel with blocking waits.

    Thread-safe: publish() may run on the monitor thread while callers
    connect or wait from any other thread.  Callbacks run synchronously
    on the publishing thread; an exception in one is logged and the
    remaining subscribers still run.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._subscribers: dict[Hashable, list[Subscription]] = {}
        self._waiters: dict[Hashable, list[_Waiter]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Callback mode
    # ------------------------------------------------------------------
    def connect(self, kind: Hashable, callback: SignalCallback) -> Subscription:
        """Register *callback* for every future publish of *kind*."""
        sub = Subscription(self, kind, callback)
        with self._lock:
            if self._closed:
                sub.active = False
                log.debug("connect(%s) on closed bus %s ignored", kind, self.name)
                return sub
            self._subscribers.setdefault(kind, []).append(sub)
        return sub

    def disconnect(self, subscription: Subscription) -> bool:
        """Remove a subscription.  Returns True if it was registered."""
        with self._lock:
            subscription.active = False
            subs = self._subscribers.get(subscription.kind)
            if not subs:
                return False
            try:
                subs.remove(subscription)
            except ValueError:
                return False
            if not subs:
                del self._subscribers[subscription.kind]
            return True

    # ------------------------------------------------------------------
    # Blocking mode
    # ------------------------------------------------------------------
    def wait(self, kind: Hashable, timeout: Optional[float] = None) -> Any:
        """
        Block until the next publish of *kind* and return its payload.

        Raises:
            TimedOut:  *timeout* seconds elapsed first.
            BusClosed: the bus was closed before anything was published.
        """
        waiter = _Waiter()
        with self._lock:
            if self._closed:
                raise BusClosed(f"bus {self.name!r} is closed")
            self._waiters.setdefault(kind, []).append(waiter)

        signalled = waiter.event.wait(timeout)
        if not signalled:
            with self._lock:
                self._discard_waiter(kind, waiter)
            # A publish may have resolved us right after the timeout.
            if not waiter.event.is_set():
                raise TimedOut(f"no {kind} within {timeout}s")
        if waiter.closed:
            raise BusClosed(f"bus {self.name!r} closed while waiting for {kind}")
        return waiter.payload

    def _discard_waiter(self, kind: Hashable, waiter: _Waiter) -> None:
        waiters = self._waiters.get(kind)
        if not waiters:
            return
        try:
            waiters.remove(waiter)
        except ValueError:
            return
        if not waiters:
            del self._waiters[kind]

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def publish(self, kind: Hashable, payload: Any = None) -> int:
        """
        Deliver *payload* to subscribers of *kind*, then wake its waiters.

        Returns the number of subscribers plus waiters reached.
        """
        with self._lock:
            if self._closed:
                log.debug("publish(%s) on closed bus %s dropped", kind, self.name)
                return 0
            subs = list(self._subscribers.get(kind, ()))
            waiters = self._waiters.pop(kind, [])

        delivered = 0
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.callback(payload)
                delivered += 1
            except Exception:
                log.exception("Error in %s callback on bus %s", kind, self.name)

        for waiter in waiters:
            waiter.resolve(payload)
        return delivered + len(waiters)

    def close(self) -> None:
        """Drop every subscriber and release every waiter with BusClosed."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for subs in self._subscribers.values():
                for sub in subs:
                    sub.active = False
            self._subscribers.clear()
            pending = [w for ws in self._waiters.values() for w in ws]
            self._waiters.clear()
        for waiter in pending:
            waiter.abort()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def subscriber_count(self, kind: Hashable) -> int:
        with self._lock:
            return len(self._subscribers.get(kind, ()))

    def waiter_count(self, kind: Hashable) -> int:
        with self._lock:
            return len(self._waiters.get(kind, ()))

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SignalBus({self.name!r}, {state})"
