"""
autowin.core.awaitable - CompletionToken: fire a command, optionally wait.

Window commands (minimize, close, ...) return immediately after issuing
their native call.  The returned token is already subscribed to the
signal that marks the command's effect, so

    win.minimize()                 # fire and forget
    win.minimize().wait(2.0)       # block until MINIMIZED or 2s

are both valid.  A timed-out wait does not undo the command.

The bus holds a token only weakly: dropping an unawaited token
disconnects its subscriptions.
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from collections.abc import Callable, Hashable, Iterable
from typing import Any, Optional

from autowin.core.errors import AutowinError
from autowin.core.signals import SignalBus, Subscription

log = logging.getLogger(__name__)

# Starts whatever is needed for the bound signal to be published and
# returns a release function (or None when nothing was started).
ObserveFn = Callable[[], Optional[Callable[[], None]]]


class CompletionToken:
    """
    One-shot completion of a fire-and-continue operation.

    Args:
        bus:        Bus on which the outcome is published.
        kind:       Event kind that completes the operation.
        predicate:  Extra check on the payload (e.g. which field changed).
        satisfied:  Reads live state; if it already holds when wait()
                    starts, the token resolves without an event.
        observe:    Called at the start of wait() to make sure somebody
                    is publishing on *bus*.
        abort_on:   Event kinds that resolve the token as failed.
    """

    def __init__(
        self,
        bus: SignalBus,
        kind: Hashable,
        predicate: Optional[Callable[[Any], bool]] = None,
        satisfied: Optional[Callable[[], bool]] = None,
        observe: Optional[ObserveFn] = None,
        abort_on: Iterable[Hashable] = (),
        description: str = "",
    ) -> None:
        self.kind = kind
        self.description = description or str(kind)
        self.deadline: Optional[float] = None
        # Whether the native layer accepted the command.
        self.sent = True
        self._predicate = predicate
        self._satisfied = satisfied
        self._observe = observe

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._result: Optional[bool] = None
        self._awaited = False

        # Subscribe before the caller issues the command.
        on_signal = _weak_handler(self, CompletionToken._on_signal)
        self._subs: list[Subscription] = [bus.connect(kind, on_signal)]
        for abort_kind in abort_on:
            if abort_kind != kind:
                on_abort = _weak_handler(self, CompletionToken._on_abort)
                self._subs.append(bus.connect(abort_kind, on_abort))
        weakref.finalize(self, _disconnect_all, self._subs)
        if bus.closed:
            self._resolve(False)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Optional[bool]:
        """True/False once resolved, None while pending."""
        return self._result

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def _on_signal(self, payload: Any) -> None:
        if self._predicate is not None and not self._predicate(payload):
            return
        self._resolve(True)

    def _on_abort(self, payload: Any) -> None:
        log.debug("%s aborted by %s", self.description, payload)
        self._resolve(False)

    def _resolve(self, value: bool) -> bool:
        with self._lock:
            if self._result is not None:
                return False
            self._result = value
            subs = list(self._subs)
            self._subs.clear()
        for sub in subs:
            sub.disconnect()
        self._done.set()
        return True

    def cancel(self) -> bool:
        """Stop waiting for the outcome.  Returns False if already resolved."""
        return self._resolve(False)

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------
    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the operation is observed to complete.

        Returns True if it completed, False if *timeout* elapsed first
        (or the window went away).  Once a wait has returned, the token
        is settled: further calls return the same answer immediately.
        """
        if self._awaited or self._result is not None:
            self._awaited = True
            return bool(self._result)
        self._awaited = True

        self.deadline = None if timeout is None else time.monotonic() + timeout

        release = None
        try:
            if self._observe is not None:
                try:
                    release = self._observe()
                except AutowinError as e:
                    log.debug("%s: cannot observe (%s)", self.description, e)
            if self._satisfied is not None and self._result is None:
                try:
                    if self._satisfied():
                        self._resolve(True)
                except AutowinError as e:
                    log.debug("%s: live check failed (%s)", self.description, e)

            remaining = None
            if self.deadline is not None:
                remaining = max(0.0, self.deadline - time.monotonic())
            if not self._done.wait(remaining):
                self._resolve(False)
        finally:
            if release is not None:
                release()

        return bool(self._result)

    def __repr__(self) -> str:
        if self._result is None:
            state = "pending"
        else:
            state = "completed" if self._result else "failed"
        return f"CompletionToken({self.description}, {state})"


def _weak_handler(
    token: CompletionToken, method: Callable[[CompletionToken, Any], None],
) -> Callable[[Any], None]:
    ref = weakref.ref(token)

    def handler(payload: Any) -> None:
        target = ref()
        if target is not None:
            method(target, payload)
    return handler


def _disconnect_all(subs: list[Subscription]) -> None:
    for sub in list(subs):
        sub.disconnect()
    subs.clear()
