"""
autowin.core.alert - Non-blocking message boxes.

alert() shows a native message box on a worker thread and returns an
AlertInstance right away.  The box closing is published as
AlertEvent.CLOSED on the instance's own SignalBus, with the id of the
button that was pressed as payload:

    box = wm.alert("Done copying", "autowin")
    box.connect(AlertEvent.CLOSED, lambda button: print(button))
    box.wait(30)
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
from typing import Optional

from autowin.core.awaitable import CompletionToken
from autowin.core.gateway import NativeWindowGateway
from autowin.core.signals import SignalBus, SignalCallback, Subscription

log = logging.getLogger(__name__)

# MessageBox styles
MB_OK = 0x00000000
MB_OKCANCEL = 0x00000001
MB_YESNOCANCEL = 0x00000003
MB_YESNO = 0x00000004
MB_ICONERROR = 0x00000010
MB_ICONQUESTION = 0x00000020
MB_ICONWARNING = 0x00000030
MB_ICONINFORMATION = 0x00000040

# Button ids returned by MessageBox
IDOK = 1
IDCANCEL = 2
IDYES = 6
IDNO = 7

_ids = itertools.count(1)


class AlertEvent(enum.Enum):
    # payload = id of the pressed button
    CLOSED = "closed"


class AlertInstance:
    """A message box being shown on its own thread."""

    def __init__(
        self,
        gateway: NativeWindowGateway,
        text: str,
        title: str = "",
        style: int = MB_OK,
    ) -> None:
        self.text = text
        self.title = title
        self.style = style
        self._gateway = gateway
        self._bus = SignalBus(name=f"alert-{next(_ids)}")
        self._result: Optional[int] = None
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"autowin-{self._bus.name}",
        )

    def show(self) -> AlertInstance:
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            button = self._gateway.message_box(self.text, self.title, self.style)
        except Exception:
            log.exception("Message box %r failed", self.title)
            button = 0
        # Set before publishing so a wait() racing the publish sees it.
        self._result = button
        log.debug("Alert %r closed with button %d", self.title, button)
        self._bus.publish(AlertEvent.CLOSED, button)

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Optional[int]:
        """Pressed button id (0 if the box failed), None while open."""
        return self._result

    def connect(self, kind: AlertEvent, callback: SignalCallback) -> Subscription:
        """
        Call *callback* with the button id when the box closes.

        Connecting after the box closed does nothing; check closed first.
        """
        return self._bus.connect(kind, callback)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the box is closed.  False if *timeout* elapsed first."""
        token = CompletionToken(
            self._bus,
            AlertEvent.CLOSED,
            satisfied=lambda: self._result is not None,
            description=f"alert {self.title!r}",
        )
        return token.wait(timeout)

    def __repr__(self) -> str:
        state = "open" if self._result is None else f"closed({self._result})"
        return f"AlertInstance({self.title!r}, {state})"
