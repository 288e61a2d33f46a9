"""
autowin.core.snapshot - Immutable window state captures and diffing.

A PropertySnapshot is a one-instant reading of every observable
attribute of a window.  The monitor keeps the last one per handle and
compares it with a fresh one on every tick; diff_snapshots() turns the
differences into the ordered list of signals to publish.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from autowin.core.signals import WindowEvent

# Fields reported through WindowEvent.CHANGED, in emission order.
# Geometry, minimized/maximized and focus have dedicated events.
GENERIC_FIELDS: tuple[str, ...] = (
    "title",
    "class_name",
    "process_id",
    "thread_id",
    "style",
    "ex_style",
    "visible",
    "enabled",
)


@dataclass(frozen=True, slots=True)
class PropertySnapshot:
    """Observable attributes of one window at one instant."""

    hwnd: int
    title: str = ""
    class_name: str = ""
    process_id: int = 0
    thread_id: int = 0
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    style: int = 0
    ex_style: int = 0
    visible: bool = False
    minimized: bool = False
    maximized: bool = False
    focused: bool = False
    enabled: bool = True

    @property
    def bounds(self) -> tuple[int, int, int, int]:
        """(x, y, width, height)"""
        return (self.x, self.y, self.width, self.height)

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def changed_fields(self, other: PropertySnapshot) -> list[str]:
        """Names of the fields whose value differs from *other*."""
        return [
            f.name
            for f in fields(self)
            if getattr(self, f.name) != getattr(other, f.name)
        ]

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def diff_snapshots(
    old: PropertySnapshot, new: PropertySnapshot,
) -> list[tuple[WindowEvent, tuple]]:
    """
    Compare two snapshots of the same window.

    Returns (event, args) pairs in a fixed precedence:
        RESTORED, MINIMIZED, MAXIMIZED, FOCUSED/UNFOCUSED,
        MOVED(x, y), RESIZED(width, height), then one
        CHANGED(field, value) per changed generic field.
    Coordinates are compared as exact integers.
    """
    signals: list[tuple[WindowEvent, tuple]] = []

    restored = (
        (old.minimized and not new.minimized)
        or (old.maximized and not new.maximized and not new.minimized)
        or (not old.visible and new.visible)
    )
    if restored:
        signals.append((WindowEvent.RESTORED, ()))

    if not old.minimized and new.minimized:
        signals.append((WindowEvent.MINIMIZED, ()))

    if not old.maximized and new.maximized:
        signals.append((WindowEvent.MAXIMIZED, ()))

    if not old.focused and new.focused:
        signals.append((WindowEvent.FOCUSED, ()))
    elif old.focused and not new.focused:
        signals.append((WindowEvent.UNFOCUSED, ()))

    if (old.x, old.y) != (new.x, new.y):
        signals.append((WindowEvent.MOVED, (new.x, new.y)))

    if (old.width, old.height) != (new.width, new.height):
        signals.append((WindowEvent.RESIZED, (new.width, new.height)))

    for name in GENERIC_FIELDS:
        value = getattr(new, name)
        if getattr(old, name) != value:
            signals.append((WindowEvent.CHANGED, (name, value)))

    return signals
