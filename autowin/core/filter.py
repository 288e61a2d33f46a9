"""
autowin.core.filter - Window matching rules.

Two concerns live here:

  * is_user_window() - decides whether a window is a regular,
    user-facing application window rather than a system artifact
    (taskbar, IME helpers, tool windows, invisible message windows...).
    Spawn uses it so a freshly launched process is bound to its real
    window and not to a hidden helper it created first.

  * as_predicate() - turns every supported way of describing a window
    (title string, compiled regex, WindowMatcher, arbitrary callable)
    into one `(PropertySnapshot) -> bool` predicate used by find(),
    find_first() and wait_for().
"""

from __future__ import annotations

import fnmatch
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Union

from autowin.core import styles
from autowin.core.snapshot import PropertySnapshot

log = logging.getLogger(__name__)

Predicate = Callable[[PropertySnapshot], bool]

# ============================================================================
# Known system class names to ALWAYS ignore
# ============================================================================
IGNORED_CLASSES: frozenset[str] = frozenset({
    # Windows shell / explorer
    "Shell_TrayWnd",            # Taskbar
    "Shell_SecondaryTrayWnd",   # Secondary monitor taskbar
    "Progman",                  # Desktop Program Manager
    "WorkerW",                  # Desktop wallpaper worker
    "DV2ControlHost",           # Start menu

    # System UI
    "NotifyIconOverflowWindow", # System tray overflow
    "MultitaskingViewFrame",    # Alt-Tab / Task View
    "TaskListThumbnailWnd",     # Taskbar thumbnails
    "ForegroundStaging",        # Focus transition overlay

    # Per-process helpers created before the real window shows up
    "tooltips_class32",         # Tooltips
    "IME",                      # Input method editor
    "MSCTFIME UI",              # Text input framework
    "GDI+ Hook Window Class",
    "OleMainThreadWndClass",
    "#32768",                   # Popup menus
    "#32769",                   # Desktop
})

# ============================================================================
# Window title patterns to ignore (exact match)
# ============================================================================
IGNORED_TITLES: frozenset[str] = frozenset({
    "Program Manager",
    "Default IME",
    "MSCTFIME UI",
})


# ============================================================================
# User-window heuristic
# ============================================================================
def is_user_window(snap: PropertySnapshot) -> bool:
    """
    Return True if *snap* describes a user-facing top-level window.

    The rules, in order:
        1. Must be visible.
        2. Must not be a child window.
        3. Class name must not be in the ignore list.
        4. Title must not be in the ignore list.
        5. Must not be a tool window (WS_EX_TOOLWINDOW) unless it is also
           marked WS_EX_APPWINDOW.
        6. Must not have WS_EX_NOACTIVATE (non-interactive overlays).
        7. Must have a non-zero size, unless minimized.
    """
    hwnd = snap.hwnd

    # --- 1. Visibility ---
    if not snap.visible:
        return False

    # --- 2. Not a child ---
    if snap.style & styles.WS_CHILD:
        return False

    # --- 3. Class name ---
    if snap.class_name in IGNORED_CLASSES:
        log.debug("Filtered %#010x: ignored class %r", hwnd, snap.class_name)
        return False

    # --- 4. Title ---
    if snap.title in IGNORED_TITLES:
        log.debug("Filtered %#010x: ignored title %r", hwnd, snap.title)
        return False

    # --- 5. Tool window vs App window ---
    is_tool = snap.ex_style & styles.WS_EX_TOOLWINDOW
    if is_tool and not snap.ex_style & styles.WS_EX_APPWINDOW:
        log.debug("Filtered %#010x: tool window without APPWINDOW", hwnd)
        return False

    # --- 6. Non-interactive overlays ---
    if snap.ex_style & styles.WS_EX_NOACTIVATE:
        log.debug("Filtered %#010x: WS_EX_NOACTIVATE", hwnd)
        return False

    # --- 7. Non-zero size ---
    if snap.width <= 0 and snap.height <= 0 and not snap.minimized:
        log.debug("Filtered %#010x: zero size", hwnd)
        return False

    return True


# ============================================================================
# Title patterns
# ============================================================================
def title_matcher(pattern: Union[str, re.Pattern], mode: str = "contains") -> Predicate:
    """
    Build a predicate on the window title.

    Modes for string patterns (case-insensitive):
        "contains" - substring (default)
        "exact"    - whole title
        "start"    - prefix
        "glob"     - fnmatch wildcards ("* - Notepad")
        "regex"    - re.search
    A compiled re.Pattern is always applied with .search().
    """
    if isinstance(pattern, re.Pattern):
        return lambda snap: pattern.search(snap.title) is not None

    needle = pattern.casefold()
    if mode == "contains":
        return lambda snap: needle in snap.title.casefold()
    if mode == "exact":
        return lambda snap: snap.title.casefold() == needle
    if mode == "start":
        return lambda snap: snap.title.casefold().startswith(needle)
    if mode == "glob":
        return lambda snap: fnmatch.fnmatchcase(snap.title.casefold(), needle)
    if mode == "regex":
        rx = re.compile(pattern, re.IGNORECASE)
        return lambda snap: rx.search(snap.title) is not None
    raise ValueError(f"unknown title match mode {mode!r}")


@dataclass(frozen=True, slots=True)
class WindowMatcher:
    """
    Declarative window criteria; every given field must match.

    Example:
        WindowMatcher(title="Notepad", class_name="Notepad", visible=True)
    """

    title: Union[str, re.Pattern, None] = None
    title_mode: str = "contains"
    class_name: Optional[str] = None
    process_id: Optional[int] = None
    visible: Optional[bool] = None
    user_only: bool = False
    predicate: Optional[Predicate] = None

    def __call__(self, snap: PropertySnapshot) -> bool:
        if self.user_only and not is_user_window(snap):
            return False
        if self.visible is not None and snap.visible != self.visible:
            return False
        if self.class_name is not None and snap.class_name != self.class_name:
            return False
        if self.process_id is not None and snap.process_id != self.process_id:
            return False
        if self.title is not None and not title_matcher(self.title, self.title_mode)(snap):
            return False
        if self.predicate is not None and not self.predicate(snap):
            return False
        return True


Matcher = Union[str, re.Pattern, WindowMatcher, Predicate, None]


def as_predicate(matcher: Matcher) -> Predicate:
    """
    Normalize any supported matcher into a snapshot predicate.

        None               -> matches everything
        str / re.Pattern   -> title match (substring / regex search)
        WindowMatcher      -> its criteria
        callable           -> used as-is
    """
    if matcher is None:
        return lambda snap: True
    if isinstance(matcher, (str, re.Pattern)):
        return title_matcher(matcher)
    if callable(matcher):
        return matcher
    raise TypeError(f"unsupported matcher {matcher!r}")
