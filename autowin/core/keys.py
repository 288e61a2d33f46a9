"""
autowin.core.keys - Key combos and waiting for them.

Converts readable strings like "ctrl+shift+q" into the virtual-key
codes that must be held, and polls key state until they are.

Features:
    - Aliases: win = super = windows, ctrl = control, alt = menu.
    - Case-insensitive: "Ctrl+Shift+Q" == "ctrl+shift+q".
    - Validation: clear error if the combo is invalid.
    - A modifier alone is a valid combo ("shift").
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from autowin.core.gateway import NativeWindowGateway

log = logging.getLogger(__name__)


# ============================================================================
# Modifiers
# ============================================================================
MOD_ALT = 0x0001
MOD_CONTROL = 0x0002
MOD_SHIFT = 0x0004
MOD_WIN = 0x0008

_MODIFIER_MAP: dict[str, int] = {
    "alt": MOD_ALT,
    "menu": MOD_ALT,
    "ctrl": MOD_CONTROL,
    "control": MOD_CONTROL,
    "shift": MOD_SHIFT,
    "win": MOD_WIN,
    "super": MOD_WIN,
    "windows": MOD_WIN,
}

# Either physical key satisfies a modifier.
_MODIFIER_VKS: dict[int, tuple[int, ...]] = {
    MOD_SHIFT: (0x10,),         # VK_SHIFT
    MOD_CONTROL: (0x11,),       # VK_CONTROL
    MOD_ALT: (0x12,),           # VK_MENU
    MOD_WIN: (0x5B, 0x5C),      # VK_LWIN, VK_RWIN
}

_MODIFIER_NAMES: tuple[tuple[int, str], ...] = (
    (MOD_WIN, "Win"),
    (MOD_CONTROL, "Ctrl"),
    (MOD_ALT, "Alt"),
    (MOD_SHIFT, "Shift"),
)


# ============================================================================
# Virtual key name -> VK code
# ============================================================================
_VK_MAP: dict[str, int] = {}


def _build_vk_map() -> None:
    """Populate the VK name map on first use."""
    if _VK_MAP:
        return

    # Letters A-Z (VK 0x41 - 0x5A)
    for i in range(26):
        _VK_MAP[chr(ord("a") + i)] = 0x41 + i

    # Digits 0-9 (VK 0x30 - 0x39)
    for i in range(10):
        _VK_MAP[str(i)] = 0x30 + i

    # Function keys F1-F24
    for i in range(1, 25):
        _VK_MAP[f"f{i}"] = 0x70 + (i - 1)

    _VK_MAP.update(
        {
            "return": 0x0D,
            "enter": 0x0D,
            "escape": 0x1B,
            "esc": 0x1B,
            "space": 0x20,
            "tab": 0x09,
            "backspace": 0x08,
            "delete": 0x2E,
            "del": 0x2E,
            "insert": 0x2D,
            "home": 0x24,
            "end": 0x23,
            "pageup": 0x21,
            "pagedown": 0x22,
            "left": 0x25,
            "up": 0x26,
            "right": 0x27,
            "down": 0x28,
            "pause": 0x13,
            "capslock": 0x14,
            "printscreen": 0x2C,
            "lbutton": 0x01,
            "rbutton": 0x02,
            "mbutton": 0x04,
        }
    )


# ============================================================================
# Parsing
# ============================================================================
class ComboParseError(ValueError):
    """Raised when a combo string cannot be parsed."""


@dataclass(frozen=True, slots=True)
class KeyCombo:
    """Modifier flags plus at most one regular key."""

    modifiers: int
    vk: Optional[int] = None

    def key_groups(self) -> list[tuple[int, ...]]:
        """One tuple per key that must be down; any VK in a tuple counts."""
        groups = [vks for flag, vks in _MODIFIER_VKS.items() if self.modifiers & flag]
        if self.vk is not None:
            groups.append((self.vk,))
        return groups

    def __str__(self) -> str:
        return combo_to_str(self)


def parse_combo(combo: str) -> KeyCombo:
    """
    Parse a keyboard combo string.

    Args:
        combo: Human-readable combo like "ctrl+shift+q", "alt+f4",
               "escape" or "shift".  Parts separated by '+'.

    Raises:
        ComboParseError: If the combo is empty, contains unknown tokens,
                         repeats a modifier or names two regular keys.
    """
    _build_vk_map()

    if not combo or not combo.strip():
        raise ComboParseError("Empty combo string")

    parts = [p.strip().lower() for p in combo.split("+")]
    parts = [p for p in parts if p]
    if not parts:
        raise ComboParseError(f"No valid parts in combo: {combo!r}")

    modifiers = 0
    vk: Optional[int] = None
    for part in parts:
        if part in _MODIFIER_MAP:
            flag = _MODIFIER_MAP[part]
            if modifiers & flag:
                raise ComboParseError(
                    f"Duplicate modifier {part!r} in combo: {combo!r}"
                )
            modifiers |= flag
        elif part in _VK_MAP:
            if vk is not None:
                raise ComboParseError(
                    f"Multiple key parts in combo: {combo!r}. "
                    f"Only one non-modifier key is allowed."
                )
            vk = _VK_MAP[part]
        else:
            raise ComboParseError(
                f"Unknown key or modifier: {part!r} in combo: {combo!r}"
            )

    return KeyCombo(modifiers, vk)


def combo_to_str(combo: KeyCombo) -> str:
    """Convert a KeyCombo back to a readable string, for logging."""
    _build_vk_map()

    parts = [name for flag, name in _MODIFIER_NAMES if combo.modifiers & flag]
    if combo.vk is not None:
        vk_name = None
        for name, code in _VK_MAP.items():
            if code == combo.vk:
                vk_name = name.upper() if len(name) == 1 else name.capitalize()
                break
        parts.append(vk_name or f"0x{combo.vk:02X}")
    return "+".join(parts)


def is_valid_combo(combo: str) -> bool:
    """Check if a combo string is valid without raising."""
    try:
        parse_combo(combo)
        return True
    except ComboParseError:
        return False


# ============================================================================
# Waiting
# ============================================================================
def is_combo_down(gateway: NativeWindowGateway, combo: KeyCombo) -> bool:
    return all(
        any(gateway.is_key_down(vk) for vk in group)
        for group in combo.key_groups()
    )


def wait_for_key(
    gateway: NativeWindowGateway,
    combo: str | KeyCombo,
    timeout: Optional[float] = None,
    interval: float = 0.02,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Block until every key of *combo* is held at the same time.

    Returns True when pressed, False if *timeout* elapsed first.
    """
    if isinstance(combo, str):
        combo = parse_combo(combo)

    deadline = None if timeout is None else clock() + timeout
    log.debug("Waiting for %s (timeout=%s)", combo, timeout)
    while True:
        if is_combo_down(gateway, combo):
            log.debug("%s pressed", combo)
            return True
        if deadline is not None:
            remaining = deadline - clock()
            if remaining <= 0:
                return False
            sleep(min(interval, remaining))
        else:
            sleep(interval)
