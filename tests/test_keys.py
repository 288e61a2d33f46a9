"""
Tests for key combo parsing and wait_for_key.

Run with: python -m pytest tests/test_keys.py -v
"""

import pytest

from autowin.core.keys import (
    MOD_ALT,
    MOD_CONTROL,
    MOD_SHIFT,
    MOD_WIN,
    ComboParseError,
    KeyCombo,
    combo_to_str,
    is_combo_down,
    is_valid_combo,
    parse_combo,
    wait_for_key,
)

VK_SHIFT, VK_CONTROL, VK_MENU, VK_RWIN = 0x10, 0x11, 0x12, 0x5C
VK_Q = 0x51


class TestParseCombo:
    """String -> KeyCombo."""

    def test_simple(self):
        assert parse_combo("ctrl+shift+q") == KeyCombo(MOD_CONTROL | MOD_SHIFT, VK_Q)

    def test_case_and_whitespace(self):
        assert parse_combo(" Ctrl + Shift + Q ") == parse_combo("ctrl+shift+q")

    def test_aliases(self):
        assert parse_combo("super+a") == parse_combo("win+a")
        assert parse_combo("control+menu+f4") == KeyCombo(MOD_CONTROL | MOD_ALT, 0x73)

    def test_modifier_alone(self):
        assert parse_combo("shift") == KeyCombo(MOD_SHIFT, None)

    def test_named_keys(self):
        assert parse_combo("escape").vk == 0x1B
        assert parse_combo("alt+enter").vk == 0x0D
        assert parse_combo("f12").vk == 0x7B

    @pytest.mark.parametrize("bad", ["", "   ", "+", "ctrl+ctrl+a", "a+b", "hyper+x"])
    def test_invalid(self, bad):
        with pytest.raises(ComboParseError):
            parse_combo(bad)
        assert not is_valid_combo(bad)

    def test_combo_to_str(self):
        assert combo_to_str(parse_combo("shift+win+ctrl+q")) == "Win+Ctrl+Shift+Q"
        assert str(parse_combo("alt+escape")) == "Alt+Escape"


class TestKeyGroups:
    """Which physical keys must be down."""

    def test_groups(self):
        groups = parse_combo("win+ctrl+q").key_groups()
        assert (VK_CONTROL,) in groups
        assert (0x5B, VK_RWIN) in groups
        assert (VK_Q,) in groups
        assert len(groups) == 3

    def test_either_win_key(self, gateway):
        gateway.keys_down = {VK_RWIN, VK_Q}
        assert is_combo_down(gateway, parse_combo("win+q"))


class TestWaitForKey:
    """Polling until the combo is held."""

    def test_pressed_immediately(self, gateway, clock):
        gateway.keys_down = {VK_CONTROL, VK_SHIFT, VK_Q}
        assert wait_for_key(gateway, "ctrl+shift+q", timeout=1.0, clock=clock, sleep=clock.sleep)
        assert clock.now == 0.0

    def test_pressed_later(self, gateway, clock):
        clock.at(0.5, lambda: gateway.keys_down.update({VK_MENU, VK_Q}))
        assert wait_for_key(gateway, "alt+q", timeout=2.0, interval=0.1, clock=clock, sleep=clock.sleep)
        assert 0.5 <= clock.now < 0.7

    def test_partial_combo_times_out(self, gateway, clock):
        gateway.keys_down = {VK_CONTROL}
        assert not wait_for_key(gateway, "ctrl+q", timeout=0.3, interval=0.1, clock=clock, sleep=clock.sleep)
        assert clock.now == pytest.approx(0.3)

    def test_invalid_combo_raises(self, gateway):
        with pytest.raises(ComboParseError):
            wait_for_key(gateway, "ctrl+nope", timeout=0.1)
