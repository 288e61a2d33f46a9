"""
Tests for PropertySnapshot and diff_snapshots.

Run with: python -m pytest tests/test_snapshot_diff.py -v
"""

from dataclasses import replace

import pytest

from autowin.core.signals import WindowEvent
from autowin.core.snapshot import PropertySnapshot, diff_snapshots


@pytest.fixture
def base():
    return PropertySnapshot(
        hwnd=0x10,
        title="Untitled - Notepad",
        class_name="Notepad",
        process_id=100,
        thread_id=7,
        x=0,
        y=0,
        width=100,
        height=100,
        visible=True,
    )


def kinds(signals):
    return [kind for kind, _ in signals]


class TestSnapshot:
    """Tests for the value object itself."""

    def test_bounds_position_size(self, base):
        snap = replace(base, x=10, y=20, width=300, height=200)
        assert snap.bounds == (10, 20, 300, 200)
        assert snap.position == (10, 20)
        assert snap.size == (300, 200)

    def test_changed_fields(self, base):
        other = replace(base, title="new", width=5)
        assert base.changed_fields(other) == ["title", "width"]
        assert base.changed_fields(base) == []

    def test_snapshots_are_frozen(self, base):
        with pytest.raises(AttributeError):
            base.title = "mutated"

    def test_as_dict(self, base):
        d = base.as_dict()
        assert d["hwnd"] == 0x10
        assert d["class_name"] == "Notepad"


class TestDiff:
    """Tests for the fixed-order diff."""

    def test_identical_snapshots_produce_nothing(self, base):
        assert diff_snapshots(base, replace(base)) == []

    def test_minimize_only_emits_minimized(self, base):
        signals = diff_snapshots(base, replace(base, minimized=True))
        assert signals == [(WindowEvent.MINIMIZED, ())]

    def test_unminimize_emits_restored(self, base):
        old = replace(base, minimized=True)
        assert kinds(diff_snapshots(old, base)) == [WindowEvent.RESTORED]

    def test_unmaximize_emits_restored(self, base):
        old = replace(base, maximized=True)
        assert kinds(diff_snapshots(old, base)) == [WindowEvent.RESTORED]

    def test_maximized_to_minimized_is_not_restored(self, base):
        old = replace(base, maximized=True)
        new = replace(base, minimized=True)
        assert kinds(diff_snapshots(old, new)) == [WindowEvent.MINIMIZED]

    def test_becoming_visible_emits_restored_and_changed(self, base):
        old = replace(base, visible=False)
        assert diff_snapshots(old, base) == [
            (WindowEvent.RESTORED, ()),
            (WindowEvent.CHANGED, ("visible", True)),
        ]

    def test_resize_reports_both_dimensions_once(self, base):
        signals = diff_snapshots(base, replace(base, width=640, height=480))
        assert signals == [(WindowEvent.RESIZED, (640, 480))]

    def test_move_and_resize_in_one_batch(self, base):
        signals = diff_snapshots(base, replace(base, x=5, width=50))
        assert signals == [
            (WindowEvent.MOVED, (5, 0)),
            (WindowEvent.RESIZED, (50, 100)),
        ]

    def test_focus_changes(self, base):
        focused = replace(base, focused=True)
        assert kinds(diff_snapshots(base, focused)) == [WindowEvent.FOCUSED]
        assert kinds(diff_snapshots(focused, base)) == [WindowEvent.UNFOCUSED]

    def test_generic_fields_in_order(self, base):
        new = replace(base, enabled=False, title="Changed", style=0x1)
        assert diff_snapshots(base, new) == [
            (WindowEvent.CHANGED, ("title", "Changed")),
            (WindowEvent.CHANGED, ("style", 0x1)),
            (WindowEvent.CHANGED, ("enabled", False)),
        ]

    def test_full_precedence(self, base):
        old = replace(base, minimized=True)
        new = replace(base, maximized=True, focused=True, x=1, height=1, title="t")
        assert kinds(diff_snapshots(old, new)) == [
            WindowEvent.RESTORED,
            WindowEvent.MAXIMIZED,
            WindowEvent.FOCUSED,
            WindowEvent.MOVED,
            WindowEvent.RESIZED,
            WindowEvent.CHANGED,
        ]
