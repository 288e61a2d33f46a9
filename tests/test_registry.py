"""
Tests for HandleRegistry.

Run with: python -m pytest tests/test_registry.py -v
"""

import pytest

from autowin.core.monitor import MonitoredWindow
from autowin.core.registry import HandleRegistry
from autowin.core.snapshot import PropertySnapshot


class TestTrack:
    """Deduplication and HWND recycling."""

    def test_track_is_deduplicated(self, registry):
        a = registry.track(0x10)
        b = registry.track(0x10)
        assert a is b
        assert len(registry) == 1
        assert 0x10 in registry

    def test_owner_filled_in_later(self, registry):
        entry = registry.track(0x10)
        assert registry.track(0x10, (1, 2)) is entry
        assert entry.owner == (1, 2)

    def test_recycled_hwnd_gets_new_entry(self, registry):
        old = registry.track(0x10, (1, 2))
        new, stale = registry.track_checked(0x10, (3, 4))
        assert new is not old
        assert stale is old
        assert old.destroyed
        assert registry.get(0x10) is new
        assert new.bus is not old.bus

    def test_same_owner_is_not_recycled(self, registry):
        entry = registry.track(0x10, (1, 2))
        same, stale = registry.track_checked(0x10, (1, 2))
        assert same is entry
        assert stale is None


class TestRetire:
    """Retirement only affects the exact entry."""

    def test_retire_removes(self, registry):
        entry = registry.track(0x10)
        assert registry.retire(0x10) is entry
        assert entry.destroyed
        assert 0x10 not in registry

    def test_retire_old_entry_leaves_new_one(self, registry):
        old = registry.track(0x10, (1, 2))
        new = registry.track(0x10, (3, 4))
        assert registry.retire(0x10, old) is None
        assert registry.get(0x10) is new
        assert not new.destroyed

    def test_clear_closes_buses(self, registry):
        entry = registry.track(0x10)
        registry.clear()
        assert len(registry) == 0
        assert entry.bus.closed


class TestMonitors:
    """At most one monitor per handle."""

    def test_attach_returns_existing(self, registry):
        entry = registry.track(0x10)
        snap = PropertySnapshot(hwnd=0x10)
        first = MonitoredWindow(entry, 0.1, snap)
        second = MonitoredWindow(entry, 0.1, snap)

        assert registry.attach_monitor(entry, first) is first
        assert registry.attach_monitor(entry, second) is first
        assert registry.monitored() == [first]
        assert registry.detach_monitor(0x10) is first
        assert registry.monitored() == []

    def test_attach_to_retired_entry_fails(self, registry):
        entry = registry.track(0x10)
        registry.retire(0x10)
        with pytest.raises(ValueError):
            registry.attach_monitor(entry, MonitoredWindow(entry, 0.1, PropertySnapshot(hwnd=0x10)))

    def test_registries_are_independent(self):
        a, b = HandleRegistry(), HandleRegistry()
        a.track(0x10)
        assert 0x10 not in b
