"""
Tests for WindowAcquirer: the tiered process-to-window resolution.

Run with: python -m pytest tests/test_acquire.py -v
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from autowin.core.acquire import AcquireStatus, WindowAcquirer
from autowin.core.styles import WS_EX_TOOLWINDOW


@pytest.fixture
def acquirer(gateway, registry, clock):
    return WindowAcquirer(
        gateway, registry, interval=0.075, exit_grace=1.0,
        clock=clock, sleep=clock.sleep,
    )


# ============================================================================
# TIER 1: OWN PID
# ============================================================================

class TestOwnWindow:
    """The launched process opens its own window."""

    def test_window_owned_by_launched_pid(self, gateway, acquirer, registry):
        gateway.add_window(title="unrelated", pid=1)
        gateway.launchers["notepad.exe"] = lambda gw, pid: gw.add_window(title="Notepad", pid=pid)

        result = acquirer.acquire("notepad.exe", timeout=5.0)

        assert result.status is AcquireStatus.FOUND
        assert result.tier == 1
        assert gateway.windows[result.hwnd].title == "Notepad"
        assert result.hwnd in registry

    def test_helper_windows_are_skipped(self, gateway, acquirer, clock):
        helpers = {}

        def launch(gw, pid):
            helpers["hidden"] = gw.add_window(title="", pid=pid, visible=False)
            helpers["tool"] = gw.add_window(title="tip", pid=pid, ex_style=WS_EX_TOOLWINDOW)
            clock.at(0.2, lambda: helpers.setdefault("main", gw.add_window(title="App", pid=pid)))

        gateway.launchers["app.exe"] = launch
        result = acquirer.acquire("app.exe", timeout=5.0)

        assert result.found
        assert result.hwnd == helpers["main"]

    def test_helper_that_becomes_visible_qualifies(self, gateway, acquirer, clock):
        created = {}

        def launch(gw, pid):
            created["hwnd"] = gw.add_window(title="Splash", pid=pid, visible=False)
            clock.at(0.1, lambda: setattr(gw.windows[created["hwnd"]], "visible", True))

        gateway.launchers["slow.exe"] = launch
        result = acquirer.acquire("slow.exe", timeout=5.0)

        assert result.found
        assert result.hwnd == created["hwnd"]
        assert result.tier == 1

    def test_earliest_detected_wins(self, gateway, acquirer, clock):
        created = []

        def launch(gw, pid):
            created.append(gw.add_window(title="first", pid=pid))
            created.append(gw.add_window(title="second", pid=pid))

        gateway.launchers["two.exe"] = launch
        result = acquirer.acquire("two.exe", timeout=5.0)

        # Both seen on the same poll: Z-order (topmost first) decides.
        assert result.hwnd == created[1]

    def test_window_of_child_while_launcher_runs(self, gateway, acquirer, clock):
        created = {}

        def launch(gw, pid):
            child = gw.add_process("app.exe")
            gw.processes[pid].children.add(child)
            clock.at(0.2, lambda: created.setdefault("hwnd", gw.add_window(title="App", pid=child)))

        gateway.launchers["cmd /c app.exe"] = launch
        result = acquirer.acquire("cmd /c app.exe", timeout=5.0)

        assert result.status is AcquireStatus.FOUND
        assert result.tier == 1
        assert result.hwnd == created["hwnd"]

    def test_own_window_ranks_before_child_window(self, gateway, acquirer, clock):
        created = {}

        def open_both(gw, pid, child):
            created["own"] = gw.add_window(title="Main", pid=pid)
            created["child"] = gw.add_window(title="Helper", pid=child)

        def launch(gw, pid):
            child = gw.add_process("helper.exe")
            gw.processes[pid].children.add(child)
            clock.at(0.1, lambda: open_both(gw, pid, child))

        gateway.launchers["main.exe"] = launch
        result = acquirer.acquire("main.exe", timeout=5.0)

        # The child's window is topmost, but the launched PID's own wins.
        assert result.hwnd == created["own"]


# ============================================================================
# TIERS 2 AND 3: SINGLE-INSTANCE HAND-OVER
# ============================================================================

class TestSingleInstance:
    """The launched process exits and another instance shows the window."""

    def test_baseline_delta_after_exit(self, gateway, acquirer, clock):
        a = gateway.add_window(title="A", pid=100)
        b = gateway.add_window(title="B", pid=100)
        new = {}

        def launch(gw, pid):
            gw.exit_process(pid)
            clock.at(0.1, lambda: new.setdefault("c", gw.add_window(title="C", pid=100)))

        gateway.launchers["single.exe"] = launch
        result = acquirer.acquire("single.exe", timeout=5.0)

        assert result.status is AcquireStatus.FOUND
        assert result.tier == 2
        assert result.hwnd == new["c"]
        assert result.hwnd not in (a, b)

    def test_delta_not_used_while_process_runs(self, gateway, acquirer, clock):
        other = {}

        def launch(gw, pid):
            # Someone else's window appears first; ours a bit later.
            other["w"] = gw.add_window(title="Other", pid=4242)
            clock.at(0.3, lambda: other.setdefault("mine", gw.add_window(title="Mine", pid=pid)))

        gateway.launchers["mine.exe"] = launch
        result = acquirer.acquire("mine.exe", timeout=5.0)

        assert result.tier == 1
        assert result.hwnd == other["mine"]

    def test_family_window_resurfaces(self, gateway, acquirer, clock):
        existing_pid = gateway.add_process("editor.exe", pid=300)
        hidden = gateway.add_window(title="Editor", pid=existing_pid, visible=False)

        def launch(gw, pid):
            gw.exit_process(pid)
            clock.at(0.1, lambda: setattr(gw.windows[hidden], "visible", True))

        gateway.launchers["editor.exe"] = launch
        result = acquirer.acquire("editor.exe", timeout=5.0)

        assert result.found
        assert result.tier == 3
        assert result.hwnd == hidden

    def test_family_window_raised_to_foreground(self, gateway, acquirer, clock):
        existing_pid = gateway.add_process("editor.exe", pid=300)
        win = gateway.add_window(title="Editor", pid=existing_pid)

        def launch(gw, pid):
            gw.exit_process(pid)
            clock.at(0.1, lambda: setattr(gw, "foreground", win))

        gateway.launchers["editor.exe"] = launch
        result = acquirer.acquire("editor.exe", timeout=5.0)

        assert result.tier == 3
        assert result.hwnd == win

    def test_foreign_window_resurfacing_is_ignored(self, gateway, acquirer, clock):
        foreign = gateway.add_window(title="Foreign", pid=gateway.add_process("other.exe"), visible=False)

        def launch(gw, pid):
            gw.exit_process(pid)
            clock.at(0.1, lambda: setattr(gw.windows[foreign], "visible", True))

        gateway.launchers["editor.exe"] = launch
        result = acquirer.acquire("editor.exe", timeout=5.0)

        assert result.status is AcquireStatus.NOT_FOUND


# ============================================================================
# FAILURES
# ============================================================================

class TestFailures:
    """Absence is a result, never an exception."""

    def test_launch_failure(self, acquirer):
        result = acquirer.acquire("does-not-exist.exe", timeout=1.0)
        assert result.status is AcquireStatus.LAUNCH_FAILED
        assert result.hwnd == 0
        assert "does-not-exist" in result.error

    def test_timed_out_while_process_alive(self, gateway, acquirer, clock):
        gateway.launchers["hang.exe"] = lambda gw, pid: None
        result = acquirer.acquire("hang.exe", timeout=0.5)

        assert result.status is AcquireStatus.TIMED_OUT
        assert result.elapsed >= 0.5
        assert clock.now == pytest.approx(0.5)

    def test_not_found_after_exit_grace(self, gateway, acquirer, clock):
        gateway.launchers["quick.exe"] = lambda gw, pid: gw.exit_process(pid)
        result = acquirer.acquire("quick.exe", timeout=10.0)

        assert result.status is AcquireStatus.NOT_FOUND
        assert 1.0 <= result.elapsed < 1.2


# ============================================================================
# CONCURRENCY
# ============================================================================

class TestConcurrent:
    """Concurrent acquisitions resolve to distinct handles."""

    def make_acquirer(self, gateway, registry):
        return WindowAcquirer(gateway, registry, interval=0.01, exit_grace=0.5)

    def test_fresh_window_per_launch(self, gateway, registry):
        acquirer = self.make_acquirer(gateway, registry)
        gateway.launchers["fresh.exe"] = lambda gw, pid: gw.add_window(title="Fresh", pid=pid)

        with ThreadPoolExecutor(2) as pool:
            results = list(pool.map(lambda _: acquirer.acquire("fresh.exe", 2.0), range(2)))

        assert all(r.found for r in results)
        assert results[0].hwnd != results[1].hwnd

    def test_single_instance_race(self, gateway, registry):
        acquirer = self.make_acquirer(gateway, registry)
        gateway.add_window(title="Existing", pid=100)
        # Both calls have taken their baseline before either window exists.
        barrier = threading.Barrier(2, timeout=2.0)

        def launch(gw, pid):
            barrier.wait()
            gw.exit_process(pid)
            gw.add_window(title="Tab", pid=100)

        gateway.launchers["single.exe"] = launch

        with ThreadPoolExecutor(2) as pool:
            results = list(pool.map(lambda _: acquirer.acquire("single.exe", 2.0), range(2)))

        assert all(r.found for r in results)
        assert results[0].hwnd != results[1].hwnd
