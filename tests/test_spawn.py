"""
Tests for command splitting and launching.

Run with: python -m pytest tests/test_spawn.py -v
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from autowin.core import spawn
from autowin.core.errors import LaunchError


class TestSplitCommand:
    """Windows-style command line splitting."""

    def test_plain(self):
        assert spawn.split_command("notepad.exe") == ["notepad.exe"]

    def test_arguments(self):
        assert spawn.split_command("code .") == ["code", "."]

    def test_quoted_path(self):
        assert spawn.split_command('explorer "C:\\Program Files"') == [
            "explorer", "C:\\Program Files",
        ]

    @pytest.mark.parametrize("bad", ["", "   "])
    def test_empty(self, bad):
        with pytest.raises(LaunchError):
            spawn.split_command(bad)


class TestExecutableName:
    """Normalized program names for process-family matching."""

    def test_strips_directory_and_lowercases(self):
        assert spawn.executable_name("C:\\Tools\\Notepad.EXE file.txt") == "notepad.exe"

    def test_adds_extension(self):
        assert spawn.executable_name("calc") == "calc.exe"

    def test_quoted(self):
        assert spawn.executable_name('"C:\\Program Files\\App\\app.exe" --new') == "app.exe"


class TestLaunch:
    """Process creation, with subprocess mocked out."""

    def test_missing_executable(self):
        with patch("autowin.core.spawn.shutil.which", return_value=None):
            with pytest.raises(LaunchError):
                spawn.launch("definitely-not-installed.exe")

    def test_launch_uses_resolved_path(self):
        fake_proc = MagicMock(pid=1234)
        with patch("autowin.core.spawn.shutil.which", return_value="C:\\bin\\tool.exe"), \
                patch("autowin.core.spawn.subprocess.Popen", return_value=fake_proc) as popen:
            proc = spawn.launch("tool --flag")

        assert proc.pid == 1234
        args = popen.call_args[0][0]
        assert args == ["C:\\bin\\tool.exe", "--flag"]
        assert popen.call_args[1]["stdin"] is subprocess.DEVNULL

    def test_os_error_becomes_launch_error(self):
        with patch("autowin.core.spawn.shutil.which", return_value="C:\\bin\\tool.exe"), \
                patch("autowin.core.spawn.subprocess.Popen", side_effect=OSError("denied")):
            with pytest.raises(LaunchError):
                spawn.launch("tool")
