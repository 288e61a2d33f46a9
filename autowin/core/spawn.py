"""
autowin.core.spawn - Process creation.

Turns a command line into a running, detached process.  The window
that process surfaces is found afterwards by acquire.WindowAcquirer;
this module only deals with the process itself.

The command string is split using Windows lexing rules:
    "notepad.exe"              -> ["notepad.exe"]
    "code ."                   -> ["code", "."]
    'explorer "C:\\Program Files"' -> ["explorer", "C:\\Program Files"]
"""

from __future__ import annotations

import logging
import ntpath
import shlex
import shutil
import subprocess

from autowin.core.errors import LaunchError

log = logging.getLogger(__name__)

# Detached: the child outlives us and gets no console.  Windows-only flags.
_CREATION_FLAGS = (
    getattr(subprocess, "DETACHED_PROCESS", 0)
    | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
)


def split_command(command: str) -> list[str]:
    """
    Split a command line into arguments.

    Raises:
        LaunchError: If the command is empty or cannot be parsed.
    """
    if not command or not command.strip():
        raise LaunchError("empty command")

    try:
        parts = shlex.split(command, posix=False)
    except ValueError as e:
        raise LaunchError(f"invalid command {command!r}: {e}") from e

    # posix=False keeps the quotes around quoted arguments.
    args = [
        p[1:-1] if len(p) >= 2 and p[0] == p[-1] and p[0] in "\"'" else p
        for p in parts
    ]
    if not args:
        raise LaunchError(f"empty command {command!r}")
    return args


def executable_name(command: str) -> str:
    """
    Lower-cased executable name of a command, without directory.

    "C:\\Tools\\Notepad.EXE file.txt" -> "notepad.exe"
    "calc"                           -> "calc.exe"
    """
    exe = ntpath.basename(split_command(command)[0]).lower()
    if "." not in exe:
        exe += ".exe"
    return exe


def launch(command: str) -> subprocess.Popen:
    """
    Start *command* detached from our console.

    Returns:
        The Popen object of the new process.

    Raises:
        LaunchError: If the executable is not found or creation fails.
    """
    args = split_command(command)
    executable = args[0]

    # Check if executable exists on PATH (best-effort)
    resolved = shutil.which(executable)
    if resolved is None:
        log.error("spawn: executable not found: %r", executable)
        raise LaunchError(f"executable not found: {executable}")

    try:
        proc = subprocess.Popen(
            [resolved, *args[1:]],
            creationflags=_CREATION_FLAGS,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        log.error("spawn: failed to launch %r: %s", command, e)
        raise LaunchError(f"failed to launch {executable}: {e}") from e

    log.info("spawn: launched %r (PID %d)", command, proc.pid)
    return proc
