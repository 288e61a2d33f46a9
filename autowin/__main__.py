"""
autowin - Command line entry point.

Run with:
    python -m autowin list
    python -m autowin find "Notepad"
    python -m autowin spawn "notepad.exe"
    python -m autowin watch 0x00120ab4 --seconds 30
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from autowin.config.settings import Settings
from autowin.core.errors import AutowinError
from autowin.core.manager import WindowManager
from autowin.core.signals import WindowEvent, WindowSignal


class SafeStreamHandler(logging.StreamHandler):
    """Handler that replaces unencodable characters instead of crashing."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            enc = getattr(self.stream, "encoding", "utf-8") or "utf-8"
            safe = msg.encode(enc, errors="replace").decode(enc, errors="replace")
            self.stream.write(safe + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool = False) -> None:
    fmt = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
    handler = SafeStreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(handler)

    # The user-window heuristic logs every rejected window.
    logging.getLogger("autowin.core.filter").setLevel(logging.INFO)


def safe_print(text: str) -> None:
    enc = sys.stdout.encoding or "utf-8"
    print(text.encode(enc, errors="replace").decode(enc, errors="replace"))


def parse_hwnd(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a window handle: {value!r}") from None


# ============================================================================
# Commands
# ============================================================================
def cmd_list(wm: WindowManager, args: argparse.Namespace) -> int:
    windows = wm.windows(user_only=not args.all)
    for win in windows:
        safe_print(str(win))
    safe_print(f"{len(windows)} window(s)")
    return 0


def cmd_find(wm: WindowManager, args: argparse.Namespace) -> int:
    if args.wait is not None:
        win = wm.wait_for(args.pattern, timeout=args.wait)
        found = [win] if win is not None else []
    else:
        found = wm.find(args.pattern)
    for win in found:
        safe_print(str(win))
    return 0 if found else 1


def cmd_spawn(wm: WindowManager, args: argparse.Namespace) -> int:
    result = wm.acquire(args.command, timeout=args.timeout)
    if not result.found:
        safe_print(f"{result.status.value}: {result.error or args.command}")
        return 1
    win = wm.window(result.hwnd)
    safe_print(f"tier {result.tier} after {result.elapsed:.2f}s: {win}")
    return 0


def on_signal(signal: WindowSignal) -> None:
    safe_print(f"  SIGNAL: {signal}")


def cmd_watch(wm: WindowManager, args: argparse.Namespace) -> int:
    win = wm.window(args.hwnd)
    if win is None:
        safe_print(f"no window {args.hwnd:#010x}")
        return 1

    safe_print(f"Watching {win}")
    for kind in WindowEvent:
        win.connect(kind, on_signal)
    win.start_monitoring(args.interval)

    try:
        win.wait(WindowEvent.CLOSED, timeout=args.seconds)
    except AutowinError:
        # Timed out, or the bus closed before we started waiting.
        pass
    except KeyboardInterrupt:
        pass
    return 0


COMMANDS = {
    "list": cmd_list,
    "find": cmd_find,
    "spawn": cmd_spawn,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autowin",
        description="Spawn, find and watch native windows.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging",
    )
    sub = parser.add_subparsers(dest="command_name", required=True)

    p_list = sub.add_parser("list", help="List top-level windows")
    p_list.add_argument(
        "--all", action="store_true", help="Include tool and helper windows",
    )

    p_find = sub.add_parser("find", help="Find windows by title")
    p_find.add_argument("pattern", help="Title substring (case-insensitive)")
    p_find.add_argument(
        "--wait", type=float, metavar="SECONDS",
        help="Keep looking until a window matches or SECONDS elapse",
    )

    p_spawn = sub.add_parser("spawn", help="Launch a command and report its window")
    p_spawn.add_argument("command", help="Command line to run")
    p_spawn.add_argument("--timeout", type=float, default=None)

    p_watch = sub.add_parser("watch", help="Print a window's signals")
    p_watch.add_argument("hwnd", type=parse_hwnd, help="Handle, e.g. 0x00120ab4")
    p_watch.add_argument("--seconds", type=float, default=None)
    p_watch.add_argument("--interval", type=float, default=None)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        safe_print(f"configuration error: {e}")
        return 2

    with WindowManager(settings=settings) as wm:
        return COMMANDS[args.command_name](wm, args)


if __name__ == "__main__":
    sys.exit(main())
