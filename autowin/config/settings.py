"""
autowin.config.settings - Tunable timings.

Every polling loop in autowin reads its interval from a Settings
instance.  Defaults suit interactive automation; each value can be
overridden through an AUTOWIN_* environment variable:

    AUTOWIN_MONITOR_INTERVAL   seconds between monitor ticks per window
    AUTOWIN_ACQUIRE_INTERVAL   seconds between scans while spawning
    AUTOWIN_ACQUIRE_TIMEOUT    default spawn timeout
    AUTOWIN_EXIT_GRACE         how long to keep looking after the
                               launched process exited
    AUTOWIN_WAIT_FOR_INTERVAL  seconds between scans in wait_for()
    AUTOWIN_KEY_POLL_INTERVAL  seconds between key-state reads
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace

log = logging.getLogger(__name__)

ENV_PREFIX = "AUTOWIN_"


@dataclass(frozen=True, slots=True)
class Settings:
    """Polling intervals and default timeouts, all in seconds."""

    monitor_interval: float = 0.1
    acquire_interval: float = 0.075
    acquire_timeout: float = 10.0
    exit_grace: float = 1.0
    wait_for_interval: float = 0.1
    key_poll_interval: float = 0.02

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value <= 0:
                raise ValueError(f"{f.name} must be positive, got {value!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from defaults overridden by AUTOWIN_* variables.

        Raises:
            ValueError: If a variable is not a positive number.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, float] = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            raw = env.get(key)
            if raw is None or not raw.strip():
                continue
            try:
                overrides[f.name] = float(raw)
            except ValueError:
                raise ValueError(f"{key} must be a number, got {raw!r}") from None
            log.debug("Setting %s=%s from environment", f.name, raw)
        return cls(**overrides)

    def with_overrides(self, **changes: float) -> Settings:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
