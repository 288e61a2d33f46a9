"""
autowin - Spawn, find, watch and drive native windows.
"""

from autowin.config import Settings
from autowin.core import *  # noqa: F401,F403
from autowin.core import __all__ as _core_all

__version__ = "0.1.0"

__all__ = ["Settings", *_core_all]
