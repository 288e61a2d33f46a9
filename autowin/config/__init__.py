"""
autowin.config - Runtime configuration.
"""

from autowin.config.settings import Settings

__all__ = ["Settings"]
