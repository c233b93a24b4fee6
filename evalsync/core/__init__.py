"""Core: config, constants, cache keys and runtime bootstrap.

Single place for settings and shared constants.
"""

from evalsync.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
