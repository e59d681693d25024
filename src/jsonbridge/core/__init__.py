"""Core package initializer for jsonbridge.

Downstream code imports the pieces it needs directly, e.g.:
    from jsonbridge.core.settings import settings, load_settings, Settings, get_logger
    from jsonbridge.core.registry import BlockRegistry
"""

from __future__ import annotations

__all__ = ["__doc__"]
