"""jsonbridge: detach independent JSON blocks and order them for bulk insertion.

The public entry point is :class:`jsonbridge.pipelines.JsonProcessor`; the
building blocks live under :mod:`jsonbridge.core` and
:mod:`jsonbridge.preprocessing`.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
