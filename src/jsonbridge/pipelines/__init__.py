"""Pipeline entry points for jsonbridge.

Currently exposed:

- :class:`JsonProcessor` - validate, extract and order the independent
  blocks of a JSON document, implemented in ``json_processor.py``.
"""

from __future__ import annotations

from .json_processor import JsonProcessor, ProcessingResult, build_output, write_output

__all__ = ["JsonProcessor", "ProcessingResult", "build_output", "write_output"]
