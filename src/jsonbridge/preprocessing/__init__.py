"""Validate, extract and order independent blocks of a JSON document.

Stages, in pipeline order:

- :func:`validate` - read-only scan, one aggregate error for all problems.
- :func:`extract_all` - detach every block and leave foreign-key tokens.
- :func:`sort_blocks` - order block groups so prerequisites come first.
"""

from __future__ import annotations

from .extractor import Extraction, extract_all, reassemble, rewrite
from .sorter import SortResult, build_graph, find_references, sort_blocks
from .validator import Violation, collect_violations, validate

__all__ = [
    "Violation",
    "collect_violations",
    "validate",
    "Extraction",
    "extract_all",
    "rewrite",
    "reassemble",
    "SortResult",
    "build_graph",
    "find_references",
    "sort_blocks",
]
