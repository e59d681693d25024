"""
Trace snapshot definition.

A snapshot is the immutable record of the processing blackboard right after
a pipeline stage (validation, extraction, sorting) finished. It lives apart
from ``memory.py`` so the CLI and the disk writer can import it without
pulling in the store itself.

Timestamps are kept as ISO-8601 strings, converted once at capture time, so
snapshots serialize to JSON without custom encoders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class TraceSnapshot:
    """
    Immutable record of a blackboard snapshot.

    Attributes
    ----------
    timestamp : str
        UTC capture time, e.g. ``"2026-10-19T10:00:00.123456Z"``.
    revision : int
        Blackboard revision at capture time.
    note : str | None
        Human-readable label (e.g. ``'extract: 3 block group(s)'``).
    data : dict[str, Any]
        JSON-safe copy of the blackboard content at that moment.
    """

    timestamp: str
    revision: int
    note: str | None
    data: dict[str, Any] = field(default_factory=dict)
