"""Disk-backed trace writer for processing snapshots.

- Default directory: `JSONBRIDGE_TRACE_DIR` env var or `artifacts/trace/`
- Filename pattern:  `<compact UTC timestamp>_rev{rev:06d}.json`
- Content:           a JSON object mirroring the `TraceSnapshot` dataclass

Usage
-----
>>> writer = TraceWriter()  # uses default dir
>>> paths = writer.write_all(result["blackboard"].traces())
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable
from dataclasses import asdict
from pathlib import Path

from .trace import TraceSnapshot


def _default_dir() -> Path:
    """Return the default base directory for trace artifacts."""
    root = os.getenv("JSONBRIDGE_TRACE_DIR")
    return Path(root) if root else Path("artifacts") / "trace"


class TraceWriter:
    """Persist blackboard snapshots to disk as JSON files."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir: Path = base_dir if base_dir is not None else _default_dir()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def write(self, snap: TraceSnapshot) -> Path:
        """Write `snap` to disk and return the created file path."""
        safe_ts = snap.timestamp.replace("-", "").replace(":", "").replace(".", "")
        path = self.base_dir / f"{safe_ts}_rev{snap.revision:06d}.json"

        with path.open("w", encoding="utf-8") as f:
            json.dump(asdict(snap), f, ensure_ascii=False, indent=2)
            f.write("\n")
        return path

    def write_all(self, snaps: Iterable[TraceSnapshot]) -> list[Path]:
        return [self.write(s) for s in snaps]
