"""
In-memory Blackboard with typed get/put and trace snapshots.

The JSON processor writes each stage's artifact here (violations, rewritten
document, extracted blocks, dependency graph, ordered groups) and takes a
snapshot after every stage, which gives the CLI a step-by-step record of a
run without any extra bookkeeping in the stages themselves.

- ``put(key, value)``: insert or update an entry and bump the revision counter.
- ``get(key, default=None)``: retrieve a value with an optional default.
- ``trace(note=None)``: capture a snapshot of the current state.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, TypeVar, cast

from .trace import TraceSnapshot

T = TypeVar("T")


def _jsonify(value: Any) -> Any:
    """
    Return a JSON-safe representation of ``value``.

    - Primitives (None, bool, int, float, str) -> returned as-is.
    - Pydantic models -> ``model_dump()``.
    - Objects exposing ``to_payload()`` (registry, graph) -> that payload.
    - dict -> new dict with keys coerced to str; list/tuple -> list.
    - anything else -> ``repr(obj)``.
    """
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if hasattr(value, "model_dump"):
        return _jsonify(value.model_dump())
    if hasattr(value, "to_payload"):
        return _jsonify(value.to_payload())
    if isinstance(value, dict):
        return {str(k): _jsonify(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonify(v) for v in value]
    return repr(value)


class Blackboard:
    """
    Simple in-memory key-value store with revisioned trace snapshots.

    Attributes
    ----------
    _store : dict[str, Any]
        The actual key-value storage.
    _rev : int
        Monotonically increasing revision counter (bumps on every mutation).
    _traces : list[TraceSnapshot]
        History of captured snapshots.
    """

    __slots__ = ("_store", "_rev", "_traces")

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}
        self._rev: int = 0
        self._traces: list[TraceSnapshot] = []

    # ------------------------------- KV API ---------------------------------

    def put(self, key: str, value: Any) -> None:
        """Insert or update ``key`` with ``value`` and bump the revision counter."""
        self._store[key] = value
        self._rev += 1

    def get(self, key: str, default: T | None = None) -> T | None:
        """Return the stored value for ``key``, or ``default`` if not found."""
        if key in self._store:
            return cast(T | None, self._store[key])
        return default

    def keys(self) -> tuple[str, ...]:
        """Return the current keys as a sorted tuple (stable for tests)."""
        return tuple(sorted(self._store.keys()))

    @property
    def revision(self) -> int:
        return self._rev

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._store)

    # ------------------------------- Trace API ------------------------------

    def trace(self, note: str | None = None) -> TraceSnapshot:
        """
        Capture an immutable snapshot of the current blackboard state.

        Parameters
        ----------
        note : str | None
            Optional label explaining why this trace was taken.

        Returns
        -------
        TraceSnapshot
            Metadata plus a JSON-safe copy of the data.
        """
        data_copy: dict[str, Any] = {k: _jsonify(v) for k, v in self._store.items()}
        ts_str = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")

        snap = TraceSnapshot(
            timestamp=ts_str,
            revision=self._rev,
            note=note,
            data=data_copy,
        )
        self._traces.append(snap)
        return snap

    def traces(self) -> tuple[TraceSnapshot, ...]:
        """Return all recorded snapshots (immutable tuple)."""
        return tuple(self._traces)


__all__ = ["Blackboard"]
