"""Exception hierarchy for the block extraction pipeline.

Every error raised on purpose by jsonbridge derives from
:class:`JsonBridgeError`, so callers can catch the whole family at once.

Propagation policy
------------------
- Registry problems (:class:`RegistryConflictError`,
  :class:`InvalidBlockNameError`, :class:`RegistryFileError`) surface while
  the registry is being built, before any document is touched.
- Validation collects every problem and raises a single
  :class:`BlockValidationError`.
- Extraction aborts on the first :class:`MissingOrNullKeyError`.
- Validation and extraction turn a :class:`RecursionError` on pathologically
  deep input into :class:`DocumentTooDeepError`.
- :class:`MalformedTokenError` is raised by :func:`jsonbridge.core.tokens.parse`;
  the dependency grapher treats it as "not a reference".
- :class:`CyclicDependencyError` is only raised by the processor when the
  configured cycle policy is ``"fail"``.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jsonbridge.preprocessing.validator import Violation


class JsonBridgeError(Exception):
    """Base class for every jsonbridge error."""


class RegistryConflictError(JsonBridgeError):
    """A block name was registered twice with different key fields."""

    def __init__(self, name: str, found: str, expected: str) -> None:
        self.name = name
        self.found = found
        self.expected = expected
        super().__init__(
            f"Conflict in key field for block '{name}'. "
            f"Found '{found}', expected '{expected}'."
        )


class InvalidBlockNameError(JsonBridgeError, ValueError):
    """A block name or key field cannot be encoded in a foreign-key token."""


class RegistryFileError(JsonBridgeError):
    """A registry configuration file is missing, unreadable or badly shaped."""


class BlockValidationError(JsonBridgeError):
    """Aggregate of every block violation found in one document scan."""

    def __init__(self, violations: Sequence[Violation]) -> None:
        self.violations: tuple[Violation, ...] = tuple(violations)
        lines = "\n".join(f"- {v.message}" for v in self.violations)
        super().__init__(
            f"Validation found {len(self.violations)} problem(s) in independent blocks:\n{lines}"
        )


class MissingOrNullKeyError(JsonBridgeError):
    """A matched block instance lacks its key field, or the key is null."""

    def __init__(self, block: str, key_field: str, path: str, *, reason: str) -> None:
        self.block = block
        self.key_field = key_field
        self.path = path
        self.reason = reason
        super().__init__(
            f"Key '{key_field}' of block '{block}' at {path} is {reason}."
        )


class DocumentTooDeepError(JsonBridgeError):
    """A document nests deeper than the recursive walkers can follow."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(
            f"Document is nested too deeply for {stage} "
            f"(recursion limit {sys.getrecursionlimit()})."
        )


class MalformedTokenError(JsonBridgeError, ValueError):
    """A string does not follow the ``_IB_<name>_<key>`` grammar."""


class CyclicDependencyError(JsonBridgeError):
    """Blocks could not be ordered because they depend on each other."""

    def __init__(self, unresolved: Sequence[str]) -> None:
        self.unresolved: tuple[str, ...] = tuple(unresolved)
        super().__init__(
            "Dependency cycle between independent blocks: " + ", ".join(self.unresolved)
        )


__all__ = [
    "JsonBridgeError",
    "RegistryConflictError",
    "InvalidBlockNameError",
    "RegistryFileError",
    "BlockValidationError",
    "MissingOrNullKeyError",
    "DocumentTooDeepError",
    "MalformedTokenError",
    "CyclicDependencyError",
]
