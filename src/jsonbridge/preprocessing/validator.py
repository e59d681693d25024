"""
Independent block validator.

Walks a parsed JSON document read-only and checks that every occurrence of a
registered block carries its key field. Problems are accumulated, never
short-circuited: the scan keeps descending into a subtree even when the node
above it is already invalid, so one run reports everything.

Rules
-----
For every property of every object whose name is a registered block:

- object value: the key field must be present (``missing_key``) and not
  null (``null_key``), the same condition the extractor enforces;
- array value: every object element must pass the same check, and every
  non-object element is an ``invalid_element``;
- scalar value: ignored (the extractor leaves it untouched as well).

Paths use a JSONPath-like notation rooted at ``$``, e.g. ``$.users[0]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from jsonbridge.core.contracts.block import BlockDefinition
from jsonbridge.core.errors import BlockValidationError, DocumentTooDeepError
from jsonbridge.core.registry import BlockRegistry
from jsonbridge.core.settings import get_logger

logger = get_logger(__name__)

ViolationKind = Literal["missing_key", "null_key", "invalid_element"]


@dataclass(frozen=True, slots=True)
class Violation:
    """One problem found in a block occurrence."""

    path: str
    block: str
    key_field: str
    kind: ViolationKind

    @property
    def message(self) -> str:
        if self.kind == "missing_key":
            return (
                f"Block '{self.block}' at {self.path} lacks the required key '{self.key_field}'."
            )
        if self.kind == "null_key":
            return f"Block '{self.block}' at {self.path} has a null '{self.key_field}'."
        return f"Block '{self.block}' at {self.path} is not an object."


def collect_violations(root: Any, registry: BlockRegistry) -> list[Violation]:
    """Return every violation in ``root`` (empty list when well-formed)."""
    violations: list[Violation] = []
    try:
        _visit(root, "$", registry, violations)
    except RecursionError as e:
        raise DocumentTooDeepError("validation") from e
    return violations


def validate(root: Any, registry: BlockRegistry) -> None:
    """Raise a single :class:`BlockValidationError` listing every violation."""
    violations = collect_violations(root, registry)
    if violations:
        logger.info("Validation found %d violation(s)", len(violations))
        raise BlockValidationError(violations)
    logger.debug("Validation passed for %d registered block(s)", len(registry))


# --------------------------------------------------------------------------- #
# Recursive walk
# --------------------------------------------------------------------------- #


def _visit(node: Any, path: str, registry: BlockRegistry, out: list[Violation]) -> None:
    if isinstance(node, dict):
        for name, value in node.items():
            child_path = f"{path}.{name}"
            block = registry.get_block(name)
            if block is not None:
                _check_block(value, child_path, block, out)
            _visit(value, child_path, registry, out)
    elif isinstance(node, list):
        for i, item in enumerate(node):
            _visit(item, f"{path}[{i}]", registry, out)


def _check_block(value: Any, path: str, block: BlockDefinition, out: list[Violation]) -> None:
    if isinstance(value, dict):
        _check_key(value, path, block, out)
    elif isinstance(value, list):
        for i, item in enumerate(value):
            item_path = f"{path}[{i}]"
            if isinstance(item, dict):
                _check_key(item, item_path, block, out)
            else:
                out.append(Violation(item_path, block.name, block.key_field, "invalid_element"))


def _check_key(obj: dict[str, Any], path: str, block: BlockDefinition, out: list[Violation]) -> None:
    if block.key_field not in obj:
        out.append(Violation(path, block.name, block.key_field, "missing_key"))
    elif obj[block.key_field] is None:
        out.append(Violation(path, block.name, block.key_field, "null_key"))


__all__ = ["Violation", "ViolationKind", "collect_violations", "validate"]
