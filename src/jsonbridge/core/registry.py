"""
Independent block registry.

A :class:`BlockRegistry` maps a block name to its :class:`BlockDefinition`.
One registry is built per pipeline run and handed explicitly to the
validator and the extractor; nothing here is process-global.

Lookups are exact and case-sensitive. Registration order carries no meaning:
correctness only depends on name lookup.

Configuration files
-------------------
:meth:`BlockRegistry.from_file` accepts two JSON shapes::

    {"users": "id_user", "contacts": "id_contact"}

    [{"name": "users", "key_field": "id_user"},
     {"name": "contacts", "key_field": "id_contact"}]
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from jsonbridge.core.contracts.block import BlockDefinition
from jsonbridge.core.errors import RegistryConflictError, RegistryFileError
from jsonbridge.core.settings import get_logger

logger = get_logger(__name__)


class BlockRegistry:
    """Catalog of independent blocks keyed by sanitized name."""

    __slots__ = ("_blocks",)

    def __init__(self) -> None:
        self._blocks: dict[str, BlockDefinition] = {}

    # ------------------------------- Mutation -------------------------------

    def add_block(self, name: str, key_field: str) -> BlockDefinition:
        """Register ``name`` with ``key_field`` and return its definition.

        Re-adding an identical pair is a no-op.

        Raises
        ------
        InvalidBlockNameError
            If either value cannot be encoded in a foreign-key token.
        RegistryConflictError
            If ``name`` is already registered with another key field.
        """
        block = BlockDefinition.create(name, key_field)
        existing = self._blocks.get(block.name)
        if existing is not None:
            if existing.key_field != block.key_field:
                raise RegistryConflictError(block.name, block.key_field, existing.key_field)
            return existing
        self._blocks[block.name] = block
        logger.debug("Registered block %s -> %s", block, block.foreign_key_token)
        return block

    # ------------------------------- Queries --------------------------------

    def contains_block(self, name: str) -> bool:
        return name in self._blocks

    def get_block(self, name: str) -> BlockDefinition | None:
        return self._blocks.get(name)

    def get_key_for_block(self, name: str) -> str:
        """Return the key field of ``name``; raise ``KeyError`` if unknown."""
        block = self._blocks.get(name)
        if block is None:
            raise KeyError(f"Block '{name}' not found in registry.")
        return block.key_field

    def get_all_blocks(self) -> list[BlockDefinition]:
        return list(self._blocks.values())

    def to_payload(self) -> dict[str, str]:
        """Return a JSON-safe ``{name: key_field}`` view."""
        return {name: block.key_field for name, block in self._blocks.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._blocks

    def __iter__(self) -> Iterator[BlockDefinition]:
        return iter(self._blocks.values())

    def __len__(self) -> int:
        return len(self._blocks)

    def __repr__(self) -> str:
        return f"BlockRegistry({self.to_payload()!r})"

    # ----------------------------- Constructors -----------------------------

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> BlockRegistry:
        """Build a registry from ``(name, key_field)`` pairs."""
        registry = cls()
        for name, key_field in pairs:
            registry.add_block(name, key_field)
        return registry

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> BlockRegistry:
        """Build a registry from a ``{name: key_field}`` mapping."""
        return cls.from_pairs(mapping.items())

    @classmethod
    def from_file(cls, path: str | Path) -> BlockRegistry:
        """Load a registry from a JSON configuration file.

        Raises
        ------
        RegistryFileError
            If the file is missing, is not valid JSON, or has another shape.
        """
        path = Path(path)
        try:
            raw: Any = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise RegistryFileError(f"Registry file not found: {path}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise RegistryFileError(f"Cannot read registry file {path}: {exc}") from exc

        registry = cls.from_pairs(_pairs_from_payload(raw, source=str(path)))
        logger.info("Loaded %d independent block(s) from %s", len(registry), path)
        return registry


def _pairs_from_payload(raw: Any, *, source: str) -> list[tuple[str, str]]:
    """Normalize both supported file shapes into ``(name, key_field)`` pairs."""
    if isinstance(raw, dict):
        pairs = list(raw.items())
    elif isinstance(raw, list):
        pairs = []
        for i, entry in enumerate(raw):
            if not isinstance(entry, dict) or "name" not in entry or "key_field" not in entry:
                raise RegistryFileError(
                    f"{source}: entry {i} must be an object with 'name' and 'key_field'."
                )
            pairs.append((entry["name"], entry["key_field"]))
    else:
        raise RegistryFileError(f"{source}: expected a JSON object or array of blocks.")

    for name, key_field in pairs:
        if not isinstance(name, str) or not isinstance(key_field, str):
            raise RegistryFileError(f"{source}: block names and key fields must be strings.")
    return pairs


__all__ = ["BlockRegistry"]
