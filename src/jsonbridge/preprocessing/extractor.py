"""
Independent block extractor.

Detaches every registered block from a parsed JSON document and leaves a
foreign-key token in its place::

    {"users": [{"id_user": 1, "contacts": {"id_contact": 9}}]}

becomes the document::

    {"_IB_users_id_user": [1]}

plus the extracted groups::

    users:    [{"id_user": 1, "_IB_contacts_id_contact": 9}]
    contacts: [{"id_contact": 9}]

The rewrite is pure: :func:`rewrite` builds a new tree and never mutates its
input, so replacements are staged per object and applied once its properties
have all been visited.

Rules for a property whose name is a registered block
-----------------------------------------------------
- object value: the key field must be present and non-null, otherwise
  :class:`MissingOrNullKeyError` is raised at once (no partial result);
  the token's value is the key.
- array value: every object element is detached the same way and the
  token's value is the list of keys. Non-object elements are dropped. An
  array without any object element is kept verbatim.
- scalar or null value: kept verbatim.

A literal property already named like the token a block property writes is
dropped unvisited, so blocks nested in it are never recorded.

Stored blocks are the rewritten bodies, so blocks nested in blocks are
themselves already replaced by tokens. A parent is recorded before the
blocks nested inside it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from jsonbridge.core.contracts.block import BlockDefinition
from jsonbridge.core.errors import DocumentTooDeepError, MissingOrNullKeyError
from jsonbridge.core.registry import BlockRegistry
from jsonbridge.core.settings import get_logger
from jsonbridge.core.tokens import try_parse

logger = get_logger(__name__)

JsonObject = dict[str, Any]
ExtractedBlockSet = dict[str, list[JsonObject]]


@dataclass(frozen=True, slots=True)
class Extraction:
    """Outcome of :func:`extract_all`.

    Attributes
    ----------
    document : Any
        The rewritten tree, carrying tokens instead of block sub-documents.
    blocks : ExtractedBlockSet
        Block name -> extracted instances, in first-encounter order.
    """

    document: Any
    blocks: ExtractedBlockSet

    def count(self) -> int:
        """Return the total number of extracted instances."""
        return sum(len(items) for items in self.blocks.values())


def extract_all(root: Any, registry: BlockRegistry) -> Extraction:
    """Detach every registered block found anywhere under ``root``.

    Raises
    ------
    MissingOrNullKeyError
        If a block instance lacks its key field or the key is null.
    DocumentTooDeepError
        If ``root`` nests deeper than the interpreter's recursion limit allows.
    """
    try:
        document, blocks = rewrite(root, registry)
    except RecursionError as e:
        raise DocumentTooDeepError("extraction") from e
    logger.info(
        "Extracted %d instance(s) in %d block group(s)",
        sum(len(items) for items in blocks.values()),
        len(blocks),
    )
    return Extraction(document=document, blocks=blocks)


def rewrite(node: Any, registry: BlockRegistry) -> tuple[Any, ExtractedBlockSet]:
    """Return ``(new_node, extracted_blocks)`` without touching ``node``."""
    rewriter = _Rewriter(registry)
    return rewriter.visit(node, "$"), rewriter.blocks


class _Rewriter:
    """Recursive rewriter; one stack frame per nesting level of plain data."""

    __slots__ = ("registry", "blocks")

    def __init__(self, registry: BlockRegistry) -> None:
        self.registry = registry
        self.blocks: ExtractedBlockSet = {}

    def visit(self, node: Any, path: str) -> Any:
        if isinstance(node, dict):
            return self.visit_object(node, path)
        if isinstance(node, list):
            return self.visit_array(node, path)
        return node

    def visit_array(self, items: list[Any], path: str) -> list[Any]:
        out: list[Any] = []
        for i, item in enumerate(items):
            if isinstance(item, dict):
                out.append(self.visit_object(item, f"{path}[{i}]"))
            elif isinstance(item, list):
                out.append(self.visit_array(item, f"{path}[{i}]"))
            else:
                out.append(item)
        return out

    def visit_object(self, obj: JsonObject, path: str) -> JsonObject:
        # Literal properties named like a staged token are replaced by it, so
        # they are never visited and nothing nested in them is recorded.
        shadowed = self._shadowed_tokens(obj)
        staged: dict[str, tuple[str, Any]] = {}
        kept: JsonObject = {}

        for name, value in obj.items():
            if name in shadowed:
                logger.debug("Dropped %s.%s, replaced by a block token", path, name)
                continue
            child_path = f"{path}.{name}"
            block = self.registry.get_block(name)
            if block is None:
                if isinstance(value, dict):
                    kept[name] = self.visit_object(value, child_path)
                elif isinstance(value, list):
                    kept[name] = self.visit_array(value, child_path)
                else:
                    kept[name] = value
            elif isinstance(value, dict):
                staged[name] = (block.foreign_key_token, self.detach(value, child_path, block))
            elif isinstance(value, list):
                keys: list[Any] = []
                for i, item in enumerate(value):
                    if isinstance(item, dict):
                        keys.append(self.detach(item, f"{child_path}[{i}]", block))
                if keys:
                    staged[name] = (block.foreign_key_token, keys)
                else:
                    kept[name] = copy.deepcopy(value)
            else:
                kept[name] = value

        if not staged:
            return kept

        # The token takes the original property's slot.
        out: JsonObject = {}
        for name in obj:
            if name in staged:
                token, key = staged[name]
                out[token] = key
            elif name in kept:
                out[name] = kept[name]
        return out

    def _shadowed_tokens(self, obj: JsonObject) -> set[str]:
        """Return the token names this object's block properties will write."""
        tokens: set[str] = set()
        for name, value in obj.items():
            block = self.registry.get_block(name)
            if block is None:
                continue
            if isinstance(value, dict) or (
                isinstance(value, list) and any(isinstance(item, dict) for item in value)
            ):
                tokens.add(block.foreign_key_token)
        return tokens

    def detach(self, obj: JsonObject, path: str, block: BlockDefinition) -> Any:
        """Record ``obj`` under its block and return its key value."""
        if block.key_field not in obj:
            raise MissingOrNullKeyError(block.name, block.key_field, path, reason="missing")
        key = obj[block.key_field]
        if key is None:
            raise MissingOrNullKeyError(block.name, block.key_field, path, reason="null")

        bucket = self.blocks.setdefault(block.name, [])
        slot = len(bucket)
        bucket.append(obj)  # reserve the slot so the parent precedes its nested blocks
        bucket[slot] = self.visit_object(obj, path)
        logger.debug("Detached %s[%r] at %s", block.name, key, path)
        return copy.deepcopy(key)


# --------------------------------------------------------------------------- #
# Inverse operation
# --------------------------------------------------------------------------- #


def reassemble(document: Any, blocks: ExtractedBlockSet) -> Any:
    """Re-embed extracted blocks at their token sites (inverse of :func:`rewrite`).

    Every property whose name is a token pointing at a group in ``blocks`` is
    replaced by the instance(s) whose key matches the token's value, under
    the original block name. Tokens whose group or key cannot be found are
    left as they are. When several instances share a key, the first wins.
    """
    if isinstance(document, list):
        return [reassemble(item, blocks) for item in document]
    if not isinstance(document, dict):
        return document

    out: JsonObject = {}
    for name, value in document.items():
        parsed = try_parse(name)
        if parsed.is_err() or parsed.unwrap().block_name not in blocks:
            out[name] = reassemble(value, blocks)
            continue

        fk = parsed.unwrap()
        by_key = _index_by_key(blocks[fk.block_name], fk.key_field)
        if isinstance(value, list):
            if all(_hashable(k) and k in by_key for k in value):
                out[fk.block_name] = [reassemble(by_key[k], blocks) for k in value]
                continue
        elif _hashable(value) and value in by_key:
            out[fk.block_name] = reassemble(by_key[value], blocks)
            continue
        out[name] = value
    return out


def _hashable(value: Any) -> bool:
    return not isinstance(value, dict | list)


def _index_by_key(items: list[JsonObject], key_field: str) -> dict[Any, JsonObject]:
    index: dict[Any, JsonObject] = {}
    for item in items:
        key = item.get(key_field)
        if _hashable(key):
            index.setdefault(key, item)
    return index


__all__ = ["Extraction", "ExtractedBlockSet", "extract_all", "rewrite", "reassemble"]
