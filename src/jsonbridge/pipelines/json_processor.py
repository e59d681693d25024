"""
JSON processing pipeline: from a raw document to insertion-ordered blocks.

Flow Overview
-------------
1. **Validate** - scan the document for block occurrences lacking their key
   field; every violation is reported in one :class:`BlockValidationError`
   before anything is rewritten.
2. **Extract** - detach every registered block, leaving foreign-key tokens
   in the rewritten document.
3. **Sort** - order the extracted groups so referenced blocks come first.
   Groups caught in a dependency cycle are handled by the cycle policy:
   ``accept`` keeps the best-effort order, ``warn`` also logs it, ``fail``
   raises :class:`CyclicDependencyError`.
   Groups whose rows reference rows of the same group are self-cyclic: they
   keep their place in the order but fall under the same policy.

Every stage writes its artifact to a :class:`Blackboard` and records a trace
snapshot, which the CLI can print or persist.

Output shape
------------
:func:`build_output` packages a result for the persistence layer::

    {"independent_blocks": {"contacts": [...], "users": [...]}}

Key order is the insertion order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TypedDict

from jsonbridge.core.blackboard.memory import Blackboard
from jsonbridge.core.errors import BlockValidationError, CyclicDependencyError
from jsonbridge.core.registry import BlockRegistry
from jsonbridge.core.settings import CyclePolicy, get_logger, load_settings
from jsonbridge.preprocessing.extractor import extract_all
from jsonbridge.preprocessing.sorter import BlockGroup, build_graph, sort_blocks
from jsonbridge.preprocessing.validator import collect_violations

logger = get_logger(__name__)

# --------------------------------------------------------------------------- #
# Blackboard keys
# --------------------------------------------------------------------------- #

_REGISTRY_KEY = "registry"
_VIOLATIONS_KEY = "violations"
_DOCUMENT_KEY = "document"
_EXTRACTED_KEY = "extracted_blocks"
_GRAPH_KEY = "dependency_graph"
_ORDER_KEY = "block_order"
_UNRESOLVED_KEY = "unresolved_blocks"


class ProcessingResult(TypedDict):
    """Structured payload returned by :class:`JsonProcessor`.

    Attributes
    ----------
    blackboard:
        Stage artifacts and trace snapshots of the run.
    document:
        The rewritten document, carrying foreign-key tokens.
    ordered_blocks:
        ``(name, instances)`` pairs in insertion order.
    unresolved:
        Names placed by orphan recovery (non-empty only with cycles).
    self_references:
        Names of self-cyclic groups (rows referencing rows of the same group).
    dependencies:
        Prerequisite -> dependents adjacency of the block groups.
    """

    blackboard: Blackboard
    document: Any
    ordered_blocks: list[BlockGroup]
    unresolved: list[str]
    self_references: list[str]
    dependencies: dict[str, list[str]]


class JsonProcessor:
    """Run Validate -> Extract -> Sort against one registry."""

    def __init__(
        self,
        registry: BlockRegistry,
        *,
        cycle_policy: CyclePolicy | None = None,
        output_key: str | None = None,
    ) -> None:
        if registry is None:
            raise ValueError("A block registry is required.")
        cfg = load_settings()
        self.registry = registry
        self.cycle_policy: CyclePolicy = cycle_policy or cfg.cycle_policy
        self.output_key: str = output_key or cfg.output_key

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def process_file(self, path: str | Path) -> ProcessingResult:
        """Parse the JSON file at ``path`` and process it."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        logger.info("Processing %s", path)
        return self.process_string(path.read_text(encoding="utf-8"))

    def process_string(self, text: str | None) -> ProcessingResult:
        """Parse ``text`` as JSON and process it.

        Raises
        ------
        ValueError
            If ``text`` is None or blank.
        json.JSONDecodeError
            If ``text`` is not valid JSON.
        """
        if text is None or not text.strip():
            raise ValueError("JSON content is empty.")
        return self.process_object(json.loads(text))

    def process_object(self, root: Any) -> ProcessingResult:
        """Process an already parsed document; ``root`` is not modified."""
        bb = Blackboard()
        bb.put(_REGISTRY_KEY, self.registry)

        # 1. Validate (complete picture before any rewrite)
        violations = collect_violations(root, self.registry)
        bb.put(_VIOLATIONS_KEY, [v.message for v in violations])
        bb.trace(f"validate: {len(violations)} violation(s)")
        if violations:
            raise BlockValidationError(violations)

        # 2. Extract
        extraction = extract_all(root, self.registry)
        bb.put(_DOCUMENT_KEY, extraction.document)
        bb.put(_EXTRACTED_KEY, extraction.blocks)
        bb.trace(
            f"extract: {extraction.count()} instance(s) in {len(extraction.blocks)} group(s)"
        )

        # 3. Sort
        graph = build_graph(extraction.blocks)
        bb.put(_GRAPH_KEY, graph)
        sorted_blocks = sort_blocks(extraction.blocks, graph)
        bb.put(_ORDER_KEY, sorted_blocks.names)
        bb.put(_UNRESOLVED_KEY, sorted_blocks.unresolved)
        bb.trace(f"sort: {' -> '.join(sorted_blocks.names) or '(no blocks)'}")

        self._apply_cycle_policy(sorted_blocks.unresolved, sorted_blocks.self_references)

        return {
            "blackboard": bb,
            "document": extraction.document,
            "ordered_blocks": sorted_blocks.ordered,
            "unresolved": sorted_blocks.unresolved,
            "self_references": sorted_blocks.self_references,
            "dependencies": graph.adjacency(),
        }

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _apply_cycle_policy(self, unresolved: list[str], self_references: list[str]) -> None:
        cyclic = unresolved + [name for name in self_references if name not in unresolved]
        if not cyclic:
            return
        if self.cycle_policy == "fail":
            raise CyclicDependencyError(cyclic)
        if self.cycle_policy == "warn":
            logger.warning(
                "Best-effort order kept for cyclic block group(s): %s", ", ".join(cyclic)
            )

    def build_output(
        self, result: ProcessingResult, *, include_document: bool = False
    ) -> dict[str, Any]:
        """Package ``result`` under this processor's output key."""
        return build_output(
            result, output_key=self.output_key, include_document=include_document
        )


def build_output(
    result: ProcessingResult,
    *,
    output_key: str = "independent_blocks",
    include_document: bool = False,
) -> dict[str, Any]:
    """Return the JSON payload handed to the persistence layer."""
    payload: dict[str, Any] = {
        output_key: {name: items for name, items in result["ordered_blocks"]},
    }
    if include_document:
        payload["document"] = result["document"]
    if result["unresolved"]:
        payload["unresolved"] = list(result["unresolved"])
    return payload


def write_output(payload: dict[str, Any], path: str | Path) -> Path:
    """Write ``payload`` as indented UTF-8 JSON and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")
    return path


__all__ = ["JsonProcessor", "ProcessingResult", "build_output", "write_output"]
