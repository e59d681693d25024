"""
Dependency grapher and topological sorter for extracted block groups.

After extraction, a block instance that embedded another block carries a
foreign-key token in its place. Scanning the extracted instances for such
tokens yields the insertion constraints::

    users: [{"id_user": 1, "_IB_contacts_id_contact": 9}]
    ->  edge contacts -> users   (contacts rows must exist first)

Graph rules
-----------
- One node per extracted block name, in extraction order.
- A token counts as a reference only if it parses and names another
  extracted group; any other property name is ordinary data.
- Each (prerequisite, dependent) pair is counted once, however many
  instances repeat it.
- Tokens are searched in the instance's own properties and in the plain
  objects/arrays nested under them (an embedded address holding a country
  token still ties the row to that country).
- A block referencing its own name adds no edge: rows of one group are
  inserted together. Such names are listed on ``graph.self_references``.

Groups that a cycle keeps from being placed are appended in extraction order
and returned as ``unresolved``; the caller decides what that means.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from jsonbridge.core.errors import DocumentTooDeepError
from jsonbridge.core.graph.dag import DependencyGraph
from jsonbridge.core.settings import get_logger
from jsonbridge.core.tokens import ForeignKey, try_parse

logger = get_logger(__name__)

BlockGroup = tuple[str, list[dict[str, Any]]]


@dataclass(frozen=True, slots=True)
class SortResult:
    """Ordered block groups plus the names only placed by orphan recovery.

    ``self_references`` lists groups whose rows reference rows of the same
    group; they are ordered normally but still form a cycle among rows.
    """

    ordered: list[BlockGroup]
    unresolved: list[str] = field(default_factory=list)
    self_references: list[str] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.ordered]

    @property
    def has_cycles(self) -> bool:
        return bool(self.unresolved)


def find_references(obj: Any) -> list[ForeignKey]:
    """Return every foreign-key token found in ``obj``, in document order."""
    found: list[ForeignKey] = []
    _collect(obj, found)
    return found


def _collect(node: Any, found: list[ForeignKey]) -> None:
    if isinstance(node, list):
        for item in node:
            _collect(item, found)
        return
    if not isinstance(node, dict):
        return
    for name, value in node.items():
        parsed = try_parse(name)
        if parsed.is_ok():
            # Token values are keys, never nested documents.
            found.append(parsed.unwrap())
        else:
            _collect(value, found)


def build_graph(blocks: Mapping[str, Sequence[dict[str, Any]]]) -> DependencyGraph:
    """Build the prerequisite -> dependent graph of ``blocks``."""
    graph = DependencyGraph()
    for name, items in blocks.items():
        graph.add_node(name, instances=len(items))

    for name, items in blocks.items():
        for item in items:
            try:
                refs = find_references(item)
            except RecursionError as e:
                raise DocumentTooDeepError("dependency scan") from e
            for fk in refs:
                if fk.block_name not in blocks:
                    continue
                if fk.block_name == name:
                    if name not in graph.self_references:
                        graph.self_references.append(name)
                    continue
                if graph.add_edge(fk.block_name, name):
                    logger.debug("Dependency: %s -> %s", fk.block_name, name)
    return graph


def sort_blocks(
    blocks: Mapping[str, Sequence[dict[str, Any]]],
    graph: DependencyGraph | None = None,
) -> SortResult:
    """Order ``blocks`` so referenced groups precede the groups referencing them.

    The output holds every input name exactly once. For groups caught in a
    dependency cycle the order is best-effort only. Pass ``graph`` to reuse
    one already built by :func:`build_graph`.
    """
    if graph is None:
        graph = build_graph(blocks)
    topo = graph.topological_order()

    if topo.unresolved:
        logger.info(
            "Dependency cycle: %d block group(s) appended without ordering: %s",
            len(topo.unresolved),
            ", ".join(topo.unresolved),
        )
    logger.debug("Block order: %s", " -> ".join(topo.order))

    ordered = [(name, list(blocks[name])) for name in topo.order]
    return SortResult(
        ordered=ordered,
        unresolved=topo.unresolved,
        self_references=list(graph.self_references),
    )


__all__ = ["BlockGroup", "SortResult", "find_references", "build_graph", "sort_blocks"]
