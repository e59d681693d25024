"""
Directed graph of block-group dependencies.

An edge ``src -> dst`` means "``src`` must be inserted before ``dst``": the
instances of ``dst`` carry foreign-key tokens pointing at ``src``.

Unlike a strict DAG, this graph tolerates cycles. :meth:`DependencyGraph.topological_order`
never raises; it places whatever Kahn's algorithm can place and reports the
rest as ``unresolved`` so the caller decides whether that is acceptable.

Determinism
-----------
Nodes and adjacency lists keep insertion order (plain dicts and lists, no
sets), so the same extraction always yields the same order.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import NamedTuple


@dataclass
class Node:
    """A node in the dependency graph (one block group)."""

    id: str
    instances: int = 0


class TopologicalOrder(NamedTuple):
    """Result of :meth:`DependencyGraph.topological_order`.

    ``order`` holds every node exactly once. ``unresolved`` is the suffix of
    ``order`` that was appended in insertion order because a cycle blocked it.
    """

    order: list[str]
    unresolved: list[str]


class DependencyGraph:
    """Insertion-ordered directed graph with cycle-tolerant Kahn sorting."""

    nodes: dict[str, Node]
    edges: dict[str, list[str]]
    rev_edges: dict[str, list[str]]

    def __init__(self) -> None:
        self.nodes = {}
        self.edges = {}
        self.rev_edges = {}
        self.self_references: list[str] = []

    # ----------------------------------------------------------------------
    # Construction
    # ----------------------------------------------------------------------

    def add_node(self, node_id: str, *, instances: int | None = None) -> Node:
        """Create ``node_id`` if missing and return it.

        ``instances`` records how many block rows the group holds.
        """
        node = self.nodes.get(node_id)
        if node is None:
            node = Node(id=node_id)
            self.nodes[node_id] = node
            self.edges[node_id] = []
            self.rev_edges[node_id] = []
        if instances is not None:
            node.instances = instances
        return node

    def add_edge(self, src: str, dst: str) -> bool:
        """Add ``src -> dst``, creating missing nodes.

        Returns False when the edge already existed, so callers never count a
        pair twice.
        """
        self.add_node(src)
        self.add_node(dst)
        if dst in self.edges[src]:
            return False
        self.edges[src].append(dst)
        self.rev_edges[dst].append(src)
        return True

    # ----------------------------------------------------------------------
    # Views
    # ----------------------------------------------------------------------

    def in_degree(self) -> dict[str, int]:
        """Return the number of distinct prerequisites of every node."""
        return {u: len(self.rev_edges[u]) for u in self.nodes}

    def adjacency(self) -> dict[str, list[str]]:
        """Return a copy of the prerequisite -> dependents lists."""
        return {u: list(vs) for u, vs in self.edges.items()}

    # ----------------------------------------------------------------------
    # Topological sort (Kahn's algorithm + orphan recovery)
    # ----------------------------------------------------------------------

    def topological_order(self) -> TopologicalOrder:
        """Return every node, prerequisites first where the graph allows it.

        Uses a local indegree map; the graph itself is never mutated. Nodes
        that never reach indegree zero (members of a cycle, or downstream of
        one) are appended afterwards in insertion order.
        """
        indeg = self.in_degree()
        queue = deque(u for u in self.nodes if indeg[u] == 0)
        out: list[str] = []

        while queue:
            u = queue.popleft()
            out.append(u)
            for v in self.edges[u]:
                indeg[v] -= 1
                if indeg[v] == 0:
                    queue.append(v)

        placed = set(out)
        unresolved = [u for u in self.nodes if u not in placed]
        out.extend(unresolved)
        return TopologicalOrder(order=out, unresolved=unresolved)

    # ----------------------------------------------------------------------
    # JSON-safe payload for traces and the CLI
    # ----------------------------------------------------------------------

    def to_payload(self) -> dict[str, object]:
        """Return JSON-safe structure used by the blackboard and tests."""
        topo = self.topological_order()
        return {
            "nodes": list(self.nodes.keys()),
            "edges": {k: list(v) for k, v in self.edges.items()},
            "instances": {k: n.instances for k, n in self.nodes.items()},
            "self_references": list(self.self_references),
            "order": topo.order,
            "unresolved": topo.unresolved,
        }


__all__ = ["DependencyGraph", "Node", "TopologicalOrder"]
