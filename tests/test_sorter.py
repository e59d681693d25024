"""Tests for dependency graph construction and block ordering."""

from __future__ import annotations

from typing import Any

from jsonbridge.core.registry import BlockRegistry
from jsonbridge.preprocessing.extractor import extract_all
from jsonbridge.preprocessing.sorter import build_graph, find_references, sort_blocks


def _position(names: list[str]) -> dict[str, int]:
    return {name: i for i, name in enumerate(names)}


def test_referenced_block_comes_first() -> None:
    """users embeds contacts, so contacts must be inserted before users."""
    registry = BlockRegistry.from_mapping({"users": "id_user", "contacts": "id_contact"})
    doc = {"users": [{"id_user": 1, "contacts": {"id_contact": 9}}]}
    blocks = extract_all(doc, registry).blocks

    result = sort_blocks(blocks)
    assert result.names == ["contacts", "users"]
    assert result.unresolved == []
    assert result.ordered[1] == ("users", [{"id_user": 1, "_IB_contacts_id_contact": 9}])


def test_build_graph_counts_each_pair_once() -> None:
    """Several instances repeating a reference add a single edge."""
    blocks: dict[str, list[dict[str, Any]]] = {
        "users": [
            {"id_user": 1, "_IB_contacts_id_contact": 9},
            {"id_user": 2, "_IB_contacts_id_contact": [9, 10]},
        ],
        "contacts": [{"id_contact": 9}, {"id_contact": 10}],
    }
    graph = build_graph(blocks)
    assert graph.in_degree() == {"users": 1, "contacts": 0}
    assert {name: node.instances for name, node in graph.nodes.items()} == {
        "users": 2,
        "contacts": 2,
    }
    assert graph.adjacency() == {"users": [], "contacts": ["users"]}


def test_references_to_unknown_groups_and_plain_names_are_ignored() -> None:
    """Only tokens naming another extracted group create edges."""
    blocks = {
        "users": [{"id_user": 1, "_IB_orders_id": 3, "_IB_": 1, "nickname": "x"}],
    }
    graph = build_graph(blocks)
    assert graph.in_degree() == {"users": 0}
    assert sort_blocks(blocks).names == ["users"]


def test_tokens_in_nested_plain_objects_count() -> None:
    """A token inside an embedded, non-block object still ties the rows."""
    blocks = {
        "users": [{"id_user": 1, "address": {"street": "x", "_IB_countries_code": "IT"}}],
        "countries": [{"code": "IT"}],
    }
    assert sort_blocks(blocks).names == ["countries", "users"]
    assert [fk.block_name for fk in find_references(blocks["users"][0])] == ["countries"]


def test_self_reference_does_not_block_ordering() -> None:
    """A group referencing itself is ordered normally."""
    blocks = {
        "categories": [{"id": 1, "_IB_categories_id": [2]}, {"id": 2}],
        "products": [{"sku": "a", "_IB_categories_id": 2}],
    }
    graph = build_graph(blocks)
    assert graph.self_references == ["categories"]

    result = sort_blocks(blocks, graph)
    assert result.names == ["categories", "products"]
    assert not result.has_cycles
    assert result.self_references == ["categories"]


def test_chain_and_diamond_respect_every_edge() -> None:
    """For an acyclic graph, every prerequisite precedes its dependents."""
    registry = BlockRegistry.from_mapping(
        {"orders": "id", "users": "uid", "addresses": "aid", "countries": "code"}
    )
    doc = {
        "orders": [
            {
                "id": 1,
                "users": {"uid": 7, "addresses": [{"aid": 3, "countries": {"code": "DE"}}]},
                "countries": {"code": "DE"},
            }
        ]
    }
    blocks = extract_all(doc, registry).blocks
    graph = build_graph(blocks)
    result = sort_blocks(blocks, graph)

    pos = _position(result.names)
    for src, dsts in graph.adjacency().items():
        for dst in dsts:
            assert pos[src] < pos[dst], f"{src} should precede {dst}"
    assert sorted(result.names) == sorted(blocks)


def test_mutual_references_are_placed_by_orphan_recovery() -> None:
    """A cycle leaves both groups unresolved, each emitted once, deterministically."""
    blocks = {
        "A": [{"id": 1, "_IB_B_id": 2}],
        "B": [{"id": 2, "_IB_A_id": 1}],
        "C": [{"id": 3}],
    }
    first = sort_blocks(blocks)
    second = sort_blocks(dict(blocks))

    assert first.names == ["C", "A", "B"]
    assert first.unresolved == ["A", "B"]
    assert first.has_cycles
    assert first.names == second.names


def test_sort_is_a_permutation() -> None:
    """Every input name appears exactly once."""
    blocks = {
        "a": [{"k": 1, "_IB_b_k": 1}],
        "b": [{"k": 1, "_IB_c_k": 1}],
        "c": [{"k": 1, "_IB_a_k": 1}],
        "d": [{"k": 1, "_IB_a_k": 1}],
        "e": [{"k": 1}],
    }
    result = sort_blocks(blocks)
    assert len(result.ordered) == len(blocks)
    assert sorted(result.names) == sorted(blocks)
    # d depends on a cycle member, so it is left unresolved as well.
    assert result.names[0] == "e"
    assert result.unresolved == ["a", "b", "c", "d"]


def test_empty_input() -> None:
    """No blocks, no order."""
    result = sort_blocks({})
    assert result.ordered == [] and result.unresolved == []
