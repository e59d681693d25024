"""Dependency graph between extracted block groups."""

from __future__ import annotations

from .dag import DependencyGraph, Node, TopologicalOrder

__all__ = ["DependencyGraph", "Node", "TopologicalOrder"]
