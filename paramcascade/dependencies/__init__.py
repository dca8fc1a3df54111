"""
paramcascade Dependency Engine

Provides:
- DependencyGraph: parameter dependency graph, rebuilt per sort
- GraphSorter: deterministic topological ordering (Kahn's algorithm)
- tail_from / direct_dependents: order slicing helpers
"""

from .graph import (
    DependencyGraph,
    DependencyNode,
    GraphSorter,
    SortResult,
    direct_dependents,
    index_of,
    tail_from,
)

__all__ = [
    "DependencyGraph",
    "DependencyNode",
    "GraphSorter",
    "SortResult",
    "direct_dependents",
    "index_of",
    "tail_from",
]
