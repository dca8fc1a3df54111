"""
paramcascade Dependency Graph

Builds the parameter dependency graph and orders it for refresh.

Edge ``A -> B`` means B depends on A, so A must refresh before B. The graph
is derived fresh from the current parameter collection on every sort and is
never mutated afterwards.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Set
import logging

from paramcascade.core.parameter import Parameter
from paramcascade.errors.diagnostics import UnresolvedDependencyError, unresolved_dependency

if TYPE_CHECKING:
    from paramcascade.events.channel import EventChannel

logger = logging.getLogger(__name__)


# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================

@dataclass
class DependencyNode:
    """A node in the dependency graph."""
    name: str
    parameter: Parameter

    # Names of parameters this node must wait for / that wait for it
    depends_on: List[str] = field(default_factory=list)
    depended_by: List[str] = field(default_factory=list)

    @property
    def in_degree(self) -> int:
        return len(self.depends_on)


class DependencyGraph:
    """
    Directed graph of parameter dependencies.

    Nodes keep first-seen order: declared parameters in input order, with
    names only seen inside references appended as synthetic nodes.
    """

    def __init__(self):
        self._nodes: Dict[str, DependencyNode] = {}

    @classmethod
    def build(cls, parameters: Sequence[Parameter]) -> "DependencyGraph":
        """Build a graph from a parameter collection."""
        graph = cls()

        # Declared parameters first; duplicates keep their first occurrence
        for param in parameters:
            graph._add_node(param)

        for param in parameters:
            if graph._nodes[param.name].parameter is not param:
                continue
            for ref_name in param.referenced_names:
                if ref_name not in graph._nodes:
                    graph._add_node(Parameter.synthesize(ref_name))
                graph._add_edge(ref_name, param.name)

        return graph

    def _add_node(self, param: Parameter) -> DependencyNode:
        if param.name in self._nodes:
            return self._nodes[param.name]
        node = DependencyNode(name=param.name, parameter=param)
        self._nodes[param.name] = node
        return node

    def _add_edge(self, source: str, target: str) -> None:
        self._nodes[source].depended_by.append(target)
        self._nodes[target].depends_on.append(source)

    @property
    def names(self) -> List[str]:
        """All node names in first-seen order."""
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(n.depended_by) for n in self._nodes.values())

    def get_node(self, name: str) -> Optional[DependencyNode]:
        return self._nodes.get(name)

    def has_parameter(self, name: str) -> bool:
        return name in self._nodes

    def get_parameter(self, name: str) -> Optional[Parameter]:
        node = self._nodes.get(name)
        return node.parameter if node else None

    def get_direct_dependents(self, name: str) -> List[str]:
        node = self._nodes.get(name)
        return list(node.depended_by) if node else []

    def get_direct_dependencies(self, name: str) -> List[str]:
        node = self._nodes.get(name)
        return list(node.depends_on) if node else []

    def get_all_downstream(self, name: str) -> Set[str]:
        """Get all transitive dependents of a parameter."""
        result = set()
        to_process = [name]

        while to_process:
            current = to_process.pop()
            node = self._nodes.get(current)
            if node:
                for dependent in node.depended_by:
                    if dependent not in result:
                        result.add(dependent)
                        to_process.append(dependent)

        return result

    def in_degrees(self) -> Dict[str, int]:
        return {name: node.in_degree for name, node in self._nodes.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: {
                "depends_on": list(node.depends_on),
                "depended_by": list(node.depended_by),
                "synthetic": node.parameter.synthetic,
            }
            for name, node in self._nodes.items()
        }


# =============================================================================
# GRAPH SORTER
# =============================================================================

@dataclass
class SortResult:
    """Outcome of ordering a parameter collection."""
    order: List[Parameter]
    unresolved: List[str]
    node_count: int

    @property
    def is_complete(self) -> bool:
        return len(self.order) == self.node_count

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.order]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.names,
            "unresolved": list(self.unresolved),
            "node_count": self.node_count,
            "is_complete": self.is_complete,
        }


class GraphSorter:
    """
    Orders parameters so that every parameter follows everything it
    references (Kahn's algorithm).

    Sorting never fails: when a cycle or unresolved dependency remains, the
    resolvable prefix is returned and an UNRESOLVED_DEPENDENCY diagnostic is
    published.
    """

    def __init__(self, channel: Optional["EventChannel"] = None):
        self._channel = channel

    def resolve(self, parameters: Sequence[Parameter], strict: bool = False) -> SortResult:
        """
        Topologically sort parameters.

        Args:
            parameters: Host parameter collection
            strict: Raise UnresolvedDependencyError on an incomplete sort

        Returns:
            SortResult with the (possibly partial) order
        """
        graph = DependencyGraph.build(parameters)
        in_degree = graph.in_degrees()

        # FIFO seeded in first-seen order gives a deterministic tie-break
        queue = deque(name for name, degree in in_degree.items() if degree == 0)
        order: List[Parameter] = []

        while queue:
            name = queue.popleft()
            node = graph.get_node(name)
            order.append(node.parameter)

            for dependent in node.depended_by:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        result = SortResult(
            order=order,
            unresolved=[name for name, degree in in_degree.items() if degree > 0],
            node_count=graph.node_count,
        )

        if not result.is_complete:
            self._report_unresolved(result)
            if strict:
                raise UnresolvedDependencyError(result.unresolved)
        else:
            logger.debug(
                f"Sorted {graph.node_count} parameters, {graph.edge_count} edges: {result.names}"
            )

        return result

    def sort(self, parameters: Sequence[Parameter]) -> List[Parameter]:
        """Return parameters in refresh order (independent first)."""
        return self.resolve(parameters).order

    def _report_unresolved(self, result: SortResult) -> None:
        diagnostic = unresolved_dependency(
            result.unresolved,
            resolved_count=len(result.order),
            node_count=result.node_count,
        )
        logger.warning(diagnostic.message)
        if self._channel is not None:
            self._channel.diagnostic(diagnostic)


# =============================================================================
# ORDER HELPERS
# =============================================================================

def index_of(param: Parameter, order: Sequence[Parameter]) -> int:
    """Position of a parameter in ``order`` by name, or -1."""
    for i, candidate in enumerate(order):
        if candidate.name == param.name:
            return i
    return -1


def tail_from(param: Parameter, order: Sequence[Parameter]) -> List[Parameter]:
    """
    Get the parameters positioned strictly after ``param`` in ``order``.

    These are its potential dependents in evaluation order. A parameter
    absent from ``order`` has an empty tail.
    """
    index = index_of(param, order)
    if index == -1:
        return []
    return list(order[index + 1:])


def direct_dependents(param: Parameter, order: Sequence[Parameter]) -> List[Parameter]:
    """Get parameters in ``order`` that reference ``param`` directly."""
    return [p for p in order if p.references(param.name)]
