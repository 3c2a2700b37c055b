"""
Visibility dependency graph.

Nodes are section ids. An edge A -> B means "A's condition reads a field
of B". Nesting adds no edges: a hidden parent hides its children at
evaluation time (see formstate.visibility), not through the graph.

The graph must be a DAG. It is sorted once per config load with Kahn's
algorithm; leftover nodes mean a cycle, which is reported with the
participating section ids.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from formstate.errors import ConfigurationError, CyclicDependencyError
from formstate.index import ConfigIndex
from formstate.interpreter import collect_references

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """
    Directed "depends on" graph over section ids.

    Properties:
        nodes: Section ids in config (depth-first) order
        edges: node -> set of nodes it depends on
    """

    nodes: List[str] = field(default_factory=list)
    edges: Dict[str, Set[str]] = field(default_factory=dict)

    def add_node(self, node: str) -> None:
        if node not in self.edges:
            self.nodes.append(node)
            self.edges[node] = set()

    def add_edge(self, dependent: str, dependency: str) -> None:
        self.add_node(dependent)
        self.add_node(dependency)
        self.edges[dependent].add(dependency)

    def dependencies(self, node: str) -> Set[str]:
        return set(self.edges.get(node, ()))

    def topological_order(self) -> List[str]:
        """
        Kahn's algorithm. Dependencies come before dependents; ties are
        broken by config order so the result is deterministic.

        Raises:
            CyclicDependencyError: if the graph has a cycle
        """
        position = {node: i for i, node in enumerate(self.nodes)}
        remaining = {node: len(deps) for node, deps in self.edges.items()}
        dependents: Dict[str, List[str]] = {node: [] for node in self.nodes}
        for node, deps in self.edges.items():
            for dep in deps:
                dependents[dep].append(node)

        ready = [(position[n], n) for n, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: List[str] = []

        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for dependent in dependents[node]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (position[dependent], dependent))

        if len(order) != len(self.nodes):
            stuck = [n for n in self.nodes if remaining[n] > 0]
            cycle = self.find_cycle(stuck) or stuck
            raise CyclicDependencyError(cycle)

        return order

    def find_cycle(self, candidates: Optional[List[str]] = None) -> Optional[List[str]]:
        """Return one cycle as a list of ids (first id repeated at the end), or None."""
        visited: Set[str] = set()
        for start in candidates or self.nodes:
            if start not in visited:
                cycle = _find_cycle_dfs(self.edges, start, visited, set(), [])
                if cycle:
                    return cycle
        return None


def _find_cycle_dfs(graph: Dict[str, Set[str]], start: str, visited: Set[str],
                    rec_stack: Set[str], path: List[str]) -> Optional[List[str]]:
    """DFS to find a cycle starting from a node."""
    visited.add(start)
    rec_stack.add(start)
    path.append(start)

    for neighbor in sorted(graph.get(start, ())):
        if neighbor not in visited:
            cycle = _find_cycle_dfs(graph, neighbor, visited, rec_stack, path[:])
            if cycle:
                return cycle
        elif neighbor in rec_stack:
            cycle_start_idx = path.index(neighbor)
            return path[cycle_start_idx:] + [neighbor]

    rec_stack.remove(start)
    return None


def build_dependency_graph(index: ConfigIndex) -> DependencyGraph:
    """
    Build the dependency graph for a config.

    Raises:
        ConfigurationError: a condition references an unknown field, or its
            own section or one of its descendants
    """
    graph = DependencyGraph()
    for section_id in index.order:
        graph.add_node(section_id)

    for section_id in index.order:
        section = index.sections[section_id]
        if section.condition is None:
            continue

        forbidden = index.descendants(section_id) | {section_id}
        for ref in sorted(collect_references(section.condition), key=lambda r: r.dotted):
            target_section, _ = index.resolve(ref, context=f"condition of section {section_id!r}")
            if target_section in forbidden:
                what = "itself" if target_section == section_id else f"its descendant {target_section!r}"
                raise ConfigurationError(
                    f"Condition of section {section_id!r} references {what} via {ref.dotted!r}"
                )
            graph.add_edge(section_id, target_section)

    logger.debug("Built dependency graph: %d sections, %d edges",
                 len(graph.nodes), sum(len(v) for v in graph.edges.values()))
    return graph
