"""
attrflow Dependency Graph - Ordered Incremental Cycle Detection
===============================================================

This module provides the directed graph behind every dependency registry.
Edges are added one at a time and each addition is checked for cycles, so a
bad declaration is reported at the edge that closes the loop, together with
the full path of the cycle.

The graph represents dependencies: edge ``A -> B`` means B depends on A.

Unlike a plain set-based graph, nodes and edges remember their insertion
order. Topological sorts and reachability queries are therefore
deterministic, which matters because propagation order is observable by
recomputation functions.

Usage:
    graph = DependencyGraph()
    graph.add_edge("name", "fullname")
    graph.add_edge("surname", "fullname")

    graph.topological_sort()     # ["name", "surname", "fullname"]
    graph.get_dependents("name")  # ["fullname"]

    graph.add_edge("fullname", "name")  # raises CircularDependencyError
"""

from collections import deque
from typing import Dict, Generic, Hashable, List, Optional, TypeVar

from ..errors import CircularDependencyError

T = TypeVar("T", bound=Hashable)


class DependencyGraph(Generic[T]):
    """
    Insertion-ordered directed acyclic graph.

    Attributes:
        graph: Forward edges (node -> ordered dependents)
        reverse_graph: Reverse edges (node -> ordered dependencies)
        indegrees: Number of incoming edges for each node
    """

    def __init__(self):
        # dicts with None values double as ordered sets
        self.graph: Dict[T, Dict[T, None]] = {}
        self.reverse_graph: Dict[T, Dict[T, None]] = {}
        self.indegrees: Dict[T, int] = {}

    def add_node(self, node: T) -> None:
        """Add a node to the graph if it doesn't exist."""
        if node not in self.graph:
            self.graph[node] = {}
            self.reverse_graph[node] = {}
            self.indegrees[node] = 0

    def add_edge(self, from_node: T, to_node: T) -> bool:
        """
        Add a directed edge from_node -> to_node.

        This represents: to_node depends on from_node.

        Returns:
            True if the edge was added, False if it already existed

        Raises:
            CircularDependencyError: If adding the edge would create a cycle
        """
        self.add_node(from_node)
        self.add_node(to_node)

        if to_node in self.graph[from_node]:
            return False

        path = self.find_path(to_node, from_node)
        if path is not None:
            raise CircularDependencyError(path + [to_node])

        self.graph[from_node][to_node] = None
        self.reverse_graph[to_node][from_node] = None
        self.indegrees[to_node] += 1
        return True

    def find_path(self, start: T, target: T) -> Optional[List[T]]:
        """
        Find a path from start to target following dependent edges.

        Returns:
            The nodes along the path, both ends included, or None
        """
        if start not in self.graph:
            return None

        parents: Dict[T, Optional[T]] = {start: None}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node == target:
                path = [node]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])
                return list(reversed(path))
            for dependent in self.graph[node]:
                if dependent not in parents:
                    parents[dependent] = node
                    queue.append(dependent)
        return None

    def topological_sort(self) -> List[T]:
        """
        Compute a topological order of the graph (Kahn's algorithm).

        Ties are broken by insertion order of the nodes.

        Raises:
            CircularDependencyError: If the graph contains a cycle
        """
        result = []
        indegrees = dict(self.indegrees)
        queue = deque(node for node, degree in indegrees.items() if degree == 0)

        while queue:
            node = queue.popleft()
            result.append(node)
            for dependent in self.graph[node]:
                indegrees[dependent] -= 1
                if indegrees[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self.graph):
            ordered = set(result)
            remaining = [node for node in self.graph if node not in ordered]
            raise CircularDependencyError(remaining)

        return result

    def descendants(self, node: T) -> List[T]:
        """
        Every node reachable from ``node``, in topological order.
        """
        if node not in self.graph:
            return []

        reachable = set()
        stack = list(self.graph[node])
        while stack:
            current = stack.pop()
            if current not in reachable:
                reachable.add(current)
                stack.extend(self.graph[current])

        return [n for n in self.topological_sort() if n in reachable]

    def get_dependencies(self, node: T) -> List[T]:
        """Nodes the given node depends on, in insertion order."""
        return list(self.reverse_graph.get(node, ()))

    def get_dependents(self, node: T) -> List[T]:
        """Nodes that depend on the given node, in insertion order."""
        return list(self.graph.get(node, ()))

    def __len__(self) -> int:
        return len(self.graph)

    def __contains__(self, node: object) -> bool:
        return node in self.graph

    def __iter__(self):
        return iter(self.graph)

    def __str__(self) -> str:
        edges = sum(len(dependents) for dependents in self.graph.values())
        return f"DependencyGraph(nodes={len(self.graph)}, edges={edges})"
