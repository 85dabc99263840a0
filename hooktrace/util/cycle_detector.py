"""
hooktrace Cycle Detection - Ordered Incremental Topological Sort
================================================================

Orders a component's memos so each memo is evaluated after the memos named
in its dependency list, and rejects a dependency edge the moment it would
close a cycle.

Unlike a set-based graph, every structure here keeps insertion order, and
ties in the topological order are broken by insertion order. The same
declarations therefore always produce the same evaluation order, which the
deterministic-replay guarantee relies on.

Usage:
    graph = OrderedTopoSort()
    graph.add_edge("total", "label")    # label depends on total
    graph.add_edge("label", "total")    # ValueError: would create a cycle
"""

from collections import deque
from typing import Dict, Generic, Hashable, List, Optional, TypeVar

T = TypeVar("T", bound=Hashable)


class OrderedTopoSort(Generic[T]):
    """
    Directed dependency graph with cycle rejection on insert.

    An edge ``a -> b`` means b depends on a.
    """

    def __init__(self):
        # node -> dependents, node -> dependencies; dicts used as ordered sets
        self.graph: Dict[T, Dict[T, None]] = {}
        self.reverse_graph: Dict[T, Dict[T, None]] = {}

    def add_node(self, node: T) -> None:
        if node not in self.graph:
            self.graph[node] = {}
            self.reverse_graph[node] = {}

    def add_edge(self, from_node: T, to_node: T) -> None:
        """
        Record that ``to_node`` depends on ``from_node``.

        Raises:
            ValueError: If the edge would create a cycle. The message names
                the path that closes it.
        """
        self.add_node(from_node)
        self.add_node(to_node)

        if to_node in self.graph[from_node]:
            return

        path = self._path(to_node, from_node)
        if path is not None:
            chain = " -> ".join(str(node) for node in path + [to_node])
            raise ValueError(
                f"Adding edge {from_node} -> {to_node} would create a cycle: {chain}"
            )

        self.graph[from_node][to_node] = None
        self.reverse_graph[to_node][from_node] = None

    def topological_sort(self) -> List[T]:
        """Kahn's algorithm with insertion-order tie breaking."""
        indegrees = {node: len(deps) for node, deps in self.reverse_graph.items()}
        queue = deque(node for node in self.graph if indegrees[node] == 0)
        result = []

        while queue:
            node = queue.popleft()
            result.append(node)
            for dependent in self.graph[node]:
                indegrees[dependent] -= 1
                if indegrees[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self.graph):
            raise ValueError("Graph contains cycles")
        return result

    def _path(self, start: T, target: T) -> Optional[List[T]]:
        """Return a path from start to target along dependent edges, if any."""
        stack = [(start, [start])]
        visited = set()
        while stack:
            node, path = stack.pop()
            if node == target:
                return path
            if node in visited:
                continue
            visited.add(node)
            for dependent in self.graph.get(node, {}):
                stack.append((dependent, path + [dependent]))
        return None

    def __len__(self) -> int:
        return len(self.graph)

    def __contains__(self, node: T) -> bool:
        return node in self.graph

    def __str__(self) -> str:
        edges = sum(len(dependents) for dependents in self.graph.values())
        return f"OrderedTopoSort(nodes={len(self.graph)}, edges={edges})"
