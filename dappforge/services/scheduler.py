"""
Layered topological scheduling (Kahn's algorithm).

Each round peels every vertex with no unresolved in-edges into a layer.
Within a layer vertices keep their blueprint node order, so execution and
merge order never depend on set iteration order.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from dappforge.errors import CyclicDependencyError
from dappforge.services.graph_builder import DependencyGraph


@dataclass(frozen=True)
class ExecutionPlan:
    layers: tuple[tuple[str, ...], ...]

    @property
    def order(self) -> list[str]:
        return [nid for layer in self.layers for nid in layer]

    def as_lists(self) -> list[list[str]]:
        return [list(layer) for layer in self.layers]


def schedule(graph: DependencyGraph) -> ExecutionPlan:
    """
    Sort the graph into executable layers.

    Raises:
        CyclicDependencyError: naming a shortest cycle among the vertices
            left over once no further progress is possible.
    """
    position = {nid: i for i, nid in enumerate(graph.nodes)}
    in_degree = {nid: len(graph.predecessors[nid]) for nid in graph.nodes}

    layers: list[tuple[str, ...]] = []
    current = [nid for nid in graph.nodes if in_degree[nid] == 0]
    scheduled = 0

    while current:
        layers.append(tuple(current))
        scheduled += len(current)
        ready: set[str] = set()
        for nid in current:
            for downstream in graph.successors[nid]:
                in_degree[downstream] -= 1
                if in_degree[downstream] == 0:
                    ready.add(downstream)
        current = sorted(ready, key=position.__getitem__)

    if scheduled != len(graph.nodes):
        remaining = [nid for nid in graph.nodes if in_degree[nid] > 0]
        raise CyclicDependencyError(find_minimal_cycle(graph, remaining))

    return ExecutionPlan(layers=tuple(layers))


def find_minimal_cycle(graph: DependencyGraph, candidates: list[str]) -> list[str]:
    """
    Shortest cycle through the candidate vertices, via BFS from each one.

    Ties go to the cycle starting at the earliest candidate in blueprint
    order. Returns the cycle's node ids starting from that vertex.
    """
    position = {nid: i for i, nid in enumerate(graph.nodes)}
    allowed = set(candidates)
    best: list[str] = []

    for start in candidates:
        parents: dict[str, str] = {}
        queue: deque[str] = deque([start])
        visited = {start}
        found = False
        while queue and not found:
            nid = queue.popleft()
            for nxt in sorted(graph.successors[nid] & allowed, key=position.__getitem__):
                if nxt == start:
                    cycle = [nid]
                    while cycle[-1] != start:
                        cycle.append(parents[cycle[-1]])
                    cycle.reverse()
                    if not best or len(cycle) < len(best):
                        best = cycle
                    found = True
                    break
                if nxt not in visited:
                    visited.add(nxt)
                    parents[nxt] = nid
                    queue.append(nxt)
        if len(best) == 2:
            # Self-loops are rejected earlier, so two is the shortest possible
            break

    return best or list(candidates)
