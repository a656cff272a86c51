"""
Reachability over a workflow graph.

Traversals are iterative over explicit adjacency lists with a visited set,
so they terminate after at most one visit per node even when handed a
malformed (cyclic) edge list. Results depend only on connectivity, never
on edge insertion order.
"""

from collections import deque
from typing import Dict, Iterable, List, Set

from ..exceptions import CycleError
from .models import WorkflowEdge, WorkflowNode


def adjacency(edges: Iterable[WorkflowEdge], reverse: bool = False) -> Dict[str, List[str]]:
    """``source -> [targets]``, or ``target -> [sources]`` when ``reverse``."""
    adj: Dict[str, List[str]] = {}
    for edge in edges:
        src, dest = (edge.target, edge.source) if reverse else (edge.source, edge.target)
        adj.setdefault(src, []).append(dest)
    return adj


def _reach(start: str, adj: Dict[str, List[str]]) -> Set[str]:
    visited: Set[str] = set()
    stack = list(adj.get(start, []))
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        stack.extend(n for n in adj.get(current, []) if n not in visited)
    visited.discard(start)
    return visited


def is_reachable(source: str, target: str, edges: Iterable[WorkflowEdge]) -> bool:
    """Whether ``target`` can be reached from ``source`` following edge direction."""
    if source == target:
        return True
    return target in _reach(source, adjacency(edges))


def upstream_ids(node_id: str, edges: Iterable[WorkflowEdge]) -> Set[str]:
    return _reach(node_id, adjacency(edges, reverse=True))


def downstream_ids(node_id: str, edges: Iterable[WorkflowEdge]) -> Set[str]:
    return _reach(node_id, adjacency(edges))


def upstream_of(node_id: str, graph) -> Set[WorkflowNode]:
    """Every node from which ``node_id`` is reachable. Never includes the node itself."""
    ids = upstream_ids(node_id, graph.edges)
    return {n for n in graph.nodes if n.id in ids}


def downstream_of(node_id: str, graph) -> Set[WorkflowNode]:
    """Every node reachable from ``node_id``. Never includes the node itself."""
    ids = downstream_ids(node_id, graph.edges)
    return {n for n in graph.nodes if n.id in ids}


def topological_order(graph) -> List[WorkflowNode]:
    """Kahn's algorithm; nodes released together keep insertion order."""
    nodes = list(graph.nodes)
    node_ids = {n.id for n in nodes}
    indegree = {n.id: 0 for n in nodes}
    adj = adjacency(e for e in graph.edges if e.source in node_ids and e.target in node_ids)
    for targets in adj.values():
        for dest in targets:
            indegree[dest] += 1

    position = {n.id: i for i, n in enumerate(nodes)}
    by_id = {n.id: n for n in nodes}
    queue = deque(n.id for n in nodes if indegree[n.id] == 0)
    ordered: List[WorkflowNode] = []
    while queue:
        current = queue.popleft()
        ordered.append(by_id[current])
        ready = []
        for neighbor in adj.get(current, []):
            indegree[neighbor] -= 1
            if indegree[neighbor] == 0:
                ready.append(neighbor)
        queue.extend(sorted(ready, key=position.__getitem__))

    if len(ordered) != len(nodes):
        stuck = [n for n, deg in indegree.items() if deg > 0]
        raise CycleError(stuck[0], stuck[-1])
    return ordered
