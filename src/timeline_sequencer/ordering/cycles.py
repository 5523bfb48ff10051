"""Cycle reporting for nodes the scheduler could not emit."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Sequence, Set

from timeline_sequencer.domain.models import EventSnapshot
from timeline_sequencer.ordering.constraint_graph import ConstraintGraph


def detect_cycles(visited: Set[str], events: Sequence[EventSnapshot]) -> tuple[str, ...]:
    """Titles of unvisited events, in input order."""
    return tuple(event.title for event in events if event.identity not in visited)


def find_cycle_paths(
    graph: ConstraintGraph,
    blocked: Set[str],
) -> tuple[tuple[str, ...], ...]:
    """
    One representative closed path per strongly-connected tangle of ``blocked`` nodes.

    Each path starts and ends at the tangle's smallest identity and is a
    shortest cycle through it, e.g. ``("A", "B", "C", "A")``. Other cycles
    overlapping the same tangle are not enumerated. Nodes that are blocked
    only because they sit downstream of a cycle do not appear in any path.
    """
    paths = [
        _shortest_cycle_through(graph, min(component), component)
        for component in strongly_connected_components(graph, blocked)
        if len(component) > 1
    ]
    return tuple(sorted(paths))


def strongly_connected_components(
    graph: ConstraintGraph, nodes: Set[str]
) -> list[frozenset[str]]:
    """Tarjan's algorithm over the subgraph induced by ``nodes``, iteratively."""
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    components: list[frozenset[str]] = []

    def children(node: str) -> Iterator[str]:
        return iter(sorted(child for child in graph.children(node) if child in nodes))

    def enter(node: str) -> None:
        index[node] = low[node] = len(index)
        stack.append(node)
        on_stack.add(node)

    for root in sorted(nodes):
        if root in index:
            continue
        enter(root)
        frames: list[tuple[str, Iterator[str]]] = [(root, children(root))]

        while frames:
            node, pending = frames[-1]
            child = next(pending, None)
            if child is not None:
                if child not in index:
                    enter(child)
                    frames.append((child, children(child)))
                elif child in on_stack:
                    low[node] = min(low[node], index[child])
                continue

            frames.pop()
            if frames:
                parent = frames[-1][0]
                low[parent] = min(low[parent], low[node])
            if low[node] != index[node]:
                continue

            members: set[str] = set()
            while True:
                member = stack.pop()
                on_stack.discard(member)
                members.add(member)
                if member == node:
                    break
            components.append(frozenset(members))

    return components


def _shortest_cycle_through(
    graph: ConstraintGraph, start: str, component: Set[str]
) -> tuple[str, ...]:
    parents: dict[str, str] = {}
    queue: deque[str] = deque([start])
    while queue:
        node = queue.popleft()
        for child in sorted(child for child in graph.children(node) if child in component):
            if child == start:
                path = [node]
                while path[-1] != start:
                    path.append(parents[path[-1]])
                return (*reversed(path), start)
            if child not in parents:
                parents[child] = node
                queue.append(child)
    raise ValueError(f"no cycle passes through {start!r}")


__all__ = ["detect_cycles", "find_cycle_paths", "strongly_connected_components"]
