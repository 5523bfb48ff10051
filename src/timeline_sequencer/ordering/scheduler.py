"""Deterministic Kahn traversal with date-or-title tie-breaking."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from heapq import heapify, heappop, heappush

from timeline_sequencer.domain.models import EventSnapshot
from timeline_sequencer.ordering.constraint_graph import ConstraintGraph

# (undated flag, date, title, identity, input index)
ReadyKey = tuple[int, str, str, str, int]


@dataclass(frozen=True, slots=True)
class Schedule:
    """Emission order plus the set of nodes the traversal reached."""

    order: tuple[str, ...]
    visited: frozenset[str]


def date_or_title_key(event: EventSnapshot, input_index: int) -> ReadyKey:
    """Sort key realising the date-or-title order.

    Dated events come first, ordered by their date string; undated events
    follow, ordered by title. Both comparisons are ordinal and case-sensitive.
    Ties fall back to the identity, then to input position.
    """

    if event.date is not None:
        return (0, event.date, "", event.identity, input_index)
    return (1, "", event.title, event.identity, input_index)


def schedule(events: Sequence[EventSnapshot], graph: ConstraintGraph) -> Schedule:
    """Emit every node reachable by repeatedly taking the smallest ready event.

    Nodes blocked by a cycle are never emitted; callers read them off as
    ``graph.nodes`` minus ``Schedule.visited``.
    """

    keys: dict[str, ReadyKey] = {
        event.identity: date_or_title_key(event, index) for index, event in enumerate(events)
    }
    indegree = graph.indegree

    ready: list[tuple[ReadyKey, str]] = [
        (keys[node], node) for node in graph.nodes if indegree[node] == 0
    ]
    heapify(ready)

    order: list[str] = []
    visited: set[str] = set()
    while ready:
        _, node = heappop(ready)
        if node in visited:
            continue
        visited.add(node)
        order.append(node)

        for child in graph.children(node):
            indegree[child] -= 1
            if indegree[child] == 0 and child not in visited:
                heappush(ready, (keys[child], child))

    return Schedule(order=tuple(order), visited=frozenset(visited))


__all__ = ["ReadyKey", "Schedule", "date_or_title_key", "schedule"]
