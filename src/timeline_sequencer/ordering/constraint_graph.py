"""Directed "must precede" graph built from resolved event constraints."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from timeline_sequencer.domain.models import EventSnapshot
from timeline_sequencer.ordering.resolver import IdentityResolver


class ConstraintGraph:
    """Edge ``u -> v`` means event ``u`` must be emitted before event ``v``.

    Nodes keep insertion order. Parallel edges collapse, so ``indegree`` counts
    distinct predecessors rather than the number of constraints stating them.
    """

    __slots__ = ("_nodes", "_children", "_indegree")

    def __init__(
        self,
        nodes: Iterable[str] | None = None,
        edges: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self._nodes: dict[str, None] = {}
        self._children: dict[str, dict[str, None]] = {}
        self._indegree: dict[str, int] = {}

        if nodes is not None:
            for node_id in nodes:
                self.add_node(node_id)

        if edges is not None:
            for parent, child in edges:
                self.add_edge(parent, child)

    @property
    def nodes(self) -> tuple[str, ...]:
        """All node IDs in insertion order."""
        return tuple(self._nodes)

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        """All edges as ``(parent, child)`` pairs in deterministic order."""
        ordered_edges: list[tuple[str, str]] = []
        for parent in sorted(self._nodes):
            for child in sorted(self._children[parent]):
                ordered_edges.append((parent, child))
        return tuple(ordered_edges)

    @property
    def indegree(self) -> dict[str, int]:
        """Copy of the inbound edge count per node."""
        return dict(self._indegree)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def children(self, node_id: str) -> tuple[str, ...]:
        """Direct successors of ``node_id`` in the order their edges were added."""
        self._assert_node_exists(node_id)
        return tuple(self._children[node_id])

    def add_node(self, node_id: str) -> None:
        """Add a node if it does not already exist."""
        self._validate_node_id(node_id)
        if node_id in self._nodes:
            return

        self._nodes[node_id] = None
        self._children[node_id] = {}
        self._indegree[node_id] = 0

    def add_edge(self, parent: str, child: str) -> bool:
        """Add ``parent -> child``; return ``False`` for self-loops and duplicates."""
        self._assert_node_exists(parent)
        self._assert_node_exists(child)

        if parent == child:
            return False
        if child in self._children[parent]:
            return False

        self._children[parent][child] = None
        self._indegree[child] += 1
        return True

    def serialize(self) -> dict[str, object]:
        """Serialize graph to a stable JSON-friendly mapping."""
        return {
            "nodes": sorted(self._nodes),
            "edges": [[parent, child] for parent, child in self.edges],
        }

    @staticmethod
    def _validate_node_id(node_id: str) -> None:
        if not isinstance(node_id, str) or not node_id:
            raise ValueError("Node ID must be a non-empty string.")

    def _assert_node_exists(self, node_id: str) -> None:
        if node_id not in self._nodes:
            raise KeyError(f"Unknown node: {node_id}")


def build_constraint_graph(
    events: Sequence[EventSnapshot],
    resolver: IdentityResolver,
    *,
    logger: Any | None = None,
) -> ConstraintGraph:
    """Create one node per event and one edge per resolved, non-self constraint."""

    graph = ConstraintGraph(nodes=(event.identity for event in events))

    for event in events:
        for raw_reference in event.before:
            target = _resolve(resolver, event, raw_reference, "before", logger)
            if target is not None:
                graph.add_edge(event.identity, target)

        for raw_reference in event.after:
            source = _resolve(resolver, event, raw_reference, "after", logger)
            if source is not None:
                graph.add_edge(source, event.identity)

    return graph


def _resolve(
    resolver: IdentityResolver,
    event: EventSnapshot,
    raw_reference: str,
    relation: str,
    logger: Any | None,
) -> str | None:
    identity = resolver.resolve(raw_reference)
    if identity is None and logger is not None:
        logger.debug(
            "sequencer_reference_unresolved",
            event_identity=event.identity,
            relation=relation,
            reference=raw_reference,
        )
    return identity


__all__ = ["ConstraintGraph", "build_constraint_graph"]
