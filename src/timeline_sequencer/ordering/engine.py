"""
Ordering pipeline: resolve, build graph, schedule, report cycles, assign keys.

The engine is pure up to ``plan()``. ``apply_plan()`` and ``clear()`` are the
only operations that touch storage; they await each sink call to completion
before starting the next one, so failure accounting and write order are both
deterministic.

Diagnostics go to the injected ``logger`` (any structlog-compatible object),
never to a process-wide logger configured here.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from timeline_sequencer.constants import DEFAULT_KEY_STEP, DEFAULT_NOTE_EXTENSION
from timeline_sequencer.domain.models import (
    ClearResult,
    EventSnapshot,
    JSONValue,
    KeyAssignment,
    SortOrderResult,
    ensure_unique_identities,
)
from timeline_sequencer.ordering.constraint_graph import ConstraintGraph, build_constraint_graph
from timeline_sequencer.ordering.cycles import detect_cycles, find_cycle_paths
from timeline_sequencer.ordering.resolver import AmbiguousAlias, IdentityResolver
from timeline_sequencer.ordering.scheduler import schedule
from timeline_sequencer.ordering.sort_keys import (
    assign_sort_keys,
    changed_assignments,
    validate_key_step,
)
from timeline_sequencer.persistence.base import SortKeySink, SortKeyWriteError


@dataclass(frozen=True, slots=True)
class OrderingPlan:
    """Everything one run decided, before anything is written."""

    order: tuple[str, ...]
    assignments: tuple[KeyAssignment, ...]
    cycle_events: tuple[str, ...]
    cycle_paths: tuple[tuple[str, ...], ...]
    ambiguous_aliases: tuple[AmbiguousAlias, ...]
    graph: ConstraintGraph

    @classmethod
    def empty(cls) -> OrderingPlan:
        return cls(
            order=(),
            assignments=(),
            cycle_events=(),
            cycle_paths=(),
            ambiguous_aliases=(),
            graph=ConstraintGraph(),
        )

    @property
    def changed(self) -> tuple[KeyAssignment, ...]:
        return changed_assignments(self.assignments)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "order": list(self.order),
            "assignments": [item.to_dict() for item in self.assignments],
            "changed_count": len(self.changed),
            "cycle_events": list(self.cycle_events),
            "cycle_paths": [list(path) for path in self.cycle_paths],
            "ambiguous_aliases": [
                {
                    "alias": item.alias,
                    "space": item.space.value,
                    "identities": list(item.identities),
                }
                for item in self.ambiguous_aliases
            ],
        }


class SortOrderEngine:
    """Compute a deterministic event order and persist spaced sort keys."""

    def __init__(
        self,
        sink: SortKeySink,
        *,
        key_step: int = DEFAULT_KEY_STEP,
        note_extension: str = DEFAULT_NOTE_EXTENSION,
        logger: Any | None = None,
    ) -> None:
        self._sink = sink
        self._key_step = validate_key_step(key_step)
        self._note_extension = note_extension
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def key_step(self) -> int:
        return self._key_step

    def plan(self, events: Sequence[EventSnapshot]) -> OrderingPlan:
        """Run every pure stage and return the resulting plan."""

        snapshot = tuple(events)
        ensure_unique_identities(snapshot)
        if not snapshot:
            return OrderingPlan.empty()

        resolver = IdentityResolver(snapshot, note_extension=self._note_extension)
        for ambiguous in resolver.ambiguous_aliases:
            self._logger.warning(
                "sequencer_alias_ambiguous",
                alias=ambiguous.alias,
                space=ambiguous.space.value,
                identities=list(ambiguous.identities),
            )

        graph = build_constraint_graph(snapshot, resolver, logger=self._logger)
        outcome = schedule(snapshot, graph)

        cycle_events = detect_cycles(outcome.visited, snapshot)
        cycle_paths: tuple[tuple[str, ...], ...] = ()
        if cycle_events:
            blocked = frozenset(graph.nodes) - outcome.visited
            cycle_paths = find_cycle_paths(graph, blocked)
            self._logger.warning(
                "sequencer_cycles_detected",
                count=len(cycle_events),
                events=list(cycle_events),
                paths=[list(path) for path in cycle_paths],
            )

        events_by_identity = {event.identity: event for event in snapshot}
        assignments = assign_sort_keys(
            outcome.order, events_by_identity, key_step=self._key_step
        )
        return OrderingPlan(
            order=outcome.order,
            assignments=assignments,
            cycle_events=cycle_events,
            cycle_paths=cycle_paths,
            ambiguous_aliases=resolver.ambiguous_aliases,
            graph=graph,
        )

    async def apply(self, events: Sequence[EventSnapshot]) -> SortOrderResult:
        """Plan and commit in one step."""
        return await self.apply_plan(self.plan(events))

    async def apply_plan(self, plan: OrderingPlan) -> SortOrderResult:
        """Commit every changed key; a failed write never stops the rest."""

        updated_count = 0
        errors: list[str] = []
        for assignment in plan.changed:
            try:
                await self._sink.commit_sort_key(assignment.identity, assignment.sort_key)
            except SortKeyWriteError as exc:
                errors.append(f"Failed to update {assignment.title}: {exc.reason}")
                self._logger.error(
                    "sequencer_write_failed",
                    event_identity=assignment.identity,
                    title=assignment.title,
                    sort_key=assignment.sort_key,
                    reason=exc.reason,
                )
                continue
            updated_count += 1

        self._logger.info(
            "sequencer_order_applied",
            event_count=len(plan.graph),
            updated_count=updated_count,
            cycle_count=len(plan.cycle_events),
            error_count=len(errors),
        )
        return SortOrderResult(
            updated_count=updated_count,
            cycle_events=plan.cycle_events,
            errors=tuple(errors),
        )

    async def clear(self, events: Sequence[EventSnapshot]) -> ClearResult:
        """Remove persisted keys from every event that currently has one."""

        snapshot = tuple(events)
        ensure_unique_identities(snapshot)

        cleared_count = 0
        errors: list[str] = []
        for event in snapshot:
            if event.current_sort_key is None:
                continue
            try:
                await self._sink.clear_sort_key(event.identity)
            except SortKeyWriteError as exc:
                errors.append(f"Failed to clear {event.title}: {exc.reason}")
                self._logger.error(
                    "sequencer_clear_failed",
                    event_identity=event.identity,
                    title=event.title,
                    reason=exc.reason,
                )
                continue
            cleared_count += 1

        self._logger.info(
            "sequencer_order_cleared",
            event_count=len(snapshot),
            cleared_count=cleared_count,
            error_count=len(errors),
        )
        return ClearResult(cleared_count=cleared_count, errors=tuple(errors))


__all__ = ["OrderingPlan", "SortOrderEngine"]
