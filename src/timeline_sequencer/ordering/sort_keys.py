"""Spaced sort-key assignment from emission rank."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from timeline_sequencer.constants import DEFAULT_KEY_STEP
from timeline_sequencer.domain.models import EventSnapshot, KeyAssignment


def sort_key_for_rank(rank: int, *, key_step: int = DEFAULT_KEY_STEP) -> int:
    """Rank 0 maps to ``key_step``, rank 1 to ``2 * key_step``, and so on."""
    if rank < 0:
        raise ValueError("rank must be >= 0")
    return (rank + 1) * validate_key_step(key_step)


def validate_key_step(key_step: int) -> int:
    if isinstance(key_step, bool) or not isinstance(key_step, int):
        raise ValueError(f"key_step must be an integer, got {type(key_step).__name__}")
    if key_step <= 0:
        raise ValueError("key_step must be > 0")
    return key_step


def assign_sort_keys(
    order: Sequence[str],
    events_by_identity: Mapping[str, EventSnapshot],
    *,
    key_step: int = DEFAULT_KEY_STEP,
) -> tuple[KeyAssignment, ...]:
    """Assign one key per emitted identity, remembering each event's previous key."""

    step = validate_key_step(key_step)
    assignments: list[KeyAssignment] = []
    for rank, identity in enumerate(order):
        event = events_by_identity[identity]
        assignments.append(
            KeyAssignment(
                identity=identity,
                title=event.title,
                rank=rank,
                sort_key=(rank + 1) * step,
                previous_sort_key=event.current_sort_key,
            )
        )
    return tuple(assignments)


def changed_assignments(assignments: Sequence[KeyAssignment]) -> tuple[KeyAssignment, ...]:
    """Only the assignments whose key differs from the persisted one."""
    return tuple(item for item in assignments if item.changed)


__all__ = [
    "assign_sort_keys",
    "changed_assignments",
    "sort_key_for_rank",
    "validate_key_step",
]
