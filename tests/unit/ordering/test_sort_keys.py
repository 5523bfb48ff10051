"""Unit tests for ordering.sort_keys."""

from __future__ import annotations

import pytest

from timeline_sequencer.domain.models import EventSnapshot
from timeline_sequencer.ordering.sort_keys import (
    assign_sort_keys,
    changed_assignments,
    sort_key_for_rank,
    validate_key_step,
)


def test_keys_are_spaced_from_rank() -> None:
    assert [sort_key_for_rank(rank) for rank in range(4)] == [10, 20, 30, 40]
    assert sort_key_for_rank(2, key_step=5) == 15
    with pytest.raises(ValueError):
        sort_key_for_rank(-1)


@pytest.mark.parametrize("step", [0, -10, True, 2.5])
def test_invalid_key_step_is_rejected(step: object) -> None:
    with pytest.raises(ValueError):
        validate_key_step(step)  # type: ignore[arg-type]


def test_assign_sort_keys_records_previous_keys() -> None:
    events = {
        "a": EventSnapshot(identity="a", title="A", current_sort_key=10),
        "b": EventSnapshot(identity="b", title="B", current_sort_key=10),
        "c": EventSnapshot(identity="c", title="C"),
    }

    assignments = assign_sort_keys(("a", "b", "c"), events)

    assert [(item.identity, item.rank, item.sort_key) for item in assignments] == [
        ("a", 0, 10),
        ("b", 1, 20),
        ("c", 2, 30),
    ]
    assert [item.identity for item in changed_assignments(assignments)] == ["b", "c"]


def test_unemitted_events_receive_no_key() -> None:
    events = {
        "a": EventSnapshot(identity="a", title="A"),
        "blocked": EventSnapshot(identity="blocked", title="Blocked", current_sort_key=99),
    }

    assignments = assign_sort_keys(("a",), events)

    assert [item.identity for item in assignments] == ["a"]
