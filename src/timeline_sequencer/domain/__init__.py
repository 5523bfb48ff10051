"""Domain models shared by the ordering pipeline and its collaborators."""

from timeline_sequencer.domain.models import (
    ClearResult,
    EventSnapshot,
    KeyAssignment,
    SortOrderResult,
    ensure_unique_identities,
)

__all__ = [
    "ClearResult",
    "EventSnapshot",
    "KeyAssignment",
    "SortOrderResult",
    "ensure_unique_identities",
]
