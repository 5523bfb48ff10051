"""
Ordering layer: identity resolution, constraint graph, scheduling, cycle
reporting, and sort-key assignment.

Stages run over an immutable snapshot and build fresh working structures
every run; only ``SortOrderEngine.apply_plan`` and ``SortOrderEngine.clear``
reach storage.
"""

from timeline_sequencer.ordering.constraint_graph import ConstraintGraph, build_constraint_graph
from timeline_sequencer.ordering.cycles import detect_cycles, find_cycle_paths
from timeline_sequencer.ordering.engine import OrderingPlan, SortOrderEngine
from timeline_sequencer.ordering.resolver import (
    AliasSpace,
    AmbiguousAlias,
    IdentityResolver,
    normalize_reference,
)
from timeline_sequencer.ordering.scheduler import Schedule, date_or_title_key, schedule
from timeline_sequencer.ordering.sort_keys import (
    assign_sort_keys,
    changed_assignments,
    sort_key_for_rank,
)

__all__ = [
    "AliasSpace",
    "AmbiguousAlias",
    "ConstraintGraph",
    "IdentityResolver",
    "OrderingPlan",
    "Schedule",
    "SortOrderEngine",
    "assign_sort_keys",
    "build_constraint_graph",
    "changed_assignments",
    "date_or_title_key",
    "detect_cycles",
    "find_cycle_paths",
    "normalize_reference",
    "schedule",
    "sort_key_for_rank",
]
