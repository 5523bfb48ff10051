"""Dataclass domain models for one ordering run."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import NoReturn

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _as_str(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    cleaned = value.strip()
    if not cleaned:
        _fail(path, "must not be empty")
    return cleaned


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, Iterable):
        _fail(path, f"expected sequence of strings, got {type(value).__name__}")
    items: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            _fail(f"{path}[{index}]", f"expected string, got {type(item).__name__}")
        items.append(item)
    return tuple(items)


def _as_optional_sort_key(value: object, path: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    return value


@dataclass(frozen=True, slots=True)
class EventSnapshot:
    """Read-only view of one event for the duration of an ordering run.

    ``before`` lists references this event must precede; ``after`` lists
    references it must follow. ``path`` is the vault-relative note path used
    for path-style references and may be absent for purely in-memory events.
    """

    identity: str
    title: str
    date: str | None = None
    before: tuple[str, ...] = ()
    after: tuple[str, ...] = ()
    current_sort_key: int | None = None
    path: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity", _as_str(self.identity, "identity"))
        object.__setattr__(self, "title", _as_str(self.title, "title"))
        object.__setattr__(self, "date", _as_optional_str(self.date, "date"))
        object.__setattr__(self, "before", _as_str_tuple(self.before, "before"))
        object.__setattr__(self, "after", _as_str_tuple(self.after, "after"))
        object.__setattr__(
            self,
            "current_sort_key",
            _as_optional_sort_key(self.current_sort_key, "current_sort_key"),
        )
        object.__setattr__(self, "path", _as_optional_str(self.path, "path"))

    @property
    def is_dated(self) -> bool:
        return self.date is not None


@dataclass(frozen=True, slots=True)
class KeyAssignment:
    """Sort key computed for one emitted event."""

    identity: str
    title: str
    rank: int
    sort_key: int
    previous_sort_key: int | None = None

    @property
    def changed(self) -> bool:
        return self.previous_sort_key != self.sort_key

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "identity": self.identity,
            "title": self.title,
            "rank": self.rank,
            "sort_key": self.sort_key,
            "previous_sort_key": self.previous_sort_key,
            "changed": self.changed,
        }


@dataclass(frozen=True, slots=True)
class SortOrderResult:
    """Outcome of one ordering run."""

    updated_count: int = 0
    cycle_events: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "updatedCount": self.updated_count,
            "cycleEvents": list(self.cycle_events),
            "errors": list(self.errors),
        }


@dataclass(frozen=True, slots=True)
class ClearResult:
    """Outcome of clearing persisted sort keys."""

    cleared_count: int = 0
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "clearedCount": self.cleared_count,
            "errors": list(self.errors),
        }


def ensure_unique_identities(events: Sequence[EventSnapshot]) -> None:
    """Reject snapshot collections that reuse an identity."""

    seen: dict[str, int] = {}
    for index, event in enumerate(events):
        if not isinstance(event, EventSnapshot):
            _fail(f"events[{index}]", f"expected EventSnapshot, got {type(event).__name__}")
        first = seen.get(event.identity)
        if first is not None:
            _fail(
                f"events[{index}].identity",
                f"duplicate identity {event.identity!r} (first seen at events[{first}])",
            )
        seen[event.identity] = index


__all__ = [
    "ClearResult",
    "EventSnapshot",
    "JSONScalar",
    "JSONValue",
    "KeyAssignment",
    "SortOrderResult",
    "ensure_unique_identities",
]
