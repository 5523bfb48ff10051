"""Dict-backed sort-key sink."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Literal

from timeline_sequencer.domain.models import EventSnapshot
from timeline_sequencer.persistence.base import SortKeyWriteError


@dataclass(frozen=True, slots=True)
class SinkCall:
    operation: Literal["commit", "clear"]
    identity: str
    sort_key: int | None = None


class InMemorySortKeyStore:
    """Sort keys kept in a dict, with a call journal and failure injection.

    ``failures`` maps an identity to the reason every write for it should
    fail with.
    """

    def __init__(
        self,
        initial: Mapping[str, int] | None = None,
        *,
        failures: Mapping[str, str] | None = None,
    ) -> None:
        self._keys: dict[str, int] = dict(initial or {})
        self._failures: dict[str, str] = dict(failures or {})
        self._calls: list[SinkCall] = []

    @property
    def keys(self) -> dict[str, int]:
        return dict(self._keys)

    @property
    def calls(self) -> tuple[SinkCall, ...]:
        return tuple(self._calls)

    def fail_for(self, identity: str, reason: str) -> None:
        self._failures[identity] = reason

    async def commit_sort_key(self, identity: str, sort_key: int) -> None:
        self._calls.append(SinkCall(operation="commit", identity=identity, sort_key=sort_key))
        self._raise_if_failing(identity)
        self._keys[identity] = sort_key

    async def clear_sort_key(self, identity: str) -> None:
        self._calls.append(SinkCall(operation="clear", identity=identity))
        self._raise_if_failing(identity)
        self._keys.pop(identity, None)

    def snapshot_events(self, events: Iterable[EventSnapshot]) -> tuple[EventSnapshot, ...]:
        """Return ``events`` with ``current_sort_key`` refreshed from the store."""
        return tuple(
            replace(event, current_sort_key=self._keys.get(event.identity)) for event in events
        )

    def _raise_if_failing(self, identity: str) -> None:
        reason = self._failures.get(identity)
        if reason is not None:
            raise SortKeyWriteError(identity, reason)


__all__ = ["InMemorySortKeyStore", "SinkCall"]
