"""Persistence sink contract for committing and clearing sort keys."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class SortKeyWriteError(RuntimeError):
    """Raised by a sink when one commit or clear could not be stored."""

    def __init__(self, identity: str, reason: str) -> None:
        self.identity = identity
        self.reason = reason
        super().__init__(reason)


@runtime_checkable
class SortKeySink(Protocol):
    """Storage capability the ordering engine writes through.

    Implementations map identities back to durable storage and own any
    format-specific encoding. Each call either completes or raises
    ``SortKeyWriteError``.
    """

    async def commit_sort_key(self, identity: str, sort_key: int) -> None: ...

    async def clear_sort_key(self, identity: str) -> None: ...


__all__ = ["SortKeySink", "SortKeyWriteError"]
