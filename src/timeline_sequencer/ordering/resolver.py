"""Reference-to-identity resolution over four alias spaces."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath
from typing import Final

from timeline_sequencer.constants import DEFAULT_NOTE_EXTENSION
from timeline_sequencer.domain.models import EventSnapshot

_LINK_OPEN: Final[str] = "[["
_LINK_CLOSE: Final[str] = "]]"
_DISPLAY_SEPARATOR: Final[str] = "|"


class AliasSpace(StrEnum):
    """Alias tables in lookup precedence order."""

    IDENTITY = "identity"
    PATH = "path"
    PATH_WITHOUT_EXTENSION = "path_without_extension"
    FILENAME = "filename"


_PRECEDENCE: Final[tuple[AliasSpace, ...]] = (
    AliasSpace.IDENTITY,
    AliasSpace.PATH,
    AliasSpace.PATH_WITHOUT_EXTENSION,
    AliasSpace.FILENAME,
)


@dataclass(frozen=True, slots=True)
class AmbiguousAlias:
    """An alias claimed by more than one event inside a single alias space."""

    alias: str
    space: AliasSpace
    identities: tuple[str, ...]


def normalize_reference(raw_reference: str) -> str:
    """Strip wikilink brackets, a ``|label`` suffix, and surrounding whitespace."""

    text = raw_reference.strip()
    if text.startswith(_LINK_OPEN):
        text = text[len(_LINK_OPEN) :]
    if text.endswith(_LINK_CLOSE):
        text = text[: -len(_LINK_CLOSE)]
    target, _, _ = text.partition(_DISPLAY_SEPARATOR)
    return target.strip()


class IdentityResolver:
    """Exact-match lookup from raw reference strings to event identities.

    Each event registers up to four aliases: its identity, its full path, its
    path without the note extension, and its bare filename. Lookups walk the
    alias spaces in precedence order and return the first hit. An alias that
    two events share within one space is ambiguous there and never resolves
    from that space.
    """

    __slots__ = ("_tables", "_ambiguous", "_note_extension")

    def __init__(
        self,
        events: Iterable[EventSnapshot],
        *,
        note_extension: str = DEFAULT_NOTE_EXTENSION,
    ) -> None:
        self._note_extension = note_extension
        claims: dict[AliasSpace, dict[str, list[str]]] = {space: {} for space in _PRECEDENCE}

        for event in events:
            for space, alias in self._aliases_for(event):
                owners = claims[space].setdefault(alias, [])
                if event.identity not in owners:
                    owners.append(event.identity)

        self._tables: dict[AliasSpace, dict[str, str]] = {}
        ambiguous: list[AmbiguousAlias] = []
        for space in _PRECEDENCE:
            table: dict[str, str] = {}
            for alias, owners in claims[space].items():
                if len(owners) == 1:
                    table[alias] = owners[0]
                else:
                    ambiguous.append(
                        AmbiguousAlias(alias=alias, space=space, identities=tuple(owners))
                    )
            self._tables[space] = table
        self._ambiguous = tuple(ambiguous)

    @property
    def ambiguous_aliases(self) -> tuple[AmbiguousAlias, ...]:
        """Aliases dropped from a space because several events claim them."""
        return self._ambiguous

    def table(self, space: AliasSpace) -> Mapping[str, str]:
        return dict(self._tables[space])

    def resolve(self, raw_reference: str) -> str | None:
        """Return the identity ``raw_reference`` names, or ``None`` when unresolved."""

        reference = normalize_reference(raw_reference)
        if not reference:
            return None
        for space in _PRECEDENCE:
            identity = self._tables[space].get(reference)
            if identity is not None:
                return identity
        return None

    def _aliases_for(self, event: EventSnapshot) -> list[tuple[AliasSpace, str]]:
        aliases: list[tuple[AliasSpace, str]] = [(AliasSpace.IDENTITY, event.identity)]
        if event.path is None:
            return aliases

        aliases.append((AliasSpace.PATH, event.path))
        without_extension = _strip_extension(event.path, self._note_extension)
        aliases.append((AliasSpace.PATH_WITHOUT_EXTENSION, without_extension))
        filename = PurePosixPath(without_extension).name
        if filename:
            aliases.append((AliasSpace.FILENAME, filename))
        return aliases


def _strip_extension(path: str, extension: str) -> str:
    if extension and path.endswith(extension):
        return path[: -len(extension)]
    return path


__all__ = [
    "AliasSpace",
    "AmbiguousAlias",
    "IdentityResolver",
    "normalize_reference",
]
