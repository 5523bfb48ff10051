"""Markdown vault adapter: load event notes and persist sort keys in frontmatter.

A note is an event when its leading YAML frontmatter block carries the
configured type marker (``cr_type: event`` by default). Sort keys are stored
as a plain integer field (``sort_order`` by default); writes re-serialize the
frontmatter block with ``yaml.safe_dump`` and keep the note body verbatim.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any, Final, TypeAlias, cast

import structlog
import yaml

from timeline_sequencer.constants import (
    DEFAULT_IDENTITY_FIELD,
    DEFAULT_NOTE_EXTENSION,
    DEFAULT_SORT_KEY_FIELD,
    DEFAULT_TYPE_FIELD,
    DEFAULT_TYPE_VALUE,
)
from timeline_sequencer.domain.models import EventSnapshot
from timeline_sequencer.persistence.base import SortKeyWriteError

PathLike: TypeAlias = str | os.PathLike[str]
Frontmatter: TypeAlias = dict[str, Any]

_DELIMITER: Final[str] = "---"
_CLOSING_DELIMITERS: Final[frozenset[str]] = frozenset({"---", "..."})


class FrontmatterError(ValueError):
    """Raised when a note's frontmatter block cannot be parsed."""


def split_frontmatter(text: str) -> tuple[Frontmatter | None, str]:
    """Split ``text`` into its parsed frontmatter mapping and the remaining body.

    Returns ``(None, text)`` when the note has no frontmatter block.
    """

    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != _DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() not in _CLOSING_DELIMITERS:
            continue
        raw = "".join(lines[1:index])
        body = "".join(lines[index + 1 :])
        try:
            loaded = cast("object", yaml.safe_load(raw)) if raw.strip() else {}
        except yaml.YAMLError as exc:
            raise FrontmatterError(f"invalid YAML frontmatter ({exc})") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise FrontmatterError(
                f"frontmatter must be a mapping, got {type(loaded).__name__}"
            )
        return cast("Frontmatter", loaded), body

    raise FrontmatterError("unterminated frontmatter block")


def render_frontmatter(frontmatter: Mapping[str, object], body: str) -> str:
    """Render a frontmatter mapping followed by ``body``."""

    rendered = yaml.safe_dump(
        dict(frontmatter),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=120,
    )
    if not rendered.endswith("\n"):
        rendered = rendered + "\n"
    return f"{_DELIMITER}\n{rendered}{_DELIMITER}\n{body}"


class MarkdownEventVault:
    """Event loader and ``SortKeySink`` over a directory of Markdown notes."""

    def __init__(
        self,
        root: PathLike,
        *,
        events_folder: str = "",
        note_extension: str = DEFAULT_NOTE_EXTENSION,
        identity_field: str = DEFAULT_IDENTITY_FIELD,
        type_field: str = DEFAULT_TYPE_FIELD,
        type_value: str = DEFAULT_TYPE_VALUE,
        sort_key_field: str = DEFAULT_SORT_KEY_FIELD,
        logger: Any | None = None,
    ) -> None:
        if not note_extension.startswith("."):
            raise ValueError("note_extension must start with '.'")
        self._root = Path(root)
        self._events_folder = events_folder.strip().strip("/")
        self._note_extension = note_extension
        self._identity_field = identity_field
        self._type_field = type_field
        self._type_value = type_value
        self._sort_key_field = sort_key_field
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._paths_by_identity: dict[str, Path] = {}

    @property
    def root(self) -> Path:
        return self._root

    @property
    def note_extension(self) -> str:
        return self._note_extension

    def load_events(self) -> tuple[EventSnapshot, ...]:
        """Scan the vault and build one snapshot per event note.

        Notes are visited in vault-relative path order. Notes with malformed
        frontmatter, or event notes without an identity, are skipped with a
        warning. A second note claiming an already-seen identity is skipped
        the same way so the snapshot never reuses an identity.
        """

        search_root = self._root / self._events_folder if self._events_folder else self._root
        if not self._root.is_dir():
            raise NotADirectoryError(f"vault root is not a directory: {self._root}")
        if not search_root.is_dir():
            raise NotADirectoryError(f"events folder is not a directory: {search_root}")

        note_paths = sorted(
            (path for path in search_root.rglob(f"*{self._note_extension}") if path.is_file()),
            key=lambda path: path.relative_to(self._root).as_posix(),
        )

        events: list[EventSnapshot] = []
        paths_by_identity: dict[str, Path] = {}
        for note_path in note_paths:
            relative = note_path.relative_to(self._root).as_posix()
            try:
                frontmatter, _ = split_frontmatter(note_path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, FrontmatterError) as exc:
                self._logger.warning("vault_note_unreadable", path=relative, reason=str(exc))
                continue
            if frontmatter is None or not self._is_event(frontmatter):
                continue

            try:
                event = self._snapshot_from(frontmatter, relative, note_path.stem)
            except ValueError as exc:
                self._logger.warning("vault_event_invalid", path=relative, reason=str(exc))
                continue

            if event.identity in paths_by_identity:
                self._logger.warning(
                    "vault_identity_duplicate",
                    path=relative,
                    identity=event.identity,
                    first_path=paths_by_identity[event.identity]
                    .relative_to(self._root)
                    .as_posix(),
                )
                continue

            paths_by_identity[event.identity] = note_path
            events.append(event)

        self._paths_by_identity = paths_by_identity
        self._logger.info("vault_events_loaded", root=str(self._root), event_count=len(events))
        return tuple(events)

    async def commit_sort_key(self, identity: str, sort_key: int) -> None:
        def mutate(frontmatter: Frontmatter) -> None:
            frontmatter[self._sort_key_field] = sort_key

        await asyncio.to_thread(self._rewrite, identity, mutate)

    async def clear_sort_key(self, identity: str) -> None:
        def mutate(frontmatter: Frontmatter) -> None:
            frontmatter.pop(self._sort_key_field, None)

        await asyncio.to_thread(self._rewrite, identity, mutate)

    def _rewrite(self, identity: str, mutate: Callable[[Frontmatter], None]) -> None:
        note_path = self._paths_by_identity.get(identity)
        if note_path is None:
            raise SortKeyWriteError(identity, f"no note loaded for identity {identity!r}")

        try:
            text = note_path.read_text(encoding="utf-8")
            frontmatter, body = split_frontmatter(text)
        except (OSError, UnicodeDecodeError, FrontmatterError) as exc:
            raise SortKeyWriteError(identity, str(exc)) from exc
        if frontmatter is None:
            raise SortKeyWriteError(identity, f"{note_path.name} has no frontmatter block")

        mutate(frontmatter)
        try:
            note_path.write_text(render_frontmatter(frontmatter, body), encoding="utf-8")
        except (OSError, yaml.YAMLError) as exc:
            raise SortKeyWriteError(identity, str(exc)) from exc

    def _is_event(self, frontmatter: Mapping[str, object]) -> bool:
        return frontmatter.get(self._type_field) == self._type_value

    def _snapshot_from(
        self,
        frontmatter: Mapping[str, object],
        relative_path: str,
        stem: str,
    ) -> EventSnapshot:
        identity = frontmatter.get(self._identity_field)
        if not isinstance(identity, str) or not identity.strip():
            raise ValueError(f"missing {self._identity_field!r}")

        raw_title = frontmatter.get("title")
        title = raw_title if isinstance(raw_title, str) and raw_title.strip() else stem

        return EventSnapshot(
            identity=identity,
            title=title,
            date=_coerce_date(frontmatter.get("date")),
            before=_coerce_references(frontmatter.get("before")),
            after=_coerce_references(frontmatter.get("after")),
            current_sort_key=_coerce_sort_key(frontmatter.get(self._sort_key_field)),
            path=relative_path,
        )


def _coerce_date(value: object) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _coerce_references(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str) and item.strip())


def _coerce_sort_key(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


__all__ = [
    "FrontmatterError",
    "MarkdownEventVault",
    "render_frontmatter",
    "split_frontmatter",
]
