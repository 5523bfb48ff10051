"""Shared deterministic builders for vault-backed persistence tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from pathlib import Path


def note_text(frontmatter: dict[str, object] | None, body: str = "Body text.\n") -> str:
    if frontmatter is None:
        return body
    rendered = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{rendered}---\n{body}"


def write_note(
    root: Path,
    relative_path: str,
    frontmatter: dict[str, object] | None,
    body: str = "Body text.\n",
) -> Path:
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(note_text(frontmatter, body), encoding="utf-8")
    return path


def event_frontmatter(
    cr_id: str,
    title: str,
    *,
    date: object = None,
    before: object = None,
    after: object = None,
    sort_order: object = None,
) -> dict[str, object]:
    payload: dict[str, object] = {"cr_type": "event", "cr_id": cr_id, "title": title}
    if date is not None:
        payload["date"] = date
    if before is not None:
        payload["before"] = before
    if after is not None:
        payload["after"] = after
    if sort_order is not None:
        payload["sort_order"] = sort_order
    return payload


__all__ = ["event_frontmatter", "note_text", "write_note"]
