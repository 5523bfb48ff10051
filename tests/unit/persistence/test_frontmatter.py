"""Markdown vault tests: frontmatter parsing, event loading, and sort-key writes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from timeline_sequencer.ordering.engine import SortOrderEngine
from timeline_sequencer.persistence.base import SortKeySink, SortKeyWriteError
from timeline_sequencer.persistence.frontmatter import (
    FrontmatterError,
    MarkdownEventVault,
    render_frontmatter,
    split_frontmatter,
)

from . import event_frontmatter, write_note

if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class RecordingLogger:
    events: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def info(self, event: str, **kwargs: object) -> None:
        self.events.append((event, dict(kwargs)))

    def warning(self, event: str, **kwargs: object) -> None:
        self.events.append((event, dict(kwargs)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def _vault(root: Path, **kwargs: object) -> tuple[MarkdownEventVault, RecordingLogger]:
    logger = RecordingLogger()
    return MarkdownEventVault(root, logger=logger, **kwargs), logger  # type: ignore[arg-type]


def test_split_frontmatter_variants() -> None:
    assert split_frontmatter("plain note\n") == (None, "plain note\n")
    assert split_frontmatter("---\ntitle: A\n---\nbody\n") == ({"title": "A"}, "body\n")
    assert split_frontmatter("---\ntitle: A\n...\nbody\n") == ({"title": "A"}, "body\n")
    assert split_frontmatter("---\n---\n") == ({}, "")


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("---\ntitle: A\nbody\n", "unterminated"),
        ("---\n- a\n- b\n---\n", "must be a mapping"),
        ("---\ntitle: [unclosed\n---\n", "invalid YAML"),
    ],
)
def test_split_frontmatter_rejects_malformed_blocks(text: str, message: str) -> None:
    with pytest.raises(FrontmatterError, match=message):
        split_frontmatter(text)


def test_render_frontmatter_preserves_key_order_and_body() -> None:
    rendered = render_frontmatter({"title": "Zeta", "cr_id": "e1", "sort_order": 10}, "# Zeta\n")

    assert rendered == "---\ntitle: Zeta\ncr_id: e1\nsort_order: 10\n---\n# Zeta\n"


def test_load_events_builds_snapshots_in_path_order(tmp_path: Path) -> None:
    write_note(
        tmp_path,
        "events/b-Coronation.md",
        event_frontmatter("evt-2", "Coronation", date=1067, after="[[Hastings]]", sort_order=20),
    )
    write_note(
        tmp_path,
        "events/Hastings.md",
        {"cr_type": "event", "cr_id": "evt-1", "date": "1066-10-14", "before": ["[[evt-2]]"]},
    )
    write_note(tmp_path, "people/Harold.md", {"cr_type": "person", "cr_id": "p-1"})
    write_note(tmp_path, "scratch.md", None)
    write_note(tmp_path, "events/ignored.txt", event_frontmatter("evt-9", "Wrong extension"))

    vault, logger = _vault(tmp_path)
    events = vault.load_events()

    assert [event.identity for event in events] == ["evt-1", "evt-2"]
    hastings, coronation = events
    assert coronation.title == "Coronation"
    assert coronation.date == "1067"
    assert coronation.after == ("[[Hastings]]",)
    assert coronation.current_sort_key == 20
    assert coronation.path == "events/b-Coronation.md"
    assert hastings.title == "Hastings"
    assert hastings.date == "1066-10-14"
    assert hastings.before == ("[[evt-2]]",)
    assert hastings.current_sort_key is None
    assert logger.events[-1] == ("vault_events_loaded", {"root": str(tmp_path), "event_count": 2})


def test_load_events_parses_yaml_dates_to_iso_strings(tmp_path: Path) -> None:
    (tmp_path / "Treaty.md").write_text(
        "---\ncr_type: event\ncr_id: evt-1\ndate: 1648-10-24\n---\n", encoding="utf-8"
    )

    vault, _ = _vault(tmp_path)
    (event,) = vault.load_events()

    assert event.date == "1648-10-24"


def test_load_events_skips_invalid_and_duplicate_notes(tmp_path: Path) -> None:
    write_note(tmp_path, "a.md", event_frontmatter("evt-1", "First"))
    write_note(tmp_path, "b.md", event_frontmatter("evt-1", "Second claim"))
    write_note(tmp_path, "c.md", {"cr_type": "event", "title": "No identity"})
    (tmp_path / "d.md").write_text("---\ncr_type: event\n", encoding="utf-8")

    vault, logger = _vault(tmp_path)
    events = vault.load_events()

    assert [event.title for event in events] == ["First"]
    assert logger.names() == [
        "vault_identity_duplicate",
        "vault_event_invalid",
        "vault_note_unreadable",
        "vault_events_loaded",
    ]
    duplicate = logger.events[0][1]
    assert duplicate["path"] == "b.md"
    assert duplicate["first_path"] == "a.md"


def test_events_folder_limits_the_scan(tmp_path: Path) -> None:
    write_note(tmp_path, "timeline/e.md", event_frontmatter("evt-1", "Inside"))
    write_note(tmp_path, "elsewhere/e.md", event_frontmatter("evt-2", "Outside"))

    vault, _ = _vault(tmp_path, events_folder="timeline")
    (event,) = vault.load_events()

    assert event.identity == "evt-1"
    assert event.path == "timeline/e.md"


def test_missing_root_is_rejected(tmp_path: Path) -> None:
    vault, _ = _vault(tmp_path / "nope")

    with pytest.raises(NotADirectoryError):
        vault.load_events()


def test_note_extension_must_start_with_dot(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        MarkdownEventVault(tmp_path, note_extension="md")


def test_vault_satisfies_sink_protocol(tmp_path: Path) -> None:
    vault, _ = _vault(tmp_path)

    assert isinstance(vault, SortKeySink)


@pytest.mark.asyncio
async def test_commit_and_clear_rewrite_only_the_sort_key(tmp_path: Path) -> None:
    path = write_note(
        tmp_path,
        "Treaty.md",
        event_frontmatter("evt-1", "Treaty", date="1648"),
        body="# Treaty\n\nSigned at [[Münster]].\n",
    )
    vault, _ = _vault(tmp_path)
    vault.load_events()

    await vault.commit_sort_key("evt-1", 30)
    frontmatter, body = split_frontmatter(path.read_text(encoding="utf-8"))
    assert frontmatter == {
        "cr_type": "event",
        "cr_id": "evt-1",
        "title": "Treaty",
        "date": "1648",
        "sort_order": 30,
    }
    assert body == "# Treaty\n\nSigned at [[Münster]].\n"

    await vault.clear_sort_key("evt-1")
    frontmatter, body = split_frontmatter(path.read_text(encoding="utf-8"))
    assert frontmatter is not None
    assert "sort_order" not in frontmatter
    assert body == "# Treaty\n\nSigned at [[Münster]].\n"


@pytest.mark.asyncio
async def test_writes_for_unknown_or_broken_notes_raise_write_error(tmp_path: Path) -> None:
    path = write_note(tmp_path, "a.md", event_frontmatter("evt-1", "A"))
    vault, _ = _vault(tmp_path)
    vault.load_events()

    with pytest.raises(SortKeyWriteError) as unknown:
        await vault.commit_sort_key("evt-404", 10)
    assert unknown.value.identity == "evt-404"

    path.write_text("no frontmatter any more\n", encoding="utf-8")
    with pytest.raises(SortKeyWriteError, match="no frontmatter"):
        await vault.commit_sort_key("evt-1", 10)


@pytest.mark.asyncio
async def test_engine_orders_vault_notes_end_to_end(tmp_path: Path) -> None:
    write_note(tmp_path, "events/Hastings.md", event_frontmatter("evt-1", "Hastings", date="1066"))
    write_note(
        tmp_path,
        "events/Coronation.md",
        event_frontmatter("evt-2", "Coronation", after=["[[Hastings]]"]),
    )
    write_note(
        tmp_path,
        "events/Domesday.md",
        event_frontmatter("evt-3", "Domesday", date="1086", sort_order=20),
    )
    vault, _ = _vault(tmp_path)
    engine = SortOrderEngine(vault, logger=RecordingLogger())

    result = await engine.apply(vault.load_events())

    assert result.to_dict() == {"updatedCount": 2, "cycleEvents": [], "errors": []}
    keys: dict[str, object] = {}
    for note in sorted((tmp_path / "events").glob("*.md")):
        loaded, _ = split_frontmatter(note.read_text(encoding="utf-8"))
        assert loaded is not None
        keys[loaded["cr_id"]] = loaded["sort_order"]
    assert keys == {"evt-1": 10, "evt-3": 20, "evt-2": 30}

    second = await engine.apply(vault.load_events())
    assert second.updated_count == 0
