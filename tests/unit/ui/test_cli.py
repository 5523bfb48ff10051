"""In-process CLI routing tests: argument placement, exit codes, and output."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import structlog

from timeline_sequencer.main import ExitCode, cli_entrypoint
from timeline_sequencer.observability.logging import shutdown_logging
from timeline_sequencer.persistence.base import SortKeyWriteError
from timeline_sequencer.persistence.frontmatter import MarkdownEventVault
from timeline_sequencer.ui.cli import CLIError, build_parser, run_cli

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TIMELINE_OBSERVABILITY_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("NO_COLOR", "1")
    yield
    shutdown_logging()
    structlog.reset_defaults()


def _write_event(root: Path, name: str, body: str) -> Path:
    path = root / f"{name}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\ncr_type: event\n{body}---\n", encoding="utf-8")
    return path


def _vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    _write_event(root, "Hastings", "cr_id: evt-1\ndate: '1066'\n")
    _write_event(root, "Coronation", "cr_id: evt-2\nafter: '[[Hastings]]'\n")
    return root


def test_global_options_work_before_and_after_the_command(tmp_path: Path) -> None:
    parser = build_parser()

    before = parser.parse_args(["--vault", "v", "--json", "order", "--dry-run"])
    after = parser.parse_args(["order", "--vault", "v", "--json"])
    mixed = parser.parse_args(["--vault", "v", "clear", "--no-color"])

    assert (before.vault, before.json, before.dry_run) == ("v", True, True)
    assert (after.vault, after.json, after.dry_run) == ("v", True, False)
    assert (mixed.vault, mixed.no_color, mixed.json) == ("v", True, False)


def test_dry_run_prints_sequence_without_writing(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    root = _vault(tmp_path)
    before = {path.name: path.read_text(encoding="utf-8") for path in root.glob("*.md")}

    code = run_cli(["--vault", str(root), "order", "--dry-run"])

    out = capsys.readouterr().out
    assert code == ExitCode.SUCCESS
    assert "Dry run: no sort keys written" in out
    assert "Would update: 2" in out
    assert out.index("Hastings") < out.index("Coronation")
    assert {path.name: path.read_text(encoding="utf-8") for path in root.glob("*.md")} == before


def test_write_failures_exit_with_write_failure_code(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    root = _vault(tmp_path)

    async def refuse(self: MarkdownEventVault, identity: str, sort_key: int) -> None:
        raise SortKeyWriteError(identity, "read-only volume")

    monkeypatch.setattr(MarkdownEventVault, "commit_sort_key", refuse)

    code = run_cli(["--vault", str(root), "--json", "order"])

    payload = json.loads(capsys.readouterr().out)
    assert code == ExitCode.WRITE_FAILURES
    assert payload["result"] == {
        "updatedCount": 0,
        "cycleEvents": [],
        "errors": [
            "Failed to update Hastings: read-only volume",
            "Failed to update Coronation: read-only volume",
        ],
    }


def test_cycles_are_reported_but_exit_successfully(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    root = tmp_path / "vault"
    _write_event(root, "A", "cr_id: a\ntitle: Alpha\nbefore: [b]\n")
    _write_event(root, "B", "cr_id: b\ntitle: Beta\nbefore: [a]\n")

    code = run_cli(["--vault", str(root), "--verbose", "order"])

    out = capsys.readouterr().out
    assert code == ExitCode.SUCCESS
    assert "Updated: 0" in out
    assert "- Alpha" in out
    assert "- Beta" in out
    assert "a -> b -> a" in out


def test_missing_vault_is_a_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = run_cli(["--vault", str(tmp_path / "absent"), "order"])

    assert code == ExitCode.CONFIG_ERROR
    assert "vault root is not a directory" in capsys.readouterr().err


def test_missing_vault_opens_no_run_log(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(["--vault", str(tmp_path / "absent"), "clear"])

    assert code == ExitCode.CONFIG_ERROR
    assert capsys.readouterr().err.startswith("error: vault root is not a directory")
    assert not (tmp_path / "logs").exists()


def test_cli_error_raised_during_a_logged_command_keeps_its_exit_code(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    root = _vault(tmp_path)

    def unreadable(self: MarkdownEventVault) -> list[object]:
        raise CLIError("vault notes are unreadable", exit_code=int(ExitCode.WRITE_FAILURES))

    monkeypatch.setattr(MarkdownEventVault, "load_events", unreadable)

    code = cli_entrypoint(["--vault", str(root), "order"])

    assert code == ExitCode.WRITE_FAILURES
    assert capsys.readouterr().err == "error: vault notes are unreadable\n"


def test_cli_error_carries_message_and_exit_code() -> None:
    error = CLIError("bad input")

    assert str(error) == "bad input"
    assert error.exit_code == ExitCode.CONFIG_ERROR
    with pytest.raises(CLIError) as caught:
        raise error
    assert caught.value.__traceback__ is not None


def test_invalid_config_file_routes_to_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = tmp_path / "timeline.toml"
    config_path.write_text("[ordering]\nkey_step = 0\n", encoding="utf-8")

    code = cli_entrypoint(["--config", str(config_path), "config"])

    assert code == ExitCode.CONFIG_ERROR
    assert "ordering.key_step: must be >= 1" in capsys.readouterr().err


def test_config_command_emits_effective_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = run_cli(["config", "--json", "--vault", str(tmp_path)])

    payload = json.loads(capsys.readouterr().out)
    assert code == ExitCode.SUCCESS
    assert payload["command"] == "config"
    assert payload["config"]["vault"]["root"] == tmp_path.resolve().as_posix()
    assert payload["config"]["ordering"] == {"key_step": 10}
