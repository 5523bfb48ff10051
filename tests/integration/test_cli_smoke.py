"""
timeline-sequencer — CLI subprocess smoke contracts.

Runs ``python -m timeline_sequencer`` against a throwaway vault and checks
exit codes, JSON payloads, the sort keys written into note frontmatter, and
the per-run JSON-lines log.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

pytestmark = pytest.mark.integration


def _run_cli(cwd: Path, log_dir: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("TIMELINE_")}
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env["TIMELINE_OBSERVABILITY_LOG_DIR"] = str(log_dir)
    env["NO_COLOR"] = "1"
    return subprocess.run(
        [sys.executable, "-m", "timeline_sequencer", *args],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _write_event(root: Path, relative: str, frontmatter: dict[str, object]) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    rendered = yaml.safe_dump({"cr_type": "event", **frontmatter}, sort_keys=False)
    path.write_text(f"---\n{rendered}---\n# {path.stem}\n", encoding="utf-8")


def _sort_keys(root: Path) -> dict[str, object]:
    keys: dict[str, object] = {}
    for path in sorted(root.rglob("*.md")):
        _, block, _ = path.read_text(encoding="utf-8").split("---\n", 2)
        frontmatter = yaml.safe_load(block)
        keys[frontmatter["cr_id"]] = frontmatter.get("sort_order")
    return keys


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    _write_event(root, "events/Hastings.md", {"cr_id": "evt-1", "date": "1066-10-14"})
    _write_event(
        root,
        "events/Coronation.md",
        {"cr_id": "evt-2", "title": "Coronation of William", "after": ["[[Hastings]]"]},
    )
    _write_event(root, "events/Domesday.md", {"cr_id": "evt-3", "date": "1086"})
    _write_event(
        root,
        "events/Revolt.md",
        {"cr_id": "evt-4", "after": ["[[events/Coronation]]"], "before": ["evt-3"]},
    )
    return root


def test_order_writes_keys_and_is_idempotent(tmp_path: Path, vault: Path) -> None:
    log_dir = tmp_path / "logs"

    first = _run_cli(tmp_path, log_dir, "--vault", str(vault), "--json", "order")
    assert first.returncode == 0, first.stderr
    payload = json.loads(first.stdout)
    assert payload["result"] == {"updatedCount": 4, "cycleEvents": [], "errors": []}
    assert payload["plan"]["order"] == ["evt-1", "evt-2", "evt-4", "evt-3"]
    assert _sort_keys(vault) == {"evt-1": 10, "evt-2": 20, "evt-4": 30, "evt-3": 40}

    body = (vault / "events" / "Hastings.md").read_text(encoding="utf-8")
    assert body.endswith("---\n# Hastings\n")

    second = _run_cli(tmp_path, log_dir, "order", "--vault", str(vault), "--json")
    assert second.returncode == 0, second.stderr
    assert json.loads(second.stdout)["result"]["updatedCount"] == 0

    run_logs = sorted(log_dir.glob("run-*/sequencer.jsonl"))
    assert len(run_logs) == 2
    records = [json.loads(line) for line in run_logs[0].read_text(encoding="utf-8").splitlines()]
    applied = [record for record in records if record["message"] == "sequencer_order_applied"]
    assert applied
    assert applied[0]["command"] == "order"
    assert applied[0]["fields"]["event_count"] == 4


def test_dry_run_leaves_vault_untouched(tmp_path: Path, vault: Path) -> None:
    completed = _run_cli(tmp_path, tmp_path / "logs", "--vault", str(vault), "order", "--dry-run")

    assert completed.returncode == 0, completed.stderr
    assert "Dry run: no sort keys written" in completed.stdout
    assert "Coronation of William" in completed.stdout
    assert set(_sort_keys(vault).values()) == {None}


def test_cycle_is_reported_without_failing(tmp_path: Path) -> None:
    root = tmp_path / "vault"
    _write_event(root, "A.md", {"cr_id": "a", "title": "Alpha", "before": ["[[B]]"]})
    _write_event(root, "B.md", {"cr_id": "b", "title": "Beta", "before": ["[[A]]"]})
    _write_event(root, "C.md", {"cr_id": "c", "title": "Gamma"})

    completed = _run_cli(tmp_path, tmp_path / "logs", "--vault", str(root), "--json", "order")

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(completed.stdout)
    assert payload["result"]["cycleEvents"] == ["Alpha", "Beta"]
    assert payload["plan"]["cycle_paths"] == [["a", "b", "a"]]
    assert _sort_keys(root) == {"a": None, "b": None, "c": 10}


def test_clear_removes_keys(tmp_path: Path, vault: Path) -> None:
    log_dir = tmp_path / "logs"
    assert _run_cli(tmp_path, log_dir, "--vault", str(vault), "order").returncode == 0

    completed = _run_cli(tmp_path, log_dir, "--vault", str(vault), "--json", "clear")

    assert completed.returncode == 0, completed.stderr
    assert json.loads(completed.stdout)["result"] == {"clearedCount": 4, "errors": []}
    assert set(_sort_keys(vault).values()) == {None}


def test_config_file_customizes_fields(tmp_path: Path) -> None:
    root = tmp_path / "notes"
    for name, date in (("Late", "1900"), ("Early", "1800")):
        path = root / f"{name}.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"---\nkind: moment\nuid: {name.lower()}\ndate: '{date}'\n---\n", "utf-8")
    (tmp_path / "timeline.toml").write_text(
        """
[vault]
root = "notes"
identity_field = "uid"
type_field = "kind"
type_value = "moment"
sort_key_field = "position"

[ordering]
key_step = 100
""".lstrip(),
        encoding="utf-8",
    )

    completed = _run_cli(tmp_path, tmp_path / "logs", "--json", "order")

    assert completed.returncode == 0, completed.stderr
    assert json.loads(completed.stdout)["plan"]["order"] == ["early", "late"]
    assert "position: 100" in (root / "Early.md").read_text(encoding="utf-8")
    assert "position: 200" in (root / "Late.md").read_text(encoding="utf-8")


def test_config_errors_exit_with_code_2(tmp_path: Path) -> None:
    (tmp_path / "timeline.toml").write_text("[ordering]\nkey_step = 'ten'\n", encoding="utf-8")

    completed = _run_cli(tmp_path, tmp_path / "logs", "config")

    assert completed.returncode == 2
    assert "ordering.key_step" in completed.stderr


def test_missing_vault_exits_with_code_2(tmp_path: Path) -> None:
    completed = _run_cli(tmp_path, tmp_path / "logs", "--vault", str(tmp_path / "nope"), "order")

    assert completed.returncode == 2
    assert "vault root is not a directory" in completed.stderr
