"""Command-line interface router for timeline-sequencer."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from timeline_sequencer import __version__
from timeline_sequencer.config import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
)
from timeline_sequencer.domain.models import ClearResult, SortOrderResult
from timeline_sequencer.main import ExitCode
from timeline_sequencer.observability.logging import (
    correlation_scope,
    setup_logging,
    shutdown_logging,
)
from timeline_sequencer.ordering.engine import OrderingPlan, SortOrderEngine
from timeline_sequencer.persistence.frontmatter import MarkdownEventVault
from timeline_sequencer.ui.render import CLIRenderer, create_renderer


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = int(ExitCode.CONFIG_ERROR)) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="timeline-sequencer",
        description=(
            "timeline-sequencer: order event notes by date and before/after constraints.\n\n"
            "Common workflows:\n"
            "  timeline-sequencer --vault notes order --dry-run   Preview the sequence\n"
            "  timeline-sequencer --vault notes order             Write sort keys\n"
            "  timeline-sequencer --vault notes clear             Remove sort keys\n"
            "  timeline-sequencer config                          Show effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_common_options(parser, suppress_defaults=False)

    # Subcommands accept the same options after the command name; suppressed
    # defaults keep them from overwriting values given before it.
    common = argparse.ArgumentParser(add_help=False)
    _add_common_options(common, suppress_defaults=True)

    subparsers = parser.add_subparsers(dest="command", required=True)

    # order ---------------------------------------------------------------
    order_parser = subparsers.add_parser(
        "order",
        parents=[common],
        help="Compute the event sequence and persist sort keys",
        description=(
            "Load event notes, order them by explicit constraints with dates and titles\n"
            "as tie-breaks, and write spaced sort keys to every note whose key changed.\n\n"
            "Examples:\n"
            "  timeline-sequencer --vault notes order\n"
            "  timeline-sequencer --vault notes order --dry-run --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    order_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the planned sequence without writing any sort keys.",
    )
    order_parser.set_defaults(handler=_cmd_order)

    # clear ---------------------------------------------------------------
    clear_parser = subparsers.add_parser(
        "clear",
        parents=[common],
        help="Remove persisted sort keys from all event notes",
    )
    clear_parser.set_defaults(handler=_cmd_clear)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective configuration",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def _add_common_options(parser: argparse.ArgumentParser, *, suppress_defaults: bool) -> None:
    def default(value: object) -> object:
        return argparse.SUPPRESS if suppress_defaults else value

    parser.add_argument(
        "--vault",
        default=default(None),
        help="Vault root directory (overrides vault.root).",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=default(None),
        help="Path to TOML config (default: ./timeline.toml if present).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=default(False),
        help="Emit one machine-readable JSON object on stdout.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=default(False),
        help="Show detailed output.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=default(False),
        help="Disable colored output (also respects NO_COLOR env var).",
    )


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    """Compatibility wrapper for main-module wiring."""

    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_order(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    dry_run = _flag(args, "dry_run")
    vault = _build_vault(config)
    key_step = _require_int(config["ordering"]["key_step"], "ordering.key_step")

    with _command_logging(config, command="order"):
        events = vault.load_events()
        engine = SortOrderEngine(vault, key_step=key_step, note_extension=vault.note_extension)
        plan = engine.plan(events)
        result = None if dry_run else asyncio.run(engine.apply_plan(plan))

    payload: dict[str, object] = {
        "command": "order",
        "dry_run": dry_run,
        "vault": vault.root.as_posix(),
        "event_count": len(events),
        "plan": plan.to_dict(),
    }
    if result is not None:
        payload["result"] = result.to_dict()

    if _flag(args, "json"):
        _emit_json(payload)
        return _exit_code_for(result)

    renderer = _get_renderer(args)
    renderer.heading("Dry run: no sort keys written" if dry_run else "Event order applied")
    renderer.kv("Vault", vault.root.as_posix())
    renderer.kv("Events", len(events))
    if result is None:
        renderer.kv("Would update", len(plan.changed))
    else:
        renderer.kv("Updated", result.updated_count)

    if dry_run or renderer.verbose:
        _render_plan(renderer, plan)
    _render_cycles(renderer, plan)
    if plan.ambiguous_aliases:
        renderer.section("Ambiguous references:")
        renderer.items(
            [
                f"{item.alias} ({item.space.value}): {', '.join(item.identities)}"
                for item in plan.ambiguous_aliases
            ]
        )
    if result is not None and result.errors:
        renderer.section("Write failures:")
        for message in result.errors:
            renderer.error(message)
    return _exit_code_for(result)


def _cmd_clear(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    vault = _build_vault(config)

    with _command_logging(config, command="clear"):
        events = vault.load_events()
        engine = SortOrderEngine(vault, note_extension=vault.note_extension)
        result = asyncio.run(engine.clear(events))

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "clear",
                "vault": vault.root.as_posix(),
                "event_count": len(events),
                "result": result.to_dict(),
            }
        )
        return _exit_code_for(result)

    renderer = _get_renderer(args)
    renderer.heading("Sort keys cleared")
    renderer.kv("Vault", vault.root.as_posix())
    renderer.kv("Events", len(events))
    renderer.kv("Cleared", result.cleared_count)
    if result.errors:
        renderer.section("Write failures:")
        for message in result.errors:
            renderer.error(message)
    return _exit_code_for(result)


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    payload: dict[str, object] = {
        "command": "config",
        "config": config,
    }

    if _flag(args, "json"):
        _emit_json(payload)
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.text(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    no_color = _flag(args, "no_color")
    verbose = _flag(args, "verbose")
    return create_renderer(no_color=no_color, verbose=verbose)


def _render_plan(renderer: CLIRenderer, plan: OrderingPlan) -> None:
    rows = [
        [
            str(item.rank + 1),
            str(item.sort_key),
            "-" if item.previous_sort_key is None else str(item.previous_sort_key),
            "*" if item.changed else "",
            item.title,
        ]
        for item in plan.assignments
    ]
    renderer.table(["#", "Key", "Was", "Changed", "Title"], rows, title="Sequence:")


def _render_cycles(renderer: CLIRenderer, plan: OrderingPlan) -> None:
    if not plan.cycle_events:
        return
    renderer.section("Events in or behind a cycle (left unchanged):")
    renderer.items(list(plan.cycle_events))
    if renderer.verbose and plan.cycle_paths:
        renderer.section("Cycles:")
        renderer.items([" -> ".join(path) for path in plan.cycle_paths])


def _exit_code_for(result: SortOrderResult | ClearResult | None) -> int:
    if result is not None and result.errors:
        return int(ExitCode.WRITE_FAILURES)
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Helpers: config, logging, vault
# ---------------------------------------------------------------------------


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    vault = _optional_str(getattr(args, "vault", None))

    overrides: dict[str, object] = {}
    if vault is not None:
        overrides["vault.root"] = Path(vault).expanduser().resolve().as_posix()

    try:
        return load_config(config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=int(ExitCode.CONFIG_ERROR)) from exc


@contextmanager
def _command_logging(config: Mapping[str, Any], *, command: str) -> Iterator[str]:
    """Per-command structured logging with run and command correlation."""

    run_id = f"run-{uuid.uuid4().hex[:12]}"
    try:
        setup_logging(config["observability"], run_id=run_id)
    except OSError as exc:
        raise CLIError(f"unable to open log directory: {exc}") from exc

    try:
        with correlation_scope(command=command, vault=str(config["vault"]["root"])):
            yield run_id
    finally:
        shutdown_logging()


def _build_vault(config: Mapping[str, Any]) -> MarkdownEventVault:
    vault_cfg = config["vault"]
    root = Path(_require_str(vault_cfg["root"], "vault.root"))
    if not root.is_dir():
        raise CLIError(f"vault root is not a directory: {root}")
    return MarkdownEventVault(
        root,
        events_folder=str(vault_cfg["events_folder"]),
        note_extension=_require_str(vault_cfg["note_extension"], "vault.note_extension"),
        identity_field=_require_str(vault_cfg["identity_field"], "vault.identity_field"),
        type_field=_require_str(vault_cfg["type_field"], "vault.type_field"),
        type_value=_require_str(vault_cfg["type_value"], "vault.type_value"),
        sort_key_field=_require_str(vault_cfg["sort_key_field"], "vault.sort_key_field"),
    )


# ---------------------------------------------------------------------------
# Helpers: argument parsing
# ---------------------------------------------------------------------------


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise CLIError(f"invalid {name}: expected string")
    cleaned = value.strip()
    if not cleaned:
        raise CLIError(f"invalid {name}: value cannot be empty")
    return cleaned


def _require_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CLIError(f"invalid {name}: expected integer")
    return value


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument")
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    value = getattr(args, name, False)
    return bool(value)


__all__ = [
    "CLIError",
    "build_parser",
    "main",
    "run_cli",
]


if __name__ == "__main__":
    raise SystemExit(run_cli())
