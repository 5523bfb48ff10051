"""UI package exports for the CLI router and terminal rendering."""

from timeline_sequencer.ui.cli import CLIError, build_parser, main, run_cli
from timeline_sequencer.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "main",
    "run_cli",
]
