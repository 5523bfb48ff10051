"""Output rendering for the timeline-sequencer CLI.

Human-readable output goes through a ``rich`` console. Color is disabled by
the ``--no-color`` flag, the ``NO_COLOR`` environment variable, or a
non-terminal stdout; the text content is identical either way.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Sequence

_HEADING_STYLE = Style(bold=True)
_WARNING_STYLE = Style(color="yellow")
_ERROR_STYLE = Style(color="red", bold=True)
_OK_STYLE = Style(color="green")


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    """Check whether color output should be attempted."""

    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Thin CLI output renderer backed by a ``rich`` console."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        target = stream if stream is not None else sys.stdout
        self.verbose = verbose
        self._color = _color_allowed(no_color, target)
        self._console = Console(
            file=target,
            no_color=not self._color,
            color_system="auto" if self._color else None,
            highlight=False,
            soft_wrap=True,
            emoji=False,
            markup=False,
        )

    @property
    def color(self) -> bool:
        return self._color

    def heading(self, text: str) -> None:
        self._console.print(Text(text, style=_HEADING_STYLE))

    def kv(self, key: str, value: object) -> None:
        line = Text()
        line.append(f"{key}: ", style=_HEADING_STYLE)
        line.append(str(value))
        self._console.print(line)

    def text(self, line: str) -> None:
        self._console.print(Text(line))

    def blank(self) -> None:
        self._console.print()

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        self._console.print()
        self._console.print(Text(title, style=_HEADING_STYLE))

    def warning(self, text: str) -> None:
        self._console.print(Text(f"  Warning: {text}", style=_WARNING_STYLE))

    def error(self, text: str) -> None:
        self._console.print(Text(f"  Error: {text}", style=_ERROR_STYLE))

    def ok(self, label: str) -> None:
        self._console.print(Text(f"  OK  {label}", style=_OK_STYLE))

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self._console.print(Text(f"  {prefix}{entry}"))

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        """Print rows as a borderless table; nothing is printed for no rows."""

        if not rows:
            return
        if title:
            self.section(title)

        table = Table(box=None, show_edge=False, pad_edge=False, header_style=_HEADING_STYLE)
        for header in headers:
            table.add_column(header)
        for row in rows:
            cells = [str(row[i]) if i < len(row) else "" for i in range(len(headers))]
            table.add_row(*cells)
        self._console.print(table)


def create_renderer(
    *,
    no_color: bool = False,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> CLIRenderer:
    """Create a CLI renderer with the given settings."""

    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
