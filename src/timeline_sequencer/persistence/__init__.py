"""Persistence collaborators: the sink contract and its concrete adapters."""

from timeline_sequencer.persistence.base import SortKeySink, SortKeyWriteError
from timeline_sequencer.persistence.frontmatter import (
    FrontmatterError,
    MarkdownEventVault,
    render_frontmatter,
    split_frontmatter,
)
from timeline_sequencer.persistence.memory import InMemorySortKeyStore, SinkCall

__all__ = [
    "FrontmatterError",
    "InMemorySortKeyStore",
    "MarkdownEventVault",
    "SinkCall",
    "SortKeySink",
    "SortKeyWriteError",
    "render_frontmatter",
    "split_frontmatter",
]
