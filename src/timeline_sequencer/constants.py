"""Stable constants shared across the sequencer layers."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Sort keys are spaced so notes can be reordered by hand without renumbering.
DEFAULT_KEY_STEP: Final[int] = 10

# Vault note conventions.
DEFAULT_NOTE_EXTENSION: Final[str] = ".md"
DEFAULT_SORT_KEY_FIELD: Final[str] = "sort_order"
DEFAULT_IDENTITY_FIELD: Final[str] = "cr_id"
DEFAULT_TYPE_FIELD: Final[str] = "cr_type"
DEFAULT_TYPE_VALUE: Final[str] = "event"

# Default runtime paths (relative to the config file unless overridden).
DEFAULT_CONFIG_FILE: Final[str] = "timeline.toml"
DEFAULT_LOG_DIR: Final[str] = "logs/"

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_IDENTITY_FIELD",
    "DEFAULT_KEY_STEP",
    "DEFAULT_LOG_DIR",
    "DEFAULT_NOTE_EXTENSION",
    "DEFAULT_SORT_KEY_FIELD",
    "DEFAULT_TYPE_FIELD",
    "DEFAULT_TYPE_VALUE",
]
