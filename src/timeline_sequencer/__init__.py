"""
timeline-sequencer — constraint-based chronological ordering for event notes.

The package orders event snapshots (optional dates plus explicit
``before``/``after`` constraints) into one deterministic sequence and
persists spaced integer sort keys through a pluggable sink.

Import boundary: importing the package must not configure logging, load
config, or touch the filesystem.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
