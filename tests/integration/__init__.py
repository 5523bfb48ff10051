"""Subprocess-level tests for the ``timeline-sequencer`` command."""
