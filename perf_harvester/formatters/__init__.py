"""Formatting helpers for durations."""

from .duration_formatter import format_elapsed, round_duration

__all__ = ["format_elapsed", "round_duration"]
