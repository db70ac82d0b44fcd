"""Tolerant comparison and bar/beat/time conversion."""

from rd_nurse.timing.time_index import (
    BreakpointTable,
    bar_to_beat,
    beat_to_bar,
    beat_to_time,
    build_bar_table,
    build_table,
    build_tempo_table,
    format_time,
    seconds_per_beat,
    split_bar,
    time_to_beat,
)
from rd_nurse.timing.tolerance import almost_equal, includes, matches, near, unique

__all__ = [
    # Tolerance
    "almost_equal",
    "includes",
    "matches",
    "near",
    "unique",
    # Time index
    "BreakpointTable",
    "bar_to_beat",
    "beat_to_bar",
    "beat_to_time",
    "build_bar_table",
    "build_table",
    "build_tempo_table",
    "format_time",
    "seconds_per_beat",
    "split_bar",
    "time_to_beat",
]
