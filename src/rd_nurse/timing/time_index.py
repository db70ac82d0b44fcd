"""Piecewise-linear conversion between bars, beats and seconds.

A level authors events in bar/beat coordinates while the checker works in
absolute time. Two breakpoint tables cover the conversions:

    - bar table: ``(bar, beat, crotchets_per_bar)`` rows
    - tempo table: ``(beat, seconds, seconds_per_beat)`` rows

Both are sorted and strictly increasing in key and value. A lookup finds the
last row whose key (or value, for the inverse) is ``<=`` the query and
interpolates with that row's rate. Bars and beats are zero-based here.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_CROTCHETS_PER_BAR = 8
DEFAULT_BPM = 100.0


class BreakpointTable:
    """Sorted ``(key, value, rate)`` rows with O(log n) lookup in both directions.

    The first row is always ``(0, 0, default_rate)`` so queries before any
    authored change, including negative ones, resolve against it.
    """

    __slots__ = ("keys", "values", "rates")

    def __init__(self, rows: Iterable[tuple[float, float, float]]) -> None:
        data = np.asarray(list(rows), dtype=np.float64).reshape(-1, 3)
        if len(data) == 0 or data[0, 0] != 0 or data[0, 1] != 0:
            raise ValueError("breakpoint table must start at (0, 0)")
        self.keys = data[:, 0]
        self.values = data[:, 1]
        self.rates = data[:, 2]

    def __len__(self) -> int:
        return len(self.keys)

    def __iter__(self):
        for key, value, rate in zip(self.keys, self.values, self.rates):
            yield float(key), float(value), float(rate)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BreakpointTable):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"BreakpointTable({list(self)!r})"

    def _row_by_key(self, key: float) -> int:
        return max(int(np.searchsorted(self.keys, key, side="right")) - 1, 0)

    def _row_by_value(self, value: float) -> int:
        return max(int(np.searchsorted(self.values, value, side="right")) - 1, 0)

    def rate_at(self, key: float) -> float:
        """Rate in effect at ``key``."""
        return float(self.rates[self._row_by_key(key)])

    def forward(self, key: float) -> float:
        """Map a key (bar or beat) to its accumulated value (beat or seconds)."""
        i = self._row_by_key(key)
        return float(self.values[i] + (key - self.keys[i]) * self.rates[i])

    def inverse(self, value: float) -> float:
        """Map an accumulated value back to its key."""
        i = self._row_by_value(value)
        return float(self.keys[i] + (value - self.values[i]) / self.rates[i])

    def split(self, value: float) -> tuple[int, float]:
        """Whole key containing ``value`` plus the remainder within it, in value units."""
        i = self._row_by_value(value)
        rate = float(self.rates[i])
        whole, rest = divmod(value - float(self.values[i]), rate)
        return int(self.keys[i] + whole), rest


def build_table(changes: Iterable[tuple[float, float]], default_rate: float) -> BreakpointTable:
    """Accumulate rate changes into a breakpoint table.

    Args:
        changes: ``(key, rate)`` pairs in any order. A later pair at the same
            key replaces an earlier one, and a pair at key 0 replaces the
            default rate.
        default_rate: Rate in effect from key 0 until the first change.

    Returns:
        BreakpointTable with consecutive duplicate rates collapsed.
    """
    by_key: dict[float, float] = {0.0: float(default_rate)}
    for key, rate in changes:
        if key < 0:
            logger.warning("Ignoring rate change before the start of the level (%s)", key)
            continue
        if rate <= 0 or not math.isfinite(rate):
            logger.warning("Ignoring invalid rate %r at %s", rate, key)
            continue
        by_key[float(key)] = float(rate)

    rows: list[tuple[float, float, float]] = []
    cur_key = cur_value = cur_rate = 0.0
    for key in sorted(by_key):
        rate = by_key[key]
        if rows and rate == cur_rate:
            continue
        cur_value += (key - cur_key) * cur_rate
        cur_key, cur_rate = key, rate
        rows.append((cur_key, cur_value, cur_rate))
    return BreakpointTable(rows)


def build_bar_table(
    changes: Iterable[tuple[float, float]],
    default_crotchets_per_bar: float = DEFAULT_CROTCHETS_PER_BAR,
) -> BreakpointTable:
    """Bar table from ``(bar, crotchets_per_bar)`` changes."""
    return build_table(changes, default_crotchets_per_bar)


def build_tempo_table(
    changes: Iterable[tuple[float, float]],
    default_bpm: float = DEFAULT_BPM,
) -> BreakpointTable:
    """Tempo table from ``(beat, bpm)`` changes, stored as seconds per beat."""
    return build_table(((beat, 60.0 / bpm) for beat, bpm in changes if bpm > 0), 60.0 / default_bpm)


def bar_to_beat(bar_table: BreakpointTable, bar: float) -> float:
    return bar_table.forward(bar)


def beat_to_bar(bar_table: BreakpointTable, beat: float) -> float:
    """Fractional bar at ``beat``; exact inverse of :func:`bar_to_beat`."""
    return bar_table.inverse(beat)


def split_bar(bar_table: BreakpointTable, beat: float) -> tuple[int, float]:
    """Whole bar index and beat within that bar, for display."""
    return bar_table.split(beat)


def crotchets_per_bar(bar_table: BreakpointTable, bar: float) -> float:
    return bar_table.rate_at(bar)


def beat_to_time(tempo_table: BreakpointTable, beat: float) -> float:
    return tempo_table.forward(beat)


def time_to_beat(tempo_table: BreakpointTable, time: float) -> float:
    return tempo_table.inverse(time)


def seconds_per_beat(tempo_table: BreakpointTable, beat: float) -> float:
    return tempo_table.rate_at(beat)


def format_time(bar: int, beat: float) -> str:
    """Render a zero-based bar/beat pair the way level editors show it.

    >>> format_time(2, 0.5)
    '3-1.5'
    """
    shown = f"{round((beat + 1) * 1000) / 1000:.3f}".rstrip("0").rstrip(".")
    return f"{bar + 1}-{shown}"
