"""Finding taxonomy and its fixed reporting order.

Findings are data, not exceptions: every kind below describes something
wrong with the level content, and the checker always reports all of them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from rd_nurse.timing.tolerance import almost_equal, unique


class ErrorKind(str, Enum):
    """Kinds of finding, declared in reporting priority order."""

    INVALID_CUE = "invalid_cue"
    UNEXPECTED_SKIPSHOT = "unexpected_skipshot"
    OVERLAPPING_SKIPSHOT = "overlapping_skipshot"
    UNEXPECTED_FREEZESHOT = "unexpected_freezeshot"
    OVERLAPPING_FREEZESHOT = "overlapping_freezeshot"
    UNEXPECTED_BURNSHOT = "unexpected_burnshot"
    OVERLAPPING_BURNSHOT = "overlapping_burnshot"
    UNCUED_HIT = "uncued_hit"
    SKIPPED_HIT = "skipped_hit"
    MISSING_HIT = "missing_hit"
    HIT_ON_HOLD_RELEASE = "hit_on_hold_release"
    OVERLAPPING_HOLD = "overlapping_hold"

    @property
    def priority(self) -> int:
        return _PRIORITY[self]

    @property
    def description(self) -> str:
        return DESCRIPTIONS[self]


_PRIORITY = {kind: i for i, kind in enumerate(ErrorKind)}

# Human-readable labels for console output
DESCRIPTIONS: dict[ErrorKind, str] = {
    ErrorKind.INVALID_CUE: "Invalid cue",
    ErrorKind.UNEXPECTED_SKIPSHOT: "Unexpected skipshot",
    ErrorKind.OVERLAPPING_SKIPSHOT: "Overlapping skipshots",
    ErrorKind.UNEXPECTED_FREEZESHOT: "Unexpected freezeshot",
    ErrorKind.OVERLAPPING_FREEZESHOT: "Overlapping freezeshots",
    ErrorKind.UNEXPECTED_BURNSHOT: "Unexpected burnshot",
    ErrorKind.OVERLAPPING_BURNSHOT: "Overlapping burnshots",
    ErrorKind.UNCUED_HIT: "Uncued hit",
    ErrorKind.SKIPPED_HIT: "Skipped hit",
    ErrorKind.MISSING_HIT: "Missing hit",
    ErrorKind.HIT_ON_HOLD_RELEASE: "Hit on hold release",
    ErrorKind.OVERLAPPING_HOLD: "Overlapping holds",
}


@dataclass(frozen=True, slots=True)
class LevelError:
    kind: ErrorKind
    time: float


def _same(a: LevelError, b: LevelError) -> bool:
    return a.kind == b.kind and almost_equal(a.time, b.time)


def sort_errors(errors: Iterable[LevelError]) -> list[LevelError]:
    """Order by kind priority then time, dropping tolerance-equal repeats."""
    return unique(sorted(errors, key=lambda e: (e.kind.priority, e.time)), _same)


def sorted_times(times: Iterable[float]) -> list[float]:
    """Ascending, de-duplicated under tolerance."""
    return unique(sorted(times))
