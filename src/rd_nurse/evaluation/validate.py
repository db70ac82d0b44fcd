"""Top-level level check: cues -> expected beats -> diff -> findings."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from rd_nurse.config import CheckOptions
from rd_nurse.data.level import ActualBeat, Cue, Hold, Level
from rd_nurse.evaluation.beats import check_beats, check_holds
from rd_nurse.evaluation.cues import ExpectedBeat, play_cues
from rd_nurse.evaluation.errors import ErrorKind, LevelError, sort_errors

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckResult:
    """Findings per kind, each an ascending list of times."""

    invalid_cues: list[float] = field(default_factory=list)
    unexpected_skipshots: list[float] = field(default_factory=list)
    overlapping_skipshots: list[float] = field(default_factory=list)
    unexpected_freezeshots: list[float] = field(default_factory=list)
    overlapping_freezeshots: list[float] = field(default_factory=list)
    unexpected_burnshots: list[float] = field(default_factory=list)
    overlapping_burnshots: list[float] = field(default_factory=list)
    uncued_hits: list[float] = field(default_factory=list)
    skipped_hits: list[float] = field(default_factory=list)
    missing_hits: list[float] = field(default_factory=list)
    hit_on_hold_release: list[float] = field(default_factory=list)
    overlapping_holds: list[float] = field(default_factory=list)
    expected: list[ExpectedBeat] = field(default_factory=list)

    def times(self, kind: ErrorKind) -> list[float]:
        return getattr(self, RESULT_FIELDS[kind])

    @property
    def errors(self) -> list[LevelError]:
        """All findings, in kind priority order then time."""
        return sort_errors(LevelError(kind, t) for kind in ErrorKind for t in self.times(kind))

    def __len__(self) -> int:
        return sum(len(self.times(kind)) for kind in ErrorKind)

    def __bool__(self) -> bool:
        return len(self) > 0


RESULT_FIELDS: dict[ErrorKind, str] = {
    ErrorKind.INVALID_CUE: "invalid_cues",
    ErrorKind.UNEXPECTED_SKIPSHOT: "unexpected_skipshots",
    ErrorKind.OVERLAPPING_SKIPSHOT: "overlapping_skipshots",
    ErrorKind.UNEXPECTED_FREEZESHOT: "unexpected_freezeshots",
    ErrorKind.OVERLAPPING_FREEZESHOT: "overlapping_freezeshots",
    ErrorKind.UNEXPECTED_BURNSHOT: "unexpected_burnshots",
    ErrorKind.OVERLAPPING_BURNSHOT: "overlapping_burnshots",
    ErrorKind.UNCUED_HIT: "uncued_hits",
    ErrorKind.SKIPPED_HIT: "skipped_hits",
    ErrorKind.MISSING_HIT: "missing_hits",
    ErrorKind.HIT_ON_HOLD_RELEASE: "hit_on_hold_release",
    ErrorKind.OVERLAPPING_HOLD: "overlapping_holds",
}


def validate_level(
    cues: Iterable[Cue],
    beats: Sequence[ActualBeat],
    holds: Iterable[Hold] = (),
    options: CheckOptions | None = None,
    hits: Iterable[float] | None = None,
) -> CheckResult:
    """Check decoded cues, oneshot beats and holds.

    Args:
        cues: Voice cues in time order.
        beats: Authored oneshot beats.
        holds: Authored holds.
        options: Checker options; defaults to CheckOptions().
        hits: Every literal hit time in the level. Defaults to where the
            oneshot beats land.

    Returns:
        CheckResult; empty when the level is consistent.
    """
    options = options or CheckOptions()
    playback = play_cues(cues, options)
    beat_check = check_beats(beats, playback.expected)
    hold_check = check_holds(hits if hits is not None else [b.landing for b in beats], holds)

    result = CheckResult(
        invalid_cues=playback.invalid_cues,
        unexpected_skipshots=beat_check.unexpected_skipshots,
        overlapping_skipshots=beat_check.overlapping_skipshots,
        unexpected_freezeshots=beat_check.unexpected_freezeshots,
        overlapping_freezeshots=beat_check.overlapping_freezeshots,
        unexpected_burnshots=beat_check.unexpected_burnshots,
        overlapping_burnshots=beat_check.overlapping_burnshots,
        uncued_hits=beat_check.uncued_hits,
        skipped_hits=beat_check.skipped_hits,
        missing_hits=beat_check.missing_hits,
        hit_on_hold_release=hold_check.hit_on_hold_release,
        overlapping_holds=hold_check.overlapping_holds,
        expected=playback.expected,
    )
    logger.info(
        "Checked %d oneshot beats against %d expected beats: %d findings",
        len(beats), len(playback.expected), len(result),
    )
    return result


def check_level(level: Level, options: CheckOptions | None = None) -> CheckResult:
    """Check a decoded level, including its classic hits against holds."""
    return validate_level(level.cues, level.beats, level.holds, options, hits=level.hits)
