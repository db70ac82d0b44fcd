"""Diff authored oneshot beats and holds against the expected beats.

Matching is done under tolerance on sorted time lists, so each lookup is a
binary search plus a short scan of near candidates.

Beat checks run in this order:
    1. Match every authored beat to expected instants; validate its
       freeze/burn offset, then its skipshot continuation.
    2. Coincident accepted beats must agree on their offset shift.
    3. Beats with no expected instant are uncued unless another beat's
       freeze/burn lands there.
    4. Every expected instant must be either hit or skipped, not both.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, fields
from enum import Enum

from rd_nurse.data.level import ActualBeat, Burnshot, Freezeshot, Hold
from rd_nurse.evaluation.cues import ExpectedBeat
from rd_nurse.evaluation.errors import sorted_times
from rd_nurse.timing.tolerance import almost_equal, matches

logger = logging.getLogger(__name__)


class BeatStatus(str, Enum):
    CUED = "cued"
    UNCUED = "uncued"
    UNEXPECTED_FREEZESHOT = "unexpected_freezeshot"
    UNEXPECTED_BURNSHOT = "unexpected_burnshot"
    UNEXPECTED_SKIPSHOT = "unexpected_skipshot"
    OVERLAPPING_SKIPSHOT = "overlapping_skipshot"


@dataclass(frozen=True, slots=True)
class BeatMatch:
    """Outcome for one authored beat; ``skips`` is set for accepted skipshots."""

    status: BeatStatus
    beat: ActualBeat
    skips: float | None = None


@dataclass(slots=True)
class BeatCheck:
    unexpected_skipshots: list[float] = field(default_factory=list)
    overlapping_skipshots: list[float] = field(default_factory=list)
    unexpected_freezeshots: list[float] = field(default_factory=list)
    overlapping_freezeshots: list[float] = field(default_factory=list)
    unexpected_burnshots: list[float] = field(default_factory=list)
    overlapping_burnshots: list[float] = field(default_factory=list)
    uncued_hits: list[float] = field(default_factory=list)
    skipped_hits: list[float] = field(default_factory=list)
    missing_hits: list[float] = field(default_factory=list)


@dataclass(slots=True)
class HoldCheck:
    hit_on_hold_release: list[float] = field(default_factory=list)
    overlapping_holds: list[float] = field(default_factory=list)


def match_beat(beat: ActualBeat, expected: Sequence[ExpectedBeat], expected_times: Sequence[float]) -> BeatMatch:
    """Classify one authored beat.

    Args:
        beat: The authored beat.
        expected: Expected beats sorted by time.
        expected_times: ``[e.time for e in expected]``.
    """
    found = [expected[i] for i in matches(expected_times, beat.time)]
    if not found:
        return BeatMatch(BeatStatus.UNCUED, beat)

    if beat.offset is not None:
        # The shot's pulse has to sit on the preceding cued instant
        pulse = beat.landing - beat.offset.interval
        if not any(m.prev is not None and almost_equal(m.prev, pulse) for m in found):
            if isinstance(beat.offset, Burnshot):
                return BeatMatch(BeatStatus.UNEXPECTED_BURNSHOT, beat)
            return BeatMatch(BeatStatus.UNEXPECTED_FREEZESHOT, beat)

    if beat.skipshot:
        following = [m.next for m in found if m.next is not None]
        if not following:
            return BeatMatch(BeatStatus.UNEXPECTED_SKIPSHOT, beat)
        if not all(almost_equal(following[0], n) for n in following):
            return BeatMatch(BeatStatus.OVERLAPPING_SKIPSHOT, beat)
        return BeatMatch(BeatStatus.CUED, beat, skips=following[0])

    return BeatMatch(BeatStatus.CUED, beat)


def _overlap_kind(a: ActualBeat, b: ActualBeat) -> type[Freezeshot] | type[Burnshot]:
    for beat in (a, b):
        if beat.offset is not None:
            return type(beat.offset)
    return Freezeshot


def check_beats(beats: Iterable[ActualBeat], expected: Sequence[ExpectedBeat]) -> BeatCheck:
    """Diff authored oneshot beats against the expected beats.

    Args:
        beats: Authored oneshot beats.
        expected: Expected beats sorted by time.

    Returns:
        BeatCheck with every list sorted and de-duplicated under tolerance.
    """
    result = BeatCheck()
    expected_times = [e.time for e in expected]
    hit: list[ActualBeat] = []
    skipped: list[float] = []
    uncued: list[float] = []

    for beat in beats:
        outcome = match_beat(beat, expected, expected_times)
        status = outcome.status
        if status is BeatStatus.CUED:
            hit.append(beat)
            if outcome.skips is not None:
                skipped.append(outcome.skips)
        elif status is BeatStatus.UNCUED:
            uncued.append(beat.time)
        elif status is BeatStatus.UNEXPECTED_FREEZESHOT:
            result.unexpected_freezeshots.append(beat.time)
        elif status is BeatStatus.UNEXPECTED_BURNSHOT:
            result.unexpected_burnshots.append(beat.time)
        elif status is BeatStatus.UNEXPECTED_SKIPSHOT:
            result.unexpected_skipshots.append(beat.time)
        elif status is BeatStatus.OVERLAPPING_SKIPSHOT:
            result.overlapping_skipshots.append(beat.time)
        else:
            raise ValueError(f"Unhandled beat status: {status!r}")

    hit.sort(key=lambda b: b.time)
    hit_times = [b.time for b in hit]
    for beat in hit:
        for i in matches(hit_times, beat.time):
            other = hit[i]
            if almost_equal(other.shift, beat.shift):
                continue
            if _overlap_kind(beat, other) is Burnshot:
                result.overlapping_burnshots.append(beat.time)
            else:
                result.overlapping_freezeshots.append(beat.time)

    landings = sorted(b.landing for b in hit)
    result.uncued_hits = [t for t in uncued if not matches(landings, t)]

    skipped.sort()
    for instant in expected_times:
        is_hit = bool(matches(hit_times, instant))
        is_skipped = bool(matches(skipped, instant))
        if is_hit and is_skipped:
            result.skipped_hits.append(instant)
        elif not is_hit and not is_skipped:
            result.missing_hits.append(instant)

    for f in fields(result):
        setattr(result, f.name, sorted_times(getattr(result, f.name)))
    return result


def check_holds(hits: Iterable[float], holds: Iterable[Hold]) -> HoldCheck:
    """Find hits on hold releases and holds that touch or overlap.

    Overlaps are reported at the earlier hold's hit time.
    """
    result = HoldCheck()
    hit_times = sorted(hits)
    ordered = sorted(holds, key=lambda h: (h.hit, h.release))

    for hold in ordered:
        if matches(hit_times, hold.release):
            result.hit_on_hold_release.append(hold.release)

    # Sorted by hit, a hold overlaps some later hold iff it overlaps the next one
    for cur, nxt in zip(ordered, ordered[1:]):
        if nxt.hit < cur.release or almost_equal(nxt.hit, cur.release):
            result.overlapping_holds.append(cur.hit)

    result.hit_on_hold_release = sorted_times(result.hit_on_hold_release)
    result.overlapping_holds = sorted_times(result.overlapping_holds)
    return result
