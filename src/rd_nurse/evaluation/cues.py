"""Reconstruct the beats a voice-cued oneshot pattern asks the player for.

Each voice source runs a small state machine over its cues:

    - get/set markers accumulate as pending
    - go closes the pending markers into a repeating pattern and starts it
    - stop ends the running pattern
    - a counted pulse closes the pending markers into a square pattern and
      fires ``count`` one-off beats

A repeating pattern is an interval plus offsets within one repetition. It
is projected lazily: the beats are generated only up to the cue that ends
the run, however small the interval is.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from rd_nurse.config import CheckOptions
from rd_nurse.data.level import NURSE, Cue, CueKind
from rd_nurse.evaluation.errors import sorted_times
from rd_nurse.timing.tolerance import almost_equal, unique

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Pattern:
    """A repeating layout: ``offsets`` recur every ``interval`` seconds.

    ``squareshot`` marks patterns whose every repetition is a single
    get-set pair, the only shape a counted pulse can play.
    """

    interval: float = 0.0
    offsets: tuple[float, ...] = ()
    squareshot: bool = False

    @property
    def playable(self) -> bool:
        return self.interval > 0 and len(self.offsets) > 0

    @property
    def tick(self) -> float:
        """Spacing of square beats: the get-to-set distance."""
        return self.offsets[0]


EMPTY_PATTERN = Pattern()


@dataclass(frozen=True, slots=True)
class Marker:
    kind: CueKind
    time: float


@dataclass(slots=True)
class Source:
    """Per-voice state for one reconstruction pass.

    ``pattern`` is the last confirmed pattern; ``playing`` is the one a go
    started at ``start_time``. They differ once a pulse confirms a square
    pattern while a repeating run continues.
    """

    start_time: float | None = None
    cue_time: float | None = None
    pattern: Pattern = EMPTY_PATTERN
    playing: Pattern = EMPTY_PATTERN
    pending: list[Marker] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.start_time is not None


@dataclass(frozen=True, slots=True)
class ExpectedBeat:
    """An instant the cues ask for, with its neighbours in the same run.

    ``prev`` is None on the first beat of a run; square beats have neither.
    """

    time: float
    prev: float | None = None
    next: float | None = None


@dataclass(slots=True)
class CuePlayback:
    expected: list[ExpectedBeat] = field(default_factory=list)
    invalid_cues: list[float] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pattern inference
# ---------------------------------------------------------------------------


def _divisors(n: int) -> list[int]:
    return [d for d in range(1, n + 1) if n % d == 0]


def _min_period(set_offsets: Sequence[float], length: float) -> int:
    """Smallest number of set markers per repetition.

    Offsets are measured from the first marker, which starts a span of
    ``length`` seconds. Splitting them into ``n / size`` repetitions is
    valid when every marker recurs one repetition later.
    """
    n = len(set_offsets)
    for size in _divisors(n):
        interval = length * size / n
        if all(
            almost_equal(set_offsets[i], set_offsets[i % size] + (i // size) * interval)
            for i in range(size, n)
        ):
            return size
    return n


def check_cue(pending: Sequence[Marker], time: float, previous: Pattern = EMPTY_PATTERN) -> Pattern | None:
    """Close pending markers into a pattern.

    Args:
        pending: Get/set markers in time order.
        time: Time of the go or pulse closing them.
        previous: Pattern confirmed before, kept when nothing is pending.

    Returns:
        The pattern to use from ``time`` on, or None if the markers do not
        form one.
    """
    if not pending:
        return previous if previous.interval > 0 else None

    first = pending[0]
    if len(pending) == 1 and first.kind is CueKind.SET:
        tick = time - first.time
        if tick <= 0 or almost_equal(time, first.time):
            return None
        return Pattern(interval=2 * tick, offsets=(tick,), squareshot=True)

    if first.kind is not CueKind.GET:
        return None
    length = time - first.time
    if length <= 0 or almost_equal(time, first.time):
        return None

    if any(m.kind is CueKind.SET and almost_equal(m.time, first.time) for m in pending):
        return None
    get_offsets = [m.time - first.time for m in pending if m.kind is CueKind.GET]
    set_offsets = [m.time - first.time for m in pending if m.kind is CueKind.SET]
    if not set_offsets:
        return Pattern(interval=length)

    size = _min_period(set_offsets, length)
    interval = length * size / len(set_offsets)
    squareshot = len(get_offsets) == len(set_offsets) and all(
        almost_equal(t, i * interval) for i, t in enumerate(get_offsets)
    )
    return Pattern(
        interval=interval,
        offsets=tuple(set_offsets[:size]),
        squareshot=squareshot,
    )


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def _terms(start_time: float, pattern: Pattern) -> Iterator[float]:
    for group in itertools.count():
        base = start_time + group * pattern.interval
        for offset in pattern.offsets:
            yield base + offset


def play_normal(source: Source, end_time: float) -> Iterator[ExpectedBeat]:
    """Beats of the running pattern up to ``end_time`` inclusive."""
    if source.start_time is None or not source.playing.playable:
        return
    terms = _terms(source.start_time, source.playing)
    prev: float | None = None
    cur = next(terms)
    while cur < end_time or almost_equal(cur, end_time):
        following = next(terms)
        yield ExpectedBeat(time=cur, prev=prev, next=following)
        prev, cur = cur, following


def play_subdiv(pattern: Pattern, start_time: float, count: int, triangleshot: bool = False) -> Iterator[ExpectedBeat]:
    """One-off beats fired by a counted pulse.

    Square beats fall one tick apart after the pulse. With ``triangleshot``
    and more than one beat they are instead spread over the half tick
    starting 1.5 ticks after the pulse.
    """
    if not pattern.playable:
        return
    tick = pattern.tick
    if triangleshot and count > 1:
        for i in range(count):
            yield ExpectedBeat(time=start_time + tick * (1.5 + i / count))
    else:
        for i in range(1, count + 1):
            yield ExpectedBeat(time=start_time + tick * i)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def _close_pending(source: Source, time: float) -> Pattern | None:
    pattern = check_cue(source.pending, time, source.pattern)
    source.pending.clear()
    if pattern is not None:
        source.cue_time = time
        logger.debug(
            "Pattern confirmed at %.3f: interval=%.3f offsets=%s squareshot=%s",
            time, pattern.interval, pattern.offsets, pattern.squareshot,
        )
    return pattern


def _stop(source: Source, time: float, expected: list[ExpectedBeat]) -> None:
    expected.extend(play_normal(source, time))
    source.start_time = None


def _beat_sort_key(beat: ExpectedBeat) -> tuple[float, float, float]:
    missing = float("-inf")
    return (
        beat.time,
        missing if beat.next is None else beat.next,
        missing if beat.prev is None else beat.prev,
    )


def _same_neighbour(a: float | None, b: float | None) -> bool:
    if a is None or b is None:
        return a is b
    return almost_equal(a, b)


def _same_beat(a: ExpectedBeat, b: ExpectedBeat) -> bool:
    return almost_equal(a.time, b.time) and _same_neighbour(a.prev, b.prev) and _same_neighbour(a.next, b.next)


def play_cues(cues: Iterable[Cue], options: CheckOptions | None = None) -> CuePlayback:
    """Run every source's state machine over ``cues``.

    Args:
        cues: Cues in time order.
        options: ``ignore_voice_source`` merges all sources into one;
            ``interruptible_pattern`` lets a pulse end a running pattern;
            ``triangleshot`` enables the triangle layout for pulses.

    Returns:
        CuePlayback with expected beats sorted by time then ``next``, and the
        times of cues that did not form a pattern.
    """
    options = options or CheckOptions()
    expected: list[ExpectedBeat] = []
    invalid: list[float] = []
    sources: dict[str, Source] = {}

    for cue in cues:
        time = cue.time
        key = NURSE if options.ignore_voice_source else cue.source
        source = sources.get(key)
        if source is None:
            source = sources[key] = Source()

        if cue.kind in (CueKind.GET, CueKind.SET):
            source.pending.append(Marker(cue.kind, time))
        elif cue.kind is CueKind.GO:
            expected.extend(play_normal(source, time))
            # A bare go restarts whatever pattern is playing
            if source.pending:
                pattern = _close_pending(source, time)
                if pattern is None:
                    invalid.append(time)
                else:
                    source.pattern = source.playing = pattern
            source.start_time = time
        elif cue.kind is CueKind.STOP:
            _stop(source, time, expected)
        elif cue.kind is CueKind.PULSE:
            if options.interruptible_pattern:
                _stop(source, time, expected)
            pattern = _close_pending(source, time)
            if pattern is None or not pattern.squareshot:
                invalid.append(time)
            else:
                source.pattern = pattern
                expected.extend(play_subdiv(pattern, time, cue.count, options.triangleshot))
        else:
            raise ValueError(f"Unknown cue kind: {cue.kind!r}")

    expected = unique(sorted(expected, key=_beat_sort_key), _same_beat)
    logger.debug("Reconstructed %d expected beats from %d sources", len(expected), len(sources))
    return CuePlayback(expected=expected, invalid_cues=sorted_times(invalid))
