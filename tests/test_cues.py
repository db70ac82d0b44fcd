"""Tests for evaluation/cues.py: Cue pattern reconstruction."""

from __future__ import annotations

import itertools

import pytest

from rd_nurse.config import CheckOptions
from rd_nurse.data.level import IAN, NURSE, Cue, CueKind
from rd_nurse.evaluation.cues import (
    EMPTY_PATTERN,
    ExpectedBeat,
    Marker,
    Pattern,
    Source,
    check_cue,
    play_cues,
    play_normal,
    play_subdiv,
)


def _e(time: float, prev: float | None = None, next: float | None = None) -> ExpectedBeat:
    """Shorthand for an ExpectedBeat."""
    return ExpectedBeat(time=time, prev=prev, next=next)


def _get(time: float) -> Marker:
    return Marker(CueKind.GET, time)


def _set(time: float) -> Marker:
    return Marker(CueKind.SET, time)


# ---------------------------------------------------------------------------
# check_cue
# ---------------------------------------------------------------------------


class TestCheckCue:
    def test_get_set_pairs_find_minimal_period(self):
        pattern = check_cue([_get(0), _set(1), _get(2), _set(3)], 4)
        assert pattern == Pattern(interval=2, offsets=(1,), squareshot=True)

    def test_single_get_set(self):
        pattern = check_cue([_get(2), _set(3)], 4)
        assert pattern == Pattern(interval=2, offsets=(1,), squareshot=True)

    def test_lone_set_synthesizes_square(self):
        pattern = check_cue([_set(11)], 12)
        assert pattern == Pattern(interval=2, offsets=(1,), squareshot=True)

    def test_irregular_sets_keep_full_period(self):
        pattern = check_cue([_get(22), _set(22.5), _get(22.75), _set(23.25), _set(23.5)], 24)
        assert pattern is not None
        assert pattern.interval == pytest.approx(2)
        assert pattern.offsets == pytest.approx((0.5, 1.25, 1.5))
        assert not pattern.squareshot

    def test_two_sets_per_period_is_not_square(self):
        pattern = check_cue([_get(8), _set(9), _get(9.5), _set(10.5)], 12)
        assert pattern is not None
        assert pattern.interval == pytest.approx(4)
        assert pattern.offsets == pytest.approx((1, 2.5))
        assert not pattern.squareshot

    def test_get_only_is_inert(self):
        pattern = check_cue([_get(5)], 6)
        assert pattern is not None
        assert not pattern.playable

    def test_empty_keeps_previous(self):
        previous = Pattern(interval=2, offsets=(1,), squareshot=True)
        assert check_cue([], 10, previous) is previous

    def test_empty_without_previous_is_invalid(self):
        assert check_cue([], 10, EMPTY_PATTERN) is None

    def test_starting_with_set_is_invalid(self):
        assert check_cue([_set(2), _set(3)], 4) is None

    def test_set_on_first_marker_is_invalid(self):
        assert check_cue([_get(14), _set(14)], 16) is None

    def test_set_coincident_under_tolerance_is_invalid(self):
        assert check_cue([_get(14), _set(14 * (1 + 1e-6))], 16) is None

    def test_tolerant_period_detection(self):
        pattern = check_cue([_get(0), _set(1), _get(2), _set(3 + 1e-6)], 4)
        assert pattern is not None
        assert pattern.offsets == (1,)

    def test_period_detection_is_relative_to_first_marker(self):
        pattern = check_cue([_get(1000), _set(1001), _get(1002), _set(1003.3)], 1004)
        assert pattern is not None
        assert pattern.interval == pytest.approx(4)
        assert pattern.offsets == pytest.approx((1, 3.3))
        assert not pattern.squareshot

    def test_late_square_pattern(self):
        pattern = check_cue([_get(1000), _set(1001), _get(1002), _set(1003)], 1004)
        assert pattern == Pattern(interval=2, offsets=(1,), squareshot=True)


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class TestPlayNormal:
    def test_projects_up_to_end_time(self):
        source = Source(start_time=4, playing=Pattern(interval=2, offsets=(1,)))
        assert list(play_normal(source, 8)) == [_e(5, None, 7), _e(7, 5, 9)]

    def test_end_time_is_inclusive(self):
        source = Source(start_time=4, playing=Pattern(interval=2, offsets=(1,)))
        assert [b.time for b in play_normal(source, 9)] == [5, 7, 9]

    def test_inactive_source_yields_nothing(self):
        source = Source(playing=Pattern(interval=2, offsets=(1,)))
        assert list(play_normal(source, 100)) == []

    def test_unplayable_pattern_yields_nothing(self):
        source = Source(start_time=0, playing=Pattern(interval=1))
        assert list(play_normal(source, 100)) == []

    def test_is_lazy(self):
        source = Source(start_time=0, playing=Pattern(interval=1e-9, offsets=(0.5e-9,)))
        first = list(itertools.islice(play_normal(source, 1e9), 3))
        assert len(first) == 3
        assert first[1].prev == first[0].time


class TestPlaySubdiv:
    def test_square_layout(self):
        pattern = Pattern(interval=2, offsets=(1,), squareshot=True)
        assert list(play_subdiv(pattern, 5.5, 2)) == [_e(6.5), _e(7.5)]

    def test_triangle_layout(self):
        pattern = Pattern(interval=2, offsets=(1,), squareshot=True)
        assert list(play_subdiv(pattern, 5.5, 2, triangleshot=True)) == [_e(7), _e(7.5)]

    def test_triangle_scales_with_count(self):
        pattern = Pattern(interval=2, offsets=(1,), squareshot=True)
        times = [b.time for b in play_subdiv(pattern, 0, 4, triangleshot=True)]
        assert times == pytest.approx([1.5, 1.75, 2.0, 2.25])

    def test_single_beat_ignores_triangle(self):
        pattern = Pattern(interval=2, offsets=(1,), squareshot=True)
        assert list(play_subdiv(pattern, 4, 1, triangleshot=True)) == [_e(5)]


# ---------------------------------------------------------------------------
# play_cues
# ---------------------------------------------------------------------------


class TestPlayCues:
    def test_correct_cues(self):
        cues = [
            Cue.stop(1),
            Cue.get(2), Cue.set(3), Cue.go(4),
            Cue.stop(7),
            Cue.set(11), Cue.go(12),
            Cue.get(14), Cue.set(15.5), Cue.go(16),
            Cue.get(18), Cue.set(18.5), Cue.get(19), Cue.set(19.5), Cue.go(20),
            Cue.get(22), Cue.set(22.5), Cue.get(22.75), Cue.set(23.25), Cue.set(23.5), Cue.go(24),
            Cue.get(26), Cue.set(27), Cue.go(28),
            Cue.pulse(32, 1),
            Cue.pulse(33.5, 2),
            Cue.stop(39),
        ]
        playback = play_cues(cues, CheckOptions(triangleshot=True))
        assert playback.expected == [
            _e(5, None, 7), _e(7, 5, 9),
            _e(13, None, 15), _e(15, 13, 17),
            _e(17.5, None, 19.5), _e(19.5, 17.5, 21.5),
            _e(20.5, None, 21.5), _e(21.5, 20.5, 22.5), _e(22.5, 21.5, 23.5), _e(23.5, 22.5, 24.5),
            _e(24.5, None, 25.25), _e(25.25, 24.5, 25.5), _e(25.5, 25.25, 26.5),
            _e(26.5, 25.5, 27.25), _e(27.25, 26.5, 27.5), _e(27.5, 27.25, 28.5),
            _e(29, None, 31), _e(31, 29, 33),
            _e(33), _e(33, 31, 35),
            _e(35), _e(35, 33, 37),
            _e(35.5),
            _e(37, 35, 39), _e(39, 37, 41),
        ]
        assert playback.invalid_cues == []

    def test_incorrect_cues(self):
        cues = [
            Cue.go(0),
            Cue.pulse(1, 1),
            Cue.set(2), Cue.set(3), Cue.go(4),
            Cue.get(5), Cue.go(6),
            Cue.stop(7),
            Cue.get(8), Cue.set(9), Cue.get(9.5), Cue.set(10.5), Cue.pulse(12, 1),
            Cue.get(14), Cue.set(14), Cue.pulse(16, 1),
        ]
        playback = play_cues(cues)
        assert playback.expected == []
        assert playback.invalid_cues == [1, 4, 12, 16]

    def test_sources_are_independent(self):
        cues = [
            Cue.get(2, NURSE), Cue.set(3, IAN),
            Cue.pulse(4, 1, NURSE), Cue.pulse(6, 1, IAN),
        ]
        playback = play_cues(cues)
        assert playback.expected == [_e(9)]
        assert playback.invalid_cues == [4]

    def test_ignore_voice_source(self):
        cues = [
            Cue.get(2, NURSE), Cue.set(3, IAN),
            Cue.pulse(4, 1, NURSE), Cue.pulse(6, 1, IAN),
        ]
        playback = play_cues(cues, CheckOptions(ignore_voice_source=True))
        assert playback.expected == [_e(5), _e(7)]
        assert playback.invalid_cues == []

    def test_pulse_does_not_interrupt_by_default(self):
        cues = [Cue.get(2), Cue.set(3), Cue.go(4), Cue.pulse(8, 1), Cue.stop(11)]
        playback = play_cues(cues)
        assert playback.expected == [_e(5, None, 7), _e(7, 5, 9), _e(9), _e(9, 7, 11), _e(11, 9, 13)]

    def test_interruptible_pattern(self):
        cues = [Cue.get(2), Cue.set(3), Cue.go(4), Cue.pulse(8, 1), Cue.stop(11)]
        playback = play_cues(cues, CheckOptions(interruptible_pattern=True))
        assert playback.expected == [_e(5, None, 7), _e(7, 5, 9), _e(9)]

    def test_triangleshot_option(self):
        cues = [Cue.get(2), Cue.set(3), Cue.pulse(4, 1), Cue.pulse(5.5, 2)]
        assert play_cues(cues, CheckOptions(triangleshot=True)).expected == [_e(5), _e(7), _e(7.5)]
        assert play_cues(cues).expected == [_e(5), _e(6.5), _e(7.5)]

    def test_square_pattern_does_not_replace_running_pattern(self):
        cues = [
            Cue.get(0), Cue.set(1), Cue.go(2),
            Cue.get(4), Cue.set(4.5), Cue.pulse(5, 1),
            Cue.stop(7),
        ]
        playback = play_cues(cues)
        assert playback.expected == [_e(3, None, 5), _e(5, 3, 7), _e(5.5), _e(7, 5, 9)]

    def test_go_then_stop_without_markers(self):
        playback = play_cues([Cue.go(1), Cue.stop(2)])
        assert playback.expected == []
        assert playback.invalid_cues == []

    def test_bare_go_restarts_running_pattern(self):
        cues = [Cue.get(0), Cue.set(1), Cue.go(2), Cue.stop(4), Cue.go(10), Cue.stop(14)]
        playback = play_cues(cues)
        assert playback.expected == [_e(3, None, 5), _e(11, None, 13), _e(13, 11, 15)]
        assert playback.invalid_cues == []

    def test_failed_go_keeps_running_pattern(self):
        cues = [Cue.get(0), Cue.set(1), Cue.go(2), Cue.set(4), Cue.set(5), Cue.go(6), Cue.stop(10)]
        playback = play_cues(cues)
        assert playback.expected == [_e(3, None, 5), _e(5, 3, 7), _e(7, None, 9), _e(9, 7, 11)]
        assert playback.invalid_cues == [6]

    def test_pulse_keeps_previous_square_pattern(self):
        cues = [Cue.set(0), Cue.pulse(1, 1), Cue.pulse(3, 3)]
        playback = play_cues(cues)
        assert [b.time for b in playback.expected] == [2, 4, 5, 6]
        assert playback.invalid_cues == []

    def test_duplicate_beats_are_merged(self):
        cues = [Cue.set(0), Cue.pulse(1, 1), Cue.set(1), Cue.pulse(1.5, 1)]
        playback = play_cues(cues)
        assert playback.expected == [_e(2)]
