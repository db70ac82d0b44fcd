"""Cue reconstruction, beat/hold diffing and the findings they produce."""

from rd_nurse.evaluation.beats import BeatCheck, HoldCheck, check_beats, check_holds
from rd_nurse.evaluation.cues import CuePlayback, ExpectedBeat, Pattern, check_cue, play_cues
from rd_nurse.evaluation.errors import ErrorKind, LevelError, sort_errors
from rd_nurse.evaluation.validate import CheckResult, check_level, validate_level

__all__ = [
    # Cues
    "CuePlayback",
    "ExpectedBeat",
    "Pattern",
    "check_cue",
    "play_cues",
    # Beats
    "BeatCheck",
    "HoldCheck",
    "check_beats",
    "check_holds",
    # Findings
    "CheckResult",
    "ErrorKind",
    "LevelError",
    "check_level",
    "sort_errors",
    "validate_level",
]
