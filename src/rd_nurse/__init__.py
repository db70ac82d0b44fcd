"""Checks Rhythm Doctor levels for illegal oneshots and holds."""

from rd_nurse.config import CheckOptions, load_options
from rd_nurse.data.level import Level, LevelFormatError, parse_level, read_level
from rd_nurse.evaluation.validate import CheckResult, check_level, validate_level

__version__ = "0.1.0"

__all__ = [
    "CheckOptions",
    "CheckResult",
    "Level",
    "LevelFormatError",
    "check_level",
    "load_options",
    "parse_level",
    "read_level",
    "validate_level",
]
