"""Level reading and the records the checker consumes."""

from rd_nurse.data.level import (
    CUE_SOURCES,
    ActualBeat,
    Burnshot,
    Cue,
    CueKind,
    Freezeshot,
    Hold,
    Level,
    LevelFormatError,
    parse_level,
    parse_level_json,
    read_level,
)
from rd_nurse.data.rdjson import loads

__all__ = [
    # Records
    "CUE_SOURCES",
    "ActualBeat",
    "Burnshot",
    "Cue",
    "CueKind",
    "Freezeshot",
    "Hold",
    "Level",
    # Parsers
    "LevelFormatError",
    "loads",
    "parse_level",
    "parse_level_json",
    "read_level",
]
