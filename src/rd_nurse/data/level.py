"""Rhythm Doctor level decoder.

Turns ``.rdlevel`` text into the flat records the checker consumes:
voice cues, oneshot beats, literal hit times and holds, plus the bar and
tempo breakpoint tables used to print times back in bar/beat form.
All times are absolute seconds from the start of the level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from rd_nurse.data import rdjson
from rd_nurse.timing.time_index import (
    DEFAULT_BPM,
    BreakpointTable,
    bar_to_beat,
    beat_to_time,
    build_bar_table,
    build_tempo_table,
    crotchets_per_bar,
    seconds_per_beat,
)

logger = logging.getLogger(__name__)


class LevelFormatError(ValueError):
    """Raised when a level text cannot be decoded at all."""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class CueKind(str, Enum):
    GET = "get"
    SET = "set"
    GO = "go"
    STOP = "stop"
    PULSE = "pulse"


# Voice sources, in reporting order
NURSE = "nurse"
IAN = "ian"
CUE_SOURCES = (NURSE, IAN)


@dataclass(frozen=True, slots=True)
class Cue:
    """One voice cue. ``count`` is only meaningful for pulse cues."""

    time: float
    kind: CueKind
    source: str = NURSE
    count: int = 0

    @classmethod
    def get(cls, time: float, source: str = NURSE) -> Cue:
        return cls(time, CueKind.GET, source)

    @classmethod
    def set(cls, time: float, source: str = NURSE) -> Cue:
        return cls(time, CueKind.SET, source)

    @classmethod
    def go(cls, time: float, source: str = NURSE) -> Cue:
        return cls(time, CueKind.GO, source)

    @classmethod
    def stop(cls, time: float, source: str = NURSE) -> Cue:
        return cls(time, CueKind.STOP, source)

    @classmethod
    def pulse(cls, time: float, count: int, source: str = NURSE) -> Cue:
        return cls(time, CueKind.PULSE, source, count)


@dataclass(frozen=True, slots=True)
class Freezeshot:
    """The hit lands ``delay`` seconds after the cued instant."""

    interval: float
    delay: float

    @property
    def shift(self) -> float:
        return self.delay


@dataclass(frozen=True, slots=True)
class Burnshot:
    """The hit lands ``delay`` seconds before the cued instant."""

    interval: float
    delay: float

    @property
    def shift(self) -> float:
        return -self.delay


@dataclass(frozen=True, slots=True)
class ActualBeat:
    """A oneshot beat as authored.

    ``time`` is the cued instant the beat answers. ``offset.interval`` is the
    span from the shot's pulse to where the hit lands.
    """

    time: float
    skipshot: bool = False
    offset: Freezeshot | Burnshot | None = None

    @property
    def shift(self) -> float:
        return self.offset.shift if self.offset is not None else 0.0

    @property
    def landing(self) -> float:
        """Time the player actually presses."""
        return self.time + self.shift


@dataclass(frozen=True, slots=True)
class Hold:
    hit: float
    release: float


@dataclass(slots=True)
class Level:
    """Everything the checker needs from one level."""

    bar_table: BreakpointTable
    tempo_table: BreakpointTable
    cues: list[Cue] = field(default_factory=list)
    beats: list[ActualBeat] = field(default_factory=list)
    hits: list[float] = field(default_factory=list)
    holds: list[Hold] = field(default_factory=list)

    @property
    def has_burnshot(self) -> bool:
        return any(isinstance(beat.offset, Burnshot) for beat in self.beats)


# ---------------------------------------------------------------------------
# Event vocabularies
# ---------------------------------------------------------------------------

# Each phrase is spoken one ``tick`` apart; None is a syllable with no cue.
CUE_PHRASES: dict[str, tuple[Any, ...]] = {
    "SayReaDyGetSetGoNew": ("get", "set", "get", "set", "go"),
    "SayGetSetGo": ("get", "set", "go"),
    "SayReaDyGetSetOne": ("get", "set", "get", "set", 1),
    "SayGetSetOne": ("get", "set", 1),
    "JustSayRea": ("get",),
    "JustSayDy": ("set",),
    "JustSayGet": ("get",),
    "JustSaySet": ("set",),
    "JustSayGo": ("go",),
    "JustSayStop": ("stop",),
    "JustSayAndStop": ("stop",),
    "Count1": (1,),
    "Count2": (2,),
    "Count3": (3,),
    "Count4": (4,),
    "Count5": (5,),
    "SayReadyGetSetGo": (None, None, "get", "set", "go"),
}

VOICE_SOURCES: dict[str, str] = {
    "Nurse": NURSE,
    "NurseTired": NURSE,
    "IanExcited": IAN,
    "IanCalm": IAN,
    "IanSlow": IAN,
}

# Pulse cues sort first (by count), then go, stop, get, set
_KIND_ORDER = {CueKind.PULSE: 0, CueKind.GO: 1, CueKind.STOP: 2, CueKind.GET: 3, CueKind.SET: 4}

# Classic and free-time beats are hit on the seventh pulse
_HIT_PULSE = 6


def _make_cue(part: Any, time: float, source: str) -> Cue:
    if isinstance(part, int):
        return Cue.pulse(time, part, source)
    return Cue(time, CueKind(part), source)


def _cue_sort_key(cue: Cue) -> tuple[float, int, int, int]:
    return (cue.time, _KIND_ORDER[cue.kind], cue.count, CUE_SOURCES.index(cue.source))


@dataclass(slots=True)
class _FreeTime:
    """A free-time beat waiting for pulses."""

    row: int
    offset: float
    cpb: float
    beat: float
    pulse: int


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def read_level(path: Path | str) -> Level:
    """Read and decode a ``.rdlevel`` file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Level file not found: {path}")
    return parse_level(path.read_text(encoding="utf-8-sig"))


def parse_level(text: str) -> Level:
    """Decode level text.

    Args:
        text: Contents of a ``.rdlevel`` file.

    Returns:
        Level with cues, beats, hits and holds sorted by time.

    Raises:
        LevelFormatError: If the text is not an object with an ``events`` list.
    """
    data = rdjson.loads(text)
    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        raise LevelFormatError("Level text has no readable 'events' list")
    return parse_level_json(data)


def parse_level_json(data: dict[str, Any]) -> Level:
    """Decode an already-read level object."""
    enabled_rows = {
        row.get("row")
        for row in data.get("rows") or []
        if isinstance(row, dict) and not row.get("muteBeats", False)
    }
    events = sorted(
        (e for e in data["events"] if isinstance(e, dict) and e.get("active", True) is not False),
        key=lambda e: _number(e.get("bar"), 1),
    )
    # Conditional and tagged events may never run
    events = [e for e in events if not e.get("if") and not e.get("tag")]

    bar_table = _build_bar_table(events)
    tempo_table = _build_tempo_table(bar_table, events)
    level = Level(bar_table=bar_table, tempo_table=tempo_table)
    freetimes: list[_FreeTime] = []

    for event in events:
        event_type = event.get("type")
        bar = _number(event.get("bar"), 1)
        beat = bar_to_beat(bar_table, bar - 1) + (_number(event.get("beat"), 1) - 1)
        row = event.get("row")

        if event_type == "SayReadyGetSetGo":
            _add_cues(level, event, beat)
        elif event_type == "FinishLevel":
            time = beat_to_time(tempo_table, beat)
            level.cues.extend(Cue.stop(time, source) for source in CUE_SOURCES)
        elif row not in enabled_rows:
            continue
        elif event_type == "AddOneshotBeat":
            _add_oneshot_beats(level, event, beat)
        elif event_type == "AddClassicBeat":
            hold = _number(event.get("hold"), 0)
            _add_classic_beat(level, beat + _number(event.get("tick"), 1) * _HIT_PULSE, hold)
        elif event_type == "AddFreeTimeBeat":
            pulse = int(_number(event.get("pulse"), 0))
            if pulse == _HIT_PULSE:
                _add_classic_beat(level, beat, _number(event.get("hold"), 0))
                continue
            cpb = crotchets_per_bar(bar_table, bar - 1)
            freetimes.append(
                _FreeTime(
                    row=row,
                    offset=beat - (bar * cpb + _number(event.get("beat"), 1)),
                    cpb=cpb,
                    beat=beat,
                    pulse=pulse,
                )
            )
        elif event_type == "PulseFreeTimeBeat":
            freetimes = _pulse_freetimes(level, event, freetimes)

    level.cues.sort(key=_cue_sort_key)
    level.beats.sort(key=lambda b: (b.time, b.skipshot, b.landing))
    level.hits.sort()
    level.holds.sort(key=lambda h: (h.hit, h.release))
    logger.info(
        "Parsed level: %d cues, %d oneshot beats, %d hits, %d holds",
        len(level.cues), len(level.beats), len(level.hits), len(level.holds),
    )
    return level


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _build_bar_table(events: list[dict[str, Any]]) -> BreakpointTable:
    changes = [
        (_number(e.get("bar"), 1) - 1, _number(e.get("crotchetsPerBar"), 8))
        for e in events
        if e.get("type") == "SetCrotchetsPerBar"
    ]
    return build_bar_table(changes)


def _build_tempo_table(bar_table: BreakpointTable, events: list[dict[str, Any]]) -> BreakpointTable:
    default_bpm: float | None = None
    changes: list[tuple[float, float]] = []
    for e in events:
        if e.get("type") == "PlaySong":
            bpm = _number(e.get("bpm"), DEFAULT_BPM)
            if default_bpm is None:
                default_bpm = bpm
        elif e.get("type") == "SetBeatsPerMinute":
            bpm = _number(e.get("beatsPerMinute"), DEFAULT_BPM)
        else:
            continue
        beat = bar_to_beat(bar_table, _number(e.get("bar"), 1) - 1) + (_number(e.get("beat"), 1) - 1)
        changes.append((beat, bpm))
    return build_tempo_table(changes, default_bpm or DEFAULT_BPM)


def _add_cues(level: Level, event: dict[str, Any], beat: float) -> None:
    phrase = event.get("phraseToSay") or "SayReadyGetSetGo"
    parts = CUE_PHRASES.get(phrase)
    if parts is None:
        logger.warning("Unknown cue phrase %r; ignoring", phrase)
        return
    source = VOICE_SOURCES.get(event.get("voiceSource") or "Nurse", NURSE)
    tick = _number(event.get("tick"), 1)
    time = beat_to_time(level.tempo_table, beat)
    spb = seconds_per_beat(level.tempo_table, beat)
    for pos, part in enumerate(parts):
        if part is not None:
            level.cues.append(_make_cue(part, time + tick * pos * spb, source))


def _add_oneshot_beats(level: Level, event: dict[str, Any], beat: float) -> None:
    tick = _number(event.get("tick"), 1)
    loops = int(_number(event.get("loops"), 0))
    interval = _number(event.get("interval"), 0)
    delay = _number(event.get("delay"), 0)
    skipshot = bool(event.get("skipshot", False))
    mode = event.get("freezeBurnMode")
    if mode == "None":
        delay = 0
    time = beat_to_time(level.tempo_table, beat)
    spb = seconds_per_beat(level.tempo_table, beat)

    for pos in range(loops + 1):
        start = time + interval * pos * spb
        offset: Freezeshot | Burnshot | None = None
        if delay:
            landing = start + interval * spb
            if mode == "Burnshot":
                offset = Burnshot(interval=interval * spb, delay=delay * spb)
            else:
                offset = Freezeshot(interval=interval * spb, delay=delay * spb)
            cued = landing - offset.shift
        else:
            cued = landing = start + tick * spb
        level.beats.append(ActualBeat(time=cued, skipshot=skipshot and pos == loops, offset=offset))
        level.hits.append(landing)


def _add_classic_beat(level: Level, beat: float, hold: float) -> None:
    hit = beat_to_time(level.tempo_table, beat)
    if hold:
        level.holds.append(Hold(hit=hit, release=beat_to_time(level.tempo_table, beat + hold)))
    else:
        level.hits.append(hit)


def _pulse_freetimes(level: Level, event: dict[str, Any], freetimes: list[_FreeTime]) -> list[_FreeTime]:
    """Advance free-time beats on the pulsed row; return those still waiting."""
    action = event.get("action")
    hold = _number(event.get("hold"), 0)
    bar = _number(event.get("bar"), 1)
    remaining: list[_FreeTime] = []
    for freetime in freetimes:
        if freetime.row != event.get("row"):
            remaining.append(freetime)
            continue
        beat = freetime.offset + bar * freetime.cpb + _number(event.get("beat"), 1)
        if beat > freetime.beat:
            if action == "Remove":
                continue
            if action == "Decrement":
                freetime.pulse = max(freetime.pulse - 1, 0)
            elif action == "Custom":
                freetime.pulse = int(_number(event.get("customPulse"), 0))
            else:
                freetime.pulse += 1
            if freetime.pulse == _HIT_PULSE:
                _add_classic_beat(level, beat, hold)
                continue
        remaining.append(freetime)
    return remaining
