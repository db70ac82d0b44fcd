"""Tests for the rd-nurse command line."""

from __future__ import annotations

import io
import json
import sys

import pytest

from rd_nurse.cli import EXIT_CLEAN, EXIT_FINDINGS, EXIT_USAGE, build_parser, format_report, main
from rd_nurse.data.level import parse_level
from rd_nurse.evaluation.validate import CheckResult


def _level_text(*oneshot_bars: tuple[int, float]) -> str:
    """60 bpm get-set-go level with oneshots cued one beat after each ``(bar, beat)``."""
    events = [
        {"bar": 1, "beat": 1, "type": "PlaySong", "bpm": 60},
        {"bar": 1, "beat": 1, "type": "SayReadyGetSetGo", "phraseToSay": "SayGetSetGo", "tick": 1},
        *(
            {"bar": bar, "beat": beat, "row": 0, "type": "AddOneshotBeat", "tick": 1, "interval": 2}
            for bar, beat in oneshot_bars
        ),
        {"bar": 2, "beat": 1, "type": "FinishLevel"},
    ]
    return json.dumps({"rows": [{"row": 0}], "events": events})


CLEAN = _level_text((1, 3), (1, 5), (1, 7))
MISSING_ONE = _level_text((1, 3), (1, 7))


@pytest.fixture
def level_file(tmp_path):
    def write(text: str):
        path = tmp_path / "level.rdlevel"
        path.write_text(text, encoding="utf-8")
        return path

    return write


class TestMain:
    def test_clean_level(self, level_file, capsys):
        assert main([str(level_file(CLEAN))]) == EXIT_CLEAN
        assert capsys.readouterr().out == ""

    def test_findings(self, level_file, capsys):
        assert main([str(level_file(MISSING_ONE))]) == EXIT_FINDINGS
        assert capsys.readouterr().out == "Missing hit: 1-6\n"

    def test_reads_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "stdin", io.StringIO(MISSING_ONE))
        assert main(["-t"]) == EXIT_FINDINGS
        assert capsys.readouterr().out == "Missing hit: 1-6\n"

    def test_empty_input(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "stdin", io.StringIO(""))
        assert main([]) == EXIT_USAGE
        assert "usage" in capsys.readouterr().err

    def test_unreadable_level(self, level_file):
        assert main([str(level_file("[:"))]) == EXIT_USAGE

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path / "nope.rdlevel")])
        assert exc.value.code == EXIT_USAGE

    def test_bad_override(self, level_file):
        with pytest.raises(SystemExit) as exc:
            main([str(level_file(CLEAN)), "--set", "squareshot=true"])
        assert exc.value.code == EXIT_USAGE

    def test_config_file(self, level_file, tmp_path):
        config = tmp_path / "check.yaml"
        config.write_text("ignore_voice_source: true\n")
        assert main([str(level_file(CLEAN)), "--config", str(config)]) == EXIT_CLEAN


class TestParser:
    def test_flags(self):
        args = build_parser().parse_args(["-s", "-p", "-t", "level.rdlevel"])
        assert args.ignore_voice_source is True
        assert args.interruptible_pattern is True
        assert args.triangleshot is True

    def test_flags_default_unset(self):
        args = build_parser().parse_args([])
        assert args.level is None
        assert args.triangleshot is None
        assert args.overrides == []


class TestFormatReport:
    def test_one_line_per_kind(self):
        level = parse_level(CLEAN)
        result = CheckResult(invalid_cues=[0.5], missing_hits=[5.0, 9.0])
        assert format_report(result, level) == "Invalid cue: 1-1.5\nMissing hit: 1-6, 2-2\n"

    def test_empty(self):
        assert format_report(CheckResult(), parse_level(CLEAN)) == ""
