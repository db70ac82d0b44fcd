"""CLI: Check a Rhythm Doctor level for illegal oneshots and holds.

Usage:
    rd-nurse level.rdlevel
    rd-nurse -t < level.rdlevel
    rd-nurse level.rdlevel --config configs/check.yaml --set ignore_voice_source=true

Exit status is 1 when anything is reported, 2 on bad usage or an
unreadable level.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from omegaconf.errors import OmegaConfBaseException

from rd_nurse.config import load_options
from rd_nurse.data.level import Level, LevelFormatError, parse_level
from rd_nurse.evaluation.errors import ErrorKind
from rd_nurse.evaluation.validate import CheckResult, check_level
from rd_nurse.timing.time_index import format_time, split_bar, time_to_beat

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rd-nurse",
        description="Check a Rhythm Doctor level for illegal oneshots and holds. "
        "The level is read from LEVEL, or from stdin when omitted.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("level", type=Path, nargs="?", default=None, help="Input .rdlevel file")
    parser.add_argument(
        "-s",
        "--ignore-source",
        action="store_const",
        const=True,
        dest="ignore_voice_source",
        help="Ignore the voice sources of the cues",
    )
    parser.add_argument(
        "-p",
        "--interruptible-pattern",
        action="store_const",
        const=True,
        dest="interruptible_pattern",
        help="Make squareshots stop oneshot patterns",
    )
    parser.add_argument(
        "-t",
        "--triangleshot",
        action="store_const",
        const=True,
        help="Enable triangleshots",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with checker options",
    )
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        dest="overrides",
        metavar="KEY=VALUE",
        help="Override one checker option (repeatable)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def format_report(result: CheckResult, level: Level) -> str:
    """One line per kind with findings, times shown as ``bar-beat``."""
    lines: list[str] = []
    for kind in ErrorKind:
        times = result.times(kind)
        if not times:
            continue
        shown = ", ".join(
            format_time(*split_bar(level.bar_table, time_to_beat(level.tempo_table, t)))
            for t in times
        )
        lines.append(f"{kind.description}: {shown}")
    return "".join(f"{line}\n" for line in lines)


def _read_input(path: Path | None, stdin: TextIO) -> str:
    if path is not None:
        return path.read_text(encoding="utf-8-sig")
    if stdin.isatty():
        logger.warning("Reading from stdin which is a terminal")
    return stdin.read()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the rd-nurse CLI command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.level is not None and not args.level.exists():
        parser.error(f"Level file not found: {args.level}")

    overrides = list(args.overrides)
    for key in ("ignore_voice_source", "interruptible_pattern", "triangleshot"):
        if getattr(args, key):
            overrides.append(f"{key}=true")
    try:
        options = load_options(args.config, overrides)
    except OmegaConfBaseException as e:
        parser.error(f"Invalid options: {e}")

    text = _read_input(args.level, sys.stdin)
    if not text:
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    try:
        level = parse_level(text)
    except LevelFormatError as e:
        logger.error("%s", e)
        return EXIT_USAGE

    result = check_level(level, options)
    if level.has_burnshot:
        logger.warning("Level contains burnshots; results may be incorrect")

    sys.stdout.write(format_report(result, level))
    return EXIT_FINDINGS if result else EXIT_CLEAN


if __name__ == "__main__":
    sys.exit(main())
