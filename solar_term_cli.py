# -*- coding: utf-8 -*-
"""
Print the current, previous and next solar terms for an instant.

Usage:
    python solar_term_cli.py <de442.bsp | kernel dir> [ISO instant] [--jd JD] [--tz HOURS]

Instants without an explicit offset are read as UTC. Term starts are printed
both in UTC and, with --tz, in the given fixed offset.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from typing import List, Optional

from astropy.time import Time

from core.display import format_local_minute
from core.errors import InvalidInputError, SolarTermError
from core.oracle import EphemerisError, SpiceSunOracle, load_ephemeris
from core.resolver import SolarTermResolver

LOGGER = logging.getLogger("solarterm-cli")


def parse_instant(text: Optional[str], jd: Optional[float]) -> datetime:
    """Parse the CLI instant with astropy, defaulting to the current time."""

    if text is not None and jd is not None:
        raise InvalidInputError("give either an ISO instant or --jd, not both")
    try:
        if jd is not None:
            moment = Time(jd, format="jd", scale="utc")
        elif text is not None:
            moment = Time(text, scale="utc")
        else:
            return datetime.now(UTC)
        return moment.to_datetime(timezone=UTC)
    except ValueError as exc:
        raise InvalidInputError(f"unparseable instant: {text if jd is None else jd}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solar term for an instant")
    parser.add_argument("ephemeris", help="DE .bsp file or directory of kernels")
    parser.add_argument("instant", nargs="?", default=None, help="ISO-8601 instant (UTC)")
    parser.add_argument("--jd", type=float, default=None, help="Julian date (UTC)")
    parser.add_argument("--tz", type=float, default=None, help="fixed offset from UTC in hours")
    parser.add_argument("--json", action="store_true", help="emit JSON instead of text")
    return parser


def _line(label: str, name: str, when: datetime, tz: Optional[float]) -> str:
    text = f"{label}  {name} {when.isoformat().replace('+00:00', 'Z')}"
    if tz is not None:
        text += f"  ({format_local_minute(when, tz)} UTC{tz:+g})"
    return text


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    args = build_parser().parse_args(argv)

    try:
        instant = parse_instant(args.instant, args.jd)
        load_ephemeris(args.ephemeris)
        result = SolarTermResolver(SpiceSunOracle()).resolve(instant)
    except (SolarTermError, EphemerisError) as exc:
        LOGGER.error(json.dumps({"event": "error", "error": str(exc)}))
        return 1

    if args.json:
        print(json.dumps(result.as_dict(), default=lambda value: value.isoformat(), ensure_ascii=False))
        return 0

    print(_line("上一", result.previous.name, result.previous.start_time, args.tz))
    print(_line("当前", result.current.name, result.current.start_time, args.tz))
    print(_line("下一", result.next.name, result.next.start_time, args.tz))
    print(f"太阳视黄经 {result.meta.raw_longitude:.6f}°")
    return 0


if __name__ == "__main__":
    sys.exit(main())
