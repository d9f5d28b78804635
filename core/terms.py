"""The 24 solar terms and the mapping from ecliptic longitude to a term index."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Tuple

__all__ = [
    "SolarTerm",
    "SOLAR_TERMS",
    "TERM_COUNT",
    "TERM_WIDTH_DEGREES",
    "normalize_degrees",
    "term_index_from_longitude",
    "previous_index",
    "next_index",
    "floor_to_minute",
]

TERM_COUNT = 24
TERM_WIDTH_DEGREES = 15.0
FIRST_TERM_LONGITUDE = 315.0  # 立春


@dataclass(frozen=True)
class SolarTerm:
    """A solar term and the apparent solar longitude at which it begins."""

    name: str
    longitude: float


SOLAR_TERMS: Tuple[SolarTerm, ...] = (
    SolarTerm("立春", 315.0),
    SolarTerm("雨水", 330.0),
    SolarTerm("惊蛰", 345.0),
    SolarTerm("春分", 0.0),
    SolarTerm("清明", 15.0),
    SolarTerm("谷雨", 30.0),
    SolarTerm("立夏", 45.0),
    SolarTerm("小满", 60.0),
    SolarTerm("芒种", 75.0),
    SolarTerm("夏至", 90.0),
    SolarTerm("小暑", 105.0),
    SolarTerm("大暑", 120.0),
    SolarTerm("立秋", 135.0),
    SolarTerm("处暑", 150.0),
    SolarTerm("白露", 165.0),
    SolarTerm("秋分", 180.0),
    SolarTerm("寒露", 195.0),
    SolarTerm("霜降", 210.0),
    SolarTerm("立冬", 225.0),
    SolarTerm("小雪", 240.0),
    SolarTerm("大雪", 255.0),
    SolarTerm("冬至", 270.0),
    SolarTerm("小寒", 285.0),
    SolarTerm("大寒", 300.0),
)


def normalize_degrees(value: float) -> float:
    """Reduce *value* to the half-open interval ``[0, 360)``."""

    reduced = math.fmod(value, 360.0)
    if reduced < 0:
        reduced += 360.0
    # fmod of a tiny negative number can round up to exactly 360.0.
    if reduced >= 360.0:
        reduced = 0.0
    return reduced


def term_index_from_longitude(elon: float) -> int:
    """Return the index (0..23) of the term containing longitude *elon*.

    Index 0 is 立春 at 315°, so the circle is re-based to start there before
    dividing into 15° slices.
    """

    offset = normalize_degrees(elon - FIRST_TERM_LONGITUDE)
    return min(int(math.floor(offset / TERM_WIDTH_DEGREES)), TERM_COUNT - 1)


def previous_index(index: int) -> int:
    return (index + TERM_COUNT - 1) % TERM_COUNT


def next_index(index: int) -> int:
    return (index + 1) % TERM_COUNT


def floor_to_minute(dt: datetime) -> datetime:
    """Drop seconds and sub-seconds from *dt* after converting it to UTC."""

    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return dt.astimezone(UTC).replace(second=0, microsecond=0)
