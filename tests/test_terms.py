from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from core.terms import (
    SOLAR_TERMS,
    floor_to_minute,
    next_index,
    normalize_degrees,
    previous_index,
    term_index_from_longitude,
)


def test_table_starts_at_lichun_and_steps_by_15_degrees():
    assert len(SOLAR_TERMS) == 24
    assert SOLAR_TERMS[0].name == "立春"
    assert SOLAR_TERMS[0].longitude == 315.0
    for idx, term in enumerate(SOLAR_TERMS):
        assert term.longitude == normalize_degrees(315.0 + 15.0 * idx)
    assert SOLAR_TERMS[21].name == "冬至"
    assert SOLAR_TERMS[21].longitude == 270.0
    assert len({term.name for term in SOLAR_TERMS}) == 24


def test_solar_term_is_immutable():
    with pytest.raises(AttributeError):
        SOLAR_TERMS[0].longitude = 0.0  # type: ignore[misc]


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.0, 0.0),
        (360.0, 0.0),
        (725.5, 5.5),
        (-15.0, 345.0),
        (-720.0, 0.0),
        (-1e-18, 0.0),
    ],
)
def test_normalize_degrees(value: float, expected: float):
    result = normalize_degrees(value)
    assert 0.0 <= result < 360.0
    assert result == pytest.approx(expected)


@pytest.mark.parametrize(
    "elon, expected",
    [
        (315.0, 0),
        (329.999, 0),
        (330.0, 1),
        (0.0, 3),
        (359.999, 2),
        (270.0, 21),
        (269.999, 20),
        (314.999, 23),
        (-45.0, 0),
        (675.0, 0),
    ],
)
def test_term_index_from_longitude(elon: float, expected: int):
    assert term_index_from_longitude(elon) == expected


def test_every_term_longitude_maps_to_its_own_index():
    for idx, term in enumerate(SOLAR_TERMS):
        assert term_index_from_longitude(term.longitude) == idx
        assert term_index_from_longitude(term.longitude + 14.9) == idx


def test_neighbour_indices_wrap():
    assert previous_index(0) == 23
    assert next_index(23) == 0
    assert previous_index(21) == 20
    assert next_index(21) == 22


def test_floor_to_minute_discards_seconds_without_rounding():
    dt = datetime(2025, 12, 21, 15, 3, 59, 999999, tzinfo=UTC)
    assert floor_to_minute(dt) == datetime(2025, 12, 21, 15, 3, tzinfo=UTC)


def test_floor_to_minute_returns_utc():
    beijing = timezone(timedelta(hours=8))
    dt = datetime(2025, 12, 21, 23, 3, 30, tzinfo=beijing)
    floored = floor_to_minute(dt)
    assert floored.utcoffset() == timedelta(0)
    assert floored == datetime(2025, 12, 21, 15, 3, tzinfo=UTC)


def test_floor_to_minute_rejects_naive():
    with pytest.raises(ValueError):
        floor_to_minute(datetime(2025, 1, 1, 0, 0, 30))
