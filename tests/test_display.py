from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from core.display import (
    DisplaySettings,
    equation_of_time_minutes,
    format_local_minute,
    format_offset,
    true_solar_time,
)


def test_format_local_minute_applies_offset():
    dt = datetime(2025, 12, 21, 15, 3, 59, tzinfo=UTC)
    assert format_local_minute(dt, 8) == "2025-12-21 23:03"
    assert format_local_minute(dt, -5.5) == "2025-12-21 09:33"


def test_format_local_minute_rejects_naive():
    with pytest.raises(ValueError):
        format_local_minute(datetime(2025, 1, 1), 0)


@pytest.mark.parametrize(
    "minutes, expected",
    [
        (0.0, "+00m 00s"),
        (3.5, "+03m 30s"),
        (-14.16, "-14m 09s"),
        (16.999, "+16m 59s"),
    ],
)
def test_format_offset(minutes: float, expected: str):
    assert format_offset(minutes) == expected


def test_equation_of_time_extremes():
    # Early November is near the annual maximum, mid-February near the minimum.
    assert equation_of_time_minutes(datetime(2025, 11, 3, tzinfo=UTC)) > 15.0
    assert equation_of_time_minutes(datetime(2025, 2, 11, tzinfo=UTC)) < -13.0


def test_settings_are_immutable_and_validated():
    settings = DisplaySettings()
    with pytest.raises(AttributeError):
        settings.longitude = 0.0  # type: ignore[misc]
    with pytest.raises(ValueError):
        DisplaySettings(latitude=91.0)
    with pytest.raises(ValueError):
        DisplaySettings(longitude=-181.0)
    with pytest.raises(ValueError):
        DisplaySettings(offset_hours=25.0)


def test_reference_meridian_follows_offset():
    assert DisplaySettings(offset_hours=8.0).reference_meridian == 120.0
    assert DisplaySettings(longitude=-75.0, offset_hours=-5.0).reference_meridian == -75.0


def test_explicit_reference_meridian_is_kept():
    settings = DisplaySettings(longitude=116.46, offset_hours=8.0, reference_meridian=116.46)
    assert settings.reference_meridian == 116.46
    reading = true_solar_time(datetime(2025, 4, 15, 4, 0, tzinfo=UTC), settings)
    assert reading.longitude_offset_minutes == pytest.approx(0.0)
    with pytest.raises(ValueError):
        DisplaySettings(reference_meridian=181.0)


@pytest.mark.parametrize("offset_hours", [24.0, -24.0])
def test_full_day_offset_is_rejected(offset_hours):
    with pytest.raises(ValueError):
        DisplaySettings(offset_hours=offset_hours)
    with pytest.raises(ValueError):
        format_local_minute(datetime(2025, 3, 20, 9, 1, tzinfo=UTC), offset_hours)


def test_offset_just_inside_a_day_is_accepted():
    settings = DisplaySettings(longitude=0.0, offset_hours=23.75)
    assert settings.tz.utcoffset(None) == timedelta(hours=23.75)
    assert format_local_minute(datetime(2025, 3, 20, 0, 15, tzinfo=UTC), -23.75) == "2025-03-19 00:30"


def test_true_solar_time_on_reference_meridian():
    settings = DisplaySettings(longitude=120.0, latitude=30.0, offset_hours=8.0)
    dt = datetime(2025, 11, 3, 4, 0, tzinfo=UTC)
    reading = true_solar_time(dt, settings)
    assert reading.standard_time == dt.astimezone(timezone(timedelta(hours=8)))
    assert reading.longitude_offset_minutes == 0.0
    expected = reading.standard_time + timedelta(minutes=reading.equation_of_time_minutes)
    assert reading.solar_time == expected


def test_true_solar_time_west_of_meridian_runs_behind():
    settings = DisplaySettings(longitude=116.46, latitude=39.92, offset_hours=8.0)
    reading = true_solar_time(datetime(2025, 4, 15, 4, 0, tzinfo=UTC), settings)
    assert reading.longitude_offset_minutes == pytest.approx(-14.16)
    assert reading.solar_time < reading.standard_time


def test_true_solar_time_across_the_antimeridian():
    # Kiritimati keeps UTC+14 at 157°W; its zone meridian is 210°E.
    settings = DisplaySettings(longitude=-157.0, latitude=1.87, offset_hours=14.0)
    assert settings.reference_meridian == 210.0
    reading = true_solar_time(datetime(2025, 4, 15, 4, 0, tzinfo=UTC), settings)
    assert reading.longitude_offset_minutes == pytest.approx(-28.0)
