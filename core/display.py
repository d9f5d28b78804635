"""Presentation helpers: local minute formatting and true solar time."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

__all__ = [
    "DisplaySettings",
    "SolarTimeReading",
    "format_local_minute",
    "format_offset",
    "equation_of_time_minutes",
    "true_solar_time",
]

DEFAULT_LONGITUDE = 116.46
DEFAULT_LATITUDE = 39.92
DEFAULT_OFFSET_HOURS = 8.0


def _check_offset_hours(offset_hours: float) -> None:
    # datetime.timezone rejects offsets of a full day or more.
    if not -24.0 < offset_hours < 24.0:
        raise ValueError("offset_hours must be strictly within ±24 hours")


@dataclass(frozen=True)
class DisplaySettings:
    """Observer location and civil time zone used when rendering results."""

    longitude: float = DEFAULT_LONGITUDE
    latitude: float = DEFAULT_LATITUDE
    offset_hours: float = DEFAULT_OFFSET_HOURS
    # Meridian whose mean solar time the civil zone keeps; 15° per offset hour when omitted.
    reference_meridian: Optional[float] = None

    def __post_init__(self) -> None:
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        _check_offset_hours(self.offset_hours)
        if self.reference_meridian is None:
            object.__setattr__(self, "reference_meridian", self.offset_hours * 15.0)
        elif not -180.0 <= self.reference_meridian <= 180.0:
            raise ValueError(f"reference_meridian out of range: {self.reference_meridian}")

    @property
    def tz(self) -> timezone:
        return timezone(timedelta(hours=self.offset_hours))


@dataclass(frozen=True)
class SolarTimeReading:
    standard_time: datetime
    solar_time: datetime
    longitude_offset_minutes: float
    equation_of_time_minutes: float


def format_local_minute(dt: datetime, offset_hours: float) -> str:
    """Render *dt* as ``YYYY-MM-DD HH:MM`` in a fixed UTC offset."""

    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    _check_offset_hours(offset_hours)
    local = dt.astimezone(timezone(timedelta(hours=offset_hours)))
    return local.strftime("%Y-%m-%d %H:%M")


def format_offset(minutes: float) -> str:
    """Render a signed minute offset as ``+MMm SSs``."""

    sign = "+" if minutes >= 0 else "-"
    magnitude = abs(minutes)
    whole = math.floor(magnitude)
    seconds = math.floor((magnitude - whole) * 60)
    return f"{sign}{whole:02d}m {seconds:02d}s"


def equation_of_time_minutes(dt: datetime) -> float:
    """Approximate equation of time (apparent minus mean solar time) in minutes."""

    day_of_year = dt.timetuple().tm_yday
    b = math.radians((360.0 / 365.0) * (day_of_year - 81))
    return 9.87 * math.sin(2 * b) - 7.53 * math.cos(b) - 1.5 * math.sin(b)


def true_solar_time(dt: datetime, settings: DisplaySettings) -> SolarTimeReading:
    """Convert *dt* to apparent solar time at the observer's longitude."""

    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    standard = dt.astimezone(settings.tz)
    # Zones past ±12h put the meridian beyond 180°; use the short way round.
    difference = (settings.longitude - settings.reference_meridian + 180.0) % 360.0 - 180.0
    longitude_offset = difference * 4.0
    eot = equation_of_time_minutes(standard)
    solar = standard + timedelta(minutes=longitude_offset + eot)
    return SolarTimeReading(
        standard_time=standard,
        solar_time=solar,
        longitude_offset_minutes=longitude_offset,
        equation_of_time_minutes=eot,
    )
