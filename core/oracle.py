"""Apparent solar longitude from JPL DE ephemerides."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from threading import Lock, RLock
from typing import List, Optional, Protocol, Tuple, runtime_checkable

import erfa
import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .errors import OracleUnavailableError
from .terms import normalize_degrees

__all__ = [
    "SunPositionOracle",
    "SpiceSunOracle",
    "EphemerisError",
    "load_ephemeris",
    "loaded_files",
]

LOGGER = logging.getLogger(__name__)

SEARCH_STEP = timedelta(days=1)  # the Sun moves roughly 1 degree per day
REFINE_RESOLUTION = timedelta(seconds=1)

_LOADED_FILES: Optional[List[str]] = None
_LOAD_LOCK = Lock()
# CSPICE keeps global state; every call into it goes through this lock.
_SPICE_LOCK = RLock()


class EphemerisError(RuntimeError):
    """Raised when ephemeris loading or computation fails."""


@runtime_checkable
class SunPositionOracle(Protocol):
    """Capability consumed by the resolver."""

    def apparent_longitude(self, instant: datetime) -> float:
        """Apparent geocentric ecliptic longitude of the Sun in ``[0, 360)``."""

    def search_longitude_crossing(
        self, target_degrees: float, window_start: datetime, window_days: float
    ) -> Optional[datetime]:
        """Earliest instant in the window where the longitude equals the target."""


@dataclass(frozen=True)
class _TimeScales:
    """TT and ephemeris-time representations of a UTC instant."""

    tt: Tuple[float, float]
    et: float


def load_ephemeris(bsp_dir: str) -> List[str]:
    """Load all SPK kernels from *bsp_dir* using :mod:`spiceypy`.

    Parameters
    ----------
    bsp_dir:
        Directory containing one or more ``.bsp`` files, or a single
        ``.bsp`` file.

    Returns
    -------
    list[str]
        Sorted list of loaded kernel file names.

    Raises
    ------
    EphemerisError
        If the path is missing or holds no ``.bsp`` files.
    """

    global _LOADED_FILES

    if _LOADED_FILES is not None:
        return _LOADED_FILES

    path = Path(bsp_dir).expanduser()
    if path.is_file() and path.suffix.lower() == ".bsp":
        candidates = [path]
    elif path.is_dir():
        candidates = sorted(
            file for file in path.iterdir() if file.is_file() and file.suffix.lower() == ".bsp"
        )
    else:
        raise EphemerisError(f"Ephemeris directory not found: {path}")

    with _LOAD_LOCK:
        if _LOADED_FILES is not None:
            return _LOADED_FILES

        if not candidates:
            raise EphemerisError(
                f"No .bsp ephemeris files found in directory: {path}"
            )

        loaded: List[str] = []
        with _SPICE_LOCK:
            try:
                for bsp_file in candidates:
                    spice.furnsh(str(bsp_file))
                    loaded.append(bsp_file.name)
            except SpiceyError as exc:
                spice.kclear()
                raise EphemerisError(
                    f"Failed to load ephemeris file '{bsp_file}': {exc}"
                ) from exc

        _LOADED_FILES = loaded
        LOGGER.info(json.dumps({"event": "ephemeris_loaded", "files": loaded}))
        return loaded


def loaded_files() -> List[str]:
    return list(_LOADED_FILES or [])


def _datetime_to_timescales(dt: datetime) -> _TimeScales:
    """Convert a timezone-aware datetime into TT and ephemeris time."""

    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    dt_utc = dt.astimezone(UTC)
    utc1, utc2 = erfa.dtf2d(
        "UTC",
        dt_utc.year,
        dt_utc.month,
        dt_utc.day,
        dt_utc.hour,
        dt_utc.minute,
        dt_utc.second + dt_utc.microsecond / 1_000_000,
    )
    tai1, tai2 = erfa.utctai(utc1, utc2)
    tt1, tt2 = erfa.taitt(tai1, tai2)
    et = (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC
    return _TimeScales(tt=(tt1, tt2), et=et)


def _apparent_longitude_degrees(dt: datetime) -> float:
    """Sun longitude on the true ecliptic of date, light-time and aberration corrected."""

    times = _datetime_to_timescales(dt)
    with _SPICE_LOCK:
        sun_vector, _ = spice.spkpos("SUN", times.et, "J2000", "LT+S", "EARTH")
    rotation = np.array(erfa.ecm06(*times.tt), dtype=float)
    ecliptic = rotation @ np.array(sun_vector, dtype=float)
    dpsi, _ = erfa.nut06a(*times.tt)
    longitude = math.atan2(ecliptic[1], ecliptic[0]) + dpsi
    return normalize_degrees(math.degrees(longitude))


def _wrapped_offset(longitude: float, target: float) -> float:
    """Signed distance from *target* to *longitude* in ``[-180, 180)``."""

    return (longitude - target + 180.0) % 360.0 - 180.0


class SpiceSunOracle:
    """Sun position oracle backed by the SPK kernels loaded in this process."""

    def __init__(self, step: timedelta = SEARCH_STEP, max_iterations: int = 40) -> None:
        self.step = step
        self.max_iterations = max_iterations

    @staticmethod
    def _require_kernels() -> None:
        if _LOADED_FILES is None:
            raise OracleUnavailableError("Ephemeris kernels have not been loaded")

    def apparent_longitude(self, instant: datetime) -> float:
        self._require_kernels()
        try:
            return _apparent_longitude_degrees(instant)
        except SpiceyError as exc:
            raise EphemerisError(
                f"Sun position unavailable at {instant.isoformat()}: {exc}"
            ) from exc

    def _offset_or_none(self, dt: datetime, target: float) -> Optional[float]:
        try:
            return _wrapped_offset(_apparent_longitude_degrees(dt), target)
        except SpiceyError:
            # Outside kernel coverage.
            return None

    def _refine_crossing(
        self,
        low_dt: datetime,
        high_dt: datetime,
        low_val: float,
        target: float,
    ) -> datetime:
        """Return the first whole second at which the longitude has reached the target.

        Any bracket around the same crossing yields the same instant.
        """

        for _ in range(self.max_iterations):
            if (high_dt - low_dt) <= REFINE_RESOLUTION:
                break
            mid_dt = low_dt + (high_dt - low_dt) / 2
            mid_val = self._offset_or_none(mid_dt, target)
            if mid_val is None:
                break
            if low_val * mid_val < 0 or mid_val == 0:
                high_dt = mid_dt
            else:
                low_dt, low_val = mid_dt, mid_val

        candidate = low_dt.replace(microsecond=0)
        while candidate <= high_dt + REFINE_RESOLUTION:
            value = self._offset_or_none(candidate, target)
            if value is not None and value >= 0:
                return candidate
            candidate += REFINE_RESOLUTION
        return high_dt

    def search_longitude_crossing(
        self, target_degrees: float, window_start: datetime, window_days: float
    ) -> Optional[datetime]:
        self._require_kernels()
        if window_start.tzinfo is None:
            raise ValueError("datetime must be timezone-aware (UTC)")
        target = normalize_degrees(target_degrees)
        window_end = window_start + timedelta(days=window_days)

        grid: List[datetime] = []
        current = window_start
        while current < window_end:
            grid.append(current)
            current += self.step
        grid.append(window_end)

        prev_dt: Optional[datetime] = None
        prev_val: Optional[float] = None
        for sample_dt in grid:
            value = self._offset_or_none(sample_dt, target)
            if value is None:
                prev_dt, prev_val = None, None
                continue
            if value == 0 and (prev_val is None or prev_val < 0):
                if prev_dt is None:
                    return sample_dt
                return self._refine_crossing(prev_dt, sample_dt, prev_val, target)
            # The +/-180 wrap also flips sign; a real crossing is a small step.
            if prev_val is not None and prev_val < 0 < value and value - prev_val < 90.0:
                return self._refine_crossing(prev_dt, sample_dt, prev_val, target)
            prev_dt, prev_val = sample_dt, value
        return None
