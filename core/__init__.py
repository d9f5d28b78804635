"""Core solar term utilities for the Solarterm API."""

from .errors import (
    InvalidInputError,
    OracleUnavailableError,
    ResolutionError,
    SolarTermError,
)
from .oracle import SpiceSunOracle, SunPositionOracle, load_ephemeris
from .resolver import SolarTermResolver, TermWindowResult
from .terms import SOLAR_TERMS, normalize_degrees, term_index_from_longitude

__all__ = [
    "SOLAR_TERMS",
    "InvalidInputError",
    "OracleUnavailableError",
    "ResolutionError",
    "SolarTermError",
    "SolarTermResolver",
    "SpiceSunOracle",
    "SunPositionOracle",
    "TermWindowResult",
    "load_ephemeris",
    "normalize_degrees",
    "term_index_from_longitude",
]
