"""Exceptions raised while resolving solar terms."""

from __future__ import annotations

__all__ = [
    "SolarTermError",
    "InvalidInputError",
    "OracleUnavailableError",
    "ResolutionError",
]


class SolarTermError(RuntimeError):
    """Base class for solar term resolution failures."""


class InvalidInputError(SolarTermError, ValueError):
    """Raised when the query instant cannot be interpreted."""


class OracleUnavailableError(SolarTermError):
    """Raised when the sun position oracle is missing or not ready."""


class ResolutionError(SolarTermError):
    """Raised when a term boundary cannot be located."""
