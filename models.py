"""Pydantic models for API requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

# datetime.timezone only accepts offsets strictly inside one day.
MAX_OFFSET_HOURS = 24.0


class SolarTermQueryParams(BaseModel):
    """Validated query parameters for the ``/solar-term`` endpoint."""

    instant: Optional[datetime] = Field(
        None, description="Absolute instant (ISO-8601 with offset); defaults to now"
    )
    offset_hours: Optional[float] = Field(
        None,
        gt=-MAX_OFFSET_HOURS,
        lt=MAX_OFFSET_HOURS,
        description="Optional fixed offset in hours applied to derive local times",
    )


class SolarTimeQueryParams(BaseModel):
    """Validated query parameters for the ``/solar-time`` endpoint."""

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")
    instant: Optional[datetime] = Field(
        None, description="Absolute instant (ISO-8601 with offset); defaults to now"
    )
    offset_hours: float = Field(
        8.0,
        gt=-MAX_OFFSET_HOURS,
        lt=MAX_OFFSET_HOURS,
        description="Civil time zone offset in hours",
    )


class TermPayload(BaseModel):
    index: int = Field(..., ge=0, le=23, description="Position in the 315°-based term table")
    name: str
    longitude: float = Field(..., description="Term start longitude in degrees")
    start_utc: str = Field(..., description="Term start in UTC (ISO-8601, minute resolution)")
    start_local: Optional[str] = Field(
        None, description="Term start as YYYY-MM-DD HH:MM when offset provided"
    )


class CurrentTermPayload(TermPayload):
    end_utc: str = Field(..., description="Term end in UTC (ISO-8601, minute resolution)")
    end_local: Optional[str] = Field(
        None, description="Term end as YYYY-MM-DD HH:MM when offset provided"
    )


class SolarTermResponse(BaseModel):
    """Successful solar term response payload."""

    ok: bool = True
    instant_utc: str = Field(..., description="Query instant in UTC")
    offset_hours: Optional[float] = Field(
        None, description="User-specified offset in hours"
    )
    current: CurrentTermPayload
    previous: TermPayload
    next: TermPayload
    sun_longitude: float = Field(..., description="Apparent solar longitude at the query instant")
    resolved_at_utc: str = Field(..., description="Wall-clock time of the computation")
    source: Literal["CSPICE-DE"] = Field(
        "CSPICE-DE", description="Ephemeris source identifier"
    )


class SolarTimeResponse(BaseModel):
    """True solar time at an observer longitude."""

    ok: bool = True
    latitude: float
    longitude: float
    offset_hours: float
    standard_time: str = Field(..., description="Civil time in the given offset (ISO-8601)")
    solar_time: str = Field(..., description="Apparent solar time as YYYY-MM-DD HH:MM:SS")
    longitude_offset: str = Field(..., description="Longitude correction, e.g. -14m 09s")
    equation_of_time: str = Field(..., description="Equation of time, e.g. +03m 12s")


class HealthResponse(BaseModel):
    """Health-check response."""

    ok: bool = True
    ephemeris_loaded: bool
    files: List[str]


class ErrorResponse(BaseModel):
    """Error payload."""

    ok: bool = False
    code: str
    error: str
