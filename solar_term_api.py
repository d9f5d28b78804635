"""FastAPI application exposing solar term resolution."""

from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.display import DisplaySettings, format_local_minute, format_offset, true_solar_time
from core.ephemeris import EphemerisAcquisitionError, resolve_ephemeris_source
from core.errors import InvalidInputError, OracleUnavailableError, ResolutionError
from core.oracle import EphemerisError, SpiceSunOracle, load_ephemeris, loaded_files
from core.resolver import SolarTermResolver, coerce_instant
from models import (
    CurrentTermPayload,
    ErrorResponse,
    HealthResponse,
    SolarTermQueryParams,
    SolarTermResponse,
    SolarTimeQueryParams,
    SolarTimeResponse,
    TermPayload,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
LOGGER = logging.getLogger("solarterm-api")

APP_DESCRIPTION = (
    "Current, previous and next solar terms based on JPL DE ephemerides"
)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - exercised in integration tests
    try:
        source_path = resolve_ephemeris_source()
    except EphemerisAcquisitionError as exc:
        LOGGER.error(json.dumps({"event": "ephemeris_acquire_failed", "error": str(exc)}))
        raise
    LOGGER.info(
        json.dumps({"event": "startup", "ephemeris_source": str(source_path)})
    )
    try:
        load_ephemeris(str(source_path))
    except EphemerisError as exc:
        LOGGER.error(json.dumps({"event": "ephemeris_load_failed", "error": str(exc)}))
        raise
    yield


app = FastAPI(
    title="Solarterm API",
    description=APP_DESCRIPTION,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

RESOLVER = SolarTermResolver(SpiceSunOracle())


def _format_utc(dt: datetime) -> str:
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _format_local(dt: datetime, offset_hours: Optional[float]) -> Optional[str]:
    if offset_hours is None:
        return None
    return format_local_minute(dt, offset_hours)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse(code=code, error=message)
    LOGGER.error(json.dumps({"event": "error", "code": code, "message": message}))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = ", ".join(error["msg"] for error in exc.errors())
    return _error_response(422, "validation_error", messages)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return _error_response(400, "invalid_input", str(exc))


@app.exception_handler(ResolutionError)
async def resolution_error_handler(request: Request, exc: ResolutionError) -> JSONResponse:
    return _error_response(500, "resolution_error", str(exc))


@app.exception_handler(EphemerisError)
async def ephemeris_error_handler(request: Request, exc: EphemerisError) -> JSONResponse:
    return _error_response(500, "ephemeris_error", str(exc))


@app.exception_handler(OracleUnavailableError)
async def oracle_unavailable_handler(
    request: Request, exc: OracleUnavailableError
) -> JSONResponse:
    return _error_response(503, "oracle_unavailable", str(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("error") or detail.get("message") or str(detail)
    elif isinstance(detail, list):
        message = ", ".join(str(item) for item in detail)
    else:
        message = str(detail)
    return _error_response(exc.status_code, f"http_{exc.status_code}", message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled exception", exc_info=exc)
    return _error_response(500, "internal_error", "Unhandled server error")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    files = loaded_files()
    return HealthResponse(ok=True, ephemeris_loaded=bool(files), files=files)


@app.get(
    "/solar-term",
    response_model=SolarTermResponse,
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def solar_term_endpoint(params: SolarTermQueryParams = Depends()) -> SolarTermResponse:
    start_time = time.perf_counter()
    instant = params.instant if params.instant is not None else datetime.now(UTC)
    query = coerce_instant(instant)
    result = RESOLVER.resolve(query)

    offset = params.offset_hours
    current, previous, upcoming = result.current, result.previous, result.next
    response = SolarTermResponse(
        instant_utc=_format_utc(query),
        offset_hours=offset,
        current=CurrentTermPayload(
            index=current.index,
            name=current.name,
            longitude=current.longitude,
            start_utc=_format_utc(current.start_time),
            start_local=_format_local(current.start_time, offset),
            end_utc=_format_utc(current.end_time),
            end_local=_format_local(current.end_time, offset),
        ),
        previous=TermPayload(
            index=previous.index,
            name=previous.name,
            longitude=previous.longitude,
            start_utc=_format_utc(previous.start_time),
            start_local=_format_local(previous.start_time, offset),
        ),
        next=TermPayload(
            index=upcoming.index,
            name=upcoming.name,
            longitude=upcoming.longitude,
            start_utc=_format_utc(upcoming.start_time),
            start_local=_format_local(upcoming.start_time, offset),
        ),
        sun_longitude=result.meta.raw_longitude,
        resolved_at_utc=_format_utc(result.meta.resolved_at),
    )

    duration_ms = (time.perf_counter() - start_time) * 1000.0
    LOGGER.info(
        json.dumps(
            {
                "event": "solar_term",
                "instant": response.instant_utc,
                "current": current.name,
                "sun_longitude": round(result.meta.raw_longitude, 6),
                "duration_ms": round(duration_ms, 3),
            }
        )
    )
    return response


@app.get(
    "/solar-time",
    response_model=SolarTimeResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def solar_time_endpoint(params: SolarTimeQueryParams = Depends()) -> SolarTimeResponse:
    instant = params.instant if params.instant is not None else datetime.now(UTC)
    query = coerce_instant(instant)
    settings = DisplaySettings(
        longitude=params.lon, latitude=params.lat, offset_hours=params.offset_hours
    )
    reading = true_solar_time(query, settings)
    return SolarTimeResponse(
        latitude=params.lat,
        longitude=params.lon,
        offset_hours=params.offset_hours,
        standard_time=reading.standard_time.isoformat(),
        solar_time=reading.solar_time.strftime("%Y-%m-%d %H:%M:%S"),
        longitude_offset=format_offset(reading.longitude_offset_minutes),
        equation_of_time=format_offset(reading.equation_of_time_minutes),
    )
