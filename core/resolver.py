"""Resolution of the active solar term and its neighbours for an instant."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from joblib import Parallel, delayed

from .errors import InvalidInputError, OracleUnavailableError, ResolutionError
from .oracle import SunPositionOracle
from .terms import (
    SOLAR_TERMS,
    floor_to_minute,
    next_index,
    normalize_degrees,
    previous_index,
    term_index_from_longitude,
)

__all__ = [
    "SearchWindow",
    "SEARCH_WINDOWS",
    "TermWindow",
    "CurrentTerm",
    "AdjacentTerm",
    "ResolutionMeta",
    "TermWindowResult",
    "SolarTermResolver",
    "coerce_instant",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchWindow:
    """Search interval relative to a center instant."""

    days_before: float
    length_days: float

    def start(self, center: datetime) -> datetime:
        return center - timedelta(days=self.days_before)


# Primary window first; the wide one only runs when the primary finds nothing.
SEARCH_WINDOWS: Tuple[SearchWindow, ...] = (
    SearchWindow(days_before=40.0, length_days=80.0),
    SearchWindow(days_before=200.0, length_days=400.0),
)


@dataclass(frozen=True)
class TermWindow:
    """Unrounded boundary instants around a query instant."""

    current_index: int
    previous_index: int
    next_index: int
    current_start: datetime
    current_end: datetime
    previous_start: datetime
    next_start: datetime


@dataclass(frozen=True)
class CurrentTerm:
    index: int
    name: str
    longitude: float
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class AdjacentTerm:
    index: int
    name: str
    longitude: float
    start_time: datetime


@dataclass(frozen=True)
class ResolutionMeta:
    raw_longitude: float
    resolved_at: datetime


@dataclass(frozen=True)
class TermWindowResult:
    """Minute-resolution view of a :class:`TermWindow`."""

    current: CurrentTerm
    previous: AdjacentTerm
    next: AdjacentTerm
    meta: ResolutionMeta

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def coerce_instant(value: Any) -> datetime:
    """Interpret *value* as an absolute instant in UTC.

    Accepts timezone-aware ``datetime`` objects, ISO-8601 strings carrying an
    offset (``Z`` included) and POSIX timestamps in seconds.
    """

    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise InvalidInputError("instant must be timezone-aware")
        return value.astimezone(UTC)
    if isinstance(value, bool):
        raise InvalidInputError(f"unsupported instant: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidInputError(f"instant is not finite: {value!r}")
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidInputError(f"instant out of range: {value!r}") from exc
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidInputError(f"unparseable instant: {value!r}") from exc
        return coerce_instant(parsed)
    raise InvalidInputError(f"unsupported instant: {value!r}")


def _is_valid_instant(candidate: Any) -> bool:
    return isinstance(candidate, datetime) and candidate.utcoffset() is not None


class SolarTermResolver:
    """Find the active solar term for an instant using a sun position oracle.

    Parameters
    ----------
    oracle:
        Object providing ``apparent_longitude`` and
        ``search_longitude_crossing``.
    n_jobs:
        Workers used for the previous/next boundary searches. ``1`` keeps
        every oracle call sequential.
    clock:
        Source of the wall-clock time recorded in ``meta.resolved_at``.
    """

    def __init__(
        self,
        oracle: SunPositionOracle,
        n_jobs: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.oracle = oracle
        self.n_jobs = max(1, int(n_jobs))
        self.clock = clock or (lambda: datetime.now(UTC))

    def _check_oracle(self) -> None:
        for attribute in ("apparent_longitude", "search_longitude_crossing"):
            if not callable(getattr(self.oracle, attribute, None)):
                raise OracleUnavailableError(
                    f"sun position oracle does not provide '{attribute}'"
                )

    def find_boundary(self, target_longitude: float, center: datetime) -> datetime:
        """Return the instant near *center* at which the Sun reaches *target_longitude*."""

        target = normalize_degrees(target_longitude)
        for attempt, window in enumerate(SEARCH_WINDOWS):
            found = self.oracle.search_longitude_crossing(
                target, window.start(center), window.length_days
            )
            if _is_valid_instant(found):
                return found
            if attempt + 1 < len(SEARCH_WINDOWS):
                LOGGER.info(
                    json.dumps(
                        {
                            "event": "boundary_fallback",
                            "target": target,
                            "center": center.isoformat(),
                            "window_days": window.length_days,
                        }
                    )
                )
        raise ResolutionError(f"boundary not found for target longitude {target}")

    def _adjacent_starts(
        self, prev_idx: int, next_idx: int, instant: datetime
    ) -> Tuple[datetime, datetime]:
        targets = (SOLAR_TERMS[prev_idx].longitude, SOLAR_TERMS[next_idx].longitude)
        if self.n_jobs == 1:
            return tuple(self.find_boundary(target, instant) for target in targets)  # type: ignore[return-value]
        previous_start, next_start = Parallel(n_jobs=min(self.n_jobs, 2), prefer="threads")(
            delayed(self.find_boundary)(target, instant) for target in targets
        )
        return previous_start, next_start

    def term_window(self, instant: Any) -> Tuple[TermWindow, float]:
        """Compute the unrounded :class:`TermWindow` and the raw solar longitude."""

        self._check_oracle()
        t = coerce_instant(instant)

        elon = normalize_degrees(self.oracle.apparent_longitude(t))
        idx = term_index_from_longitude(elon)
        current_start = self.find_boundary(SOLAR_TERMS[idx].longitude, t)

        if current_start > t:
            # The longitude landed past a boundary that has not happened yet.
            stepped = previous_index(idx)
            LOGGER.info(
                json.dumps(
                    {
                        "event": "term_correction",
                        "instant": t.isoformat(),
                        "from": SOLAR_TERMS[idx].name,
                        "to": SOLAR_TERMS[stepped].name,
                    }
                )
            )
            idx = stepped
            current_start = self.find_boundary(SOLAR_TERMS[idx].longitude, t)
            if current_start > t:
                raise ResolutionError(
                    f"term start {current_start.isoformat()} still after {t.isoformat()} "
                    "after stepping back one term"
                )

        prev_idx = previous_index(idx)
        next_idx = next_index(idx)
        previous_start, next_start = self._adjacent_starts(prev_idx, next_idx, t)

        window = TermWindow(
            current_index=idx,
            previous_index=prev_idx,
            next_index=next_idx,
            current_start=current_start,
            current_end=next_start,
            previous_start=previous_start,
            next_start=next_start,
        )
        return window, elon

    def resolve(self, instant: Any) -> TermWindowResult:
        """Resolve the previous, current and next solar terms for *instant*."""

        window, elon = self.term_window(instant)
        current = SOLAR_TERMS[window.current_index]
        previous = SOLAR_TERMS[window.previous_index]
        upcoming = SOLAR_TERMS[window.next_index]
        return TermWindowResult(
            current=CurrentTerm(
                index=window.current_index,
                name=current.name,
                longitude=current.longitude,
                start_time=floor_to_minute(window.current_start),
                end_time=floor_to_minute(window.current_end),
            ),
            previous=AdjacentTerm(
                index=window.previous_index,
                name=previous.name,
                longitude=previous.longitude,
                start_time=floor_to_minute(window.previous_start),
            ),
            next=AdjacentTerm(
                index=window.next_index,
                name=upcoming.name,
                longitude=upcoming.longitude,
                start_time=floor_to_minute(window.next_start),
            ),
            meta=ResolutionMeta(
                raw_longitude=elon,
                resolved_at=floor_to_minute(self.clock()),
            ),
        )
