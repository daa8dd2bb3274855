"""Fetch the forecast series and derive hourly, daily and pollution-aligned views."""
from __future__ import annotations

import bisect
import datetime as dt
from typing import List, Optional, Sequence, Tuple

from weatherpulse.data_sources import WeatherDataSource
from weatherpulse.domain import (
    AlignedHour,
    ForecastSeries,
    Location,
    PollutionSample,
    WeatherSnapshot,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")

DEFAULT_HOURLY_SIZE = 12
DEFAULT_DAILY_ANCHOR = "12:00:00"
DEFAULT_MATCH_TOLERANCE = dt.timedelta(minutes=90)


class ForecastFetcher:
    """Fetch the multi-day forecast for a resolved location."""

    def __init__(self, data_source: WeatherDataSource) -> None:
        self.data_source = data_source

    def fetch(self, location: Location) -> ForecastSeries:
        series = self.data_source.fetch_forecast(location.latitude, location.longitude)
        logger.info(
            "Fetched forecast series",
            extra={"location": location.display_name, "entries": len(series)},
        )
        return series


def _time_text(entry: WeatherSnapshot) -> str:
    """Provider label for an entry, or the UTC timestamp rendered the same way."""
    if entry.time_text:
        return entry.time_text
    return entry.timestamp.astimezone(dt.timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def hourly_view(series: Sequence[WeatherSnapshot], n: int = DEFAULT_HOURLY_SIZE) -> Tuple[WeatherSnapshot, ...]:
    """
    Return the first `n` entries of the series, in order.

    The slice is positional: with a 3-hour series, 12 entries cover 36 hours.
    A shorter series is returned whole.
    """
    if n < 0:
        raise ValueError("n must be non-negative")
    return tuple(series[:n])


def daily_view(series: Sequence[WeatherSnapshot], anchor: str = DEFAULT_DAILY_ANCHOR) -> Tuple[WeatherSnapshot, ...]:
    """
    Return the entries whose time-of-day equals `anchor`, at most one per calendar date.

    Dates the provider never covers at the anchor hour are simply absent;
    nothing is interpolated. Input order is kept, so the result is chronological.
    """
    out: List[WeatherSnapshot] = []
    seen_dates = set()
    for entry in series:
        text = _time_text(entry)
        date_part, _, time_part = text.partition(" ")
        if time_part != anchor or date_part in seen_dates:
            continue
        seen_dates.add(date_part)
        out.append(entry)
    return tuple(out)


def _nearest(
    times: Sequence[dt.datetime],
    samples: Sequence[PollutionSample],
    when: dt.datetime,
) -> Tuple[Optional[PollutionSample], Optional[dt.timedelta]]:
    """Nearest sample to `when`; on a tie the earlier sample wins."""
    idx = bisect.bisect_left(times, when)
    best: Optional[PollutionSample] = None
    best_distance: Optional[dt.timedelta] = None
    # earlier candidate first so a strict comparison keeps it on ties
    for candidate in (idx - 1, idx):
        if 0 <= candidate < len(samples):
            distance = abs(times[candidate] - when)
            if best_distance is None or distance < best_distance:
                best, best_distance = samples[candidate], distance
    return best, best_distance


def align_pollution(
    series: Sequence[WeatherSnapshot],
    pollution: Sequence[PollutionSample],
    tolerance: dt.timedelta = DEFAULT_MATCH_TOLERANCE,
) -> Tuple[AlignedHour, ...]:
    """
    Pair each forecast entry with the pollution sample nearest in time.

    The two series come from different endpoints with different spacing, so
    they are matched by timestamp, never by position. A forecast entry with no
    sample within `tolerance` gets `None`.
    """
    samples = sorted(pollution, key=lambda s: s.timestamp)
    times = [s.timestamp for s in samples]

    out: List[AlignedHour] = []
    unmatched = 0
    for entry in series:
        sample, distance = _nearest(times, samples, entry.timestamp)
        if sample is None or distance > tolerance:
            sample = None
            unmatched += 1
        out.append(AlignedHour(forecast=entry, pollution=sample))

    if unmatched:
        logger.debug(
            "Forecast entries without a nearby pollution sample",
            extra={"unmatched": unmatched, "entries": len(out)},
        )
    return tuple(out)
