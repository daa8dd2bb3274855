"""Historical hourly weather for one calendar day."""
from __future__ import annotations

import datetime as dt
from typing import Optional, Tuple, Union

from weatherpulse.data_sources import WeatherDataSource
from weatherpulse.domain import SECONDS_PER_DAY, HistoricalWindow
from weatherpulse.errors import InvalidInput
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="historical")

MISSING_FIELDS_MESSAGE = "Please enter city, country, and date"

DateLike = Union[dt.date, str]


def parse_calendar_date(value: Optional[DateLike]) -> dt.date:
    """Accept a date, a datetime (its date part) or an ISO YYYY-MM-DD string."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = (value or "").strip() if isinstance(value, str) else ""
    if not text:
        raise InvalidInput(MISSING_FIELDS_MESSAGE)
    try:
        return dt.date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidInput(f"Invalid date {text!r}; expected YYYY-MM-DD.") from exc


def window_bounds(calendar_date: dt.date, tz: Optional[dt.tzinfo] = None) -> Tuple[int, int]:
    """
    Return (start_epoch, end_epoch) for the day.

    The start is midnight of `calendar_date` in `tz`, or in the process's local
    time zone when `tz` is None. The window is always exactly 86400 seconds,
    including on days with a DST change.
    """
    midnight = dt.datetime.combine(calendar_date, dt.time(0, 0), tzinfo=tz)
    # naive datetimes are interpreted in local time by timestamp()
    start = int(midnight.timestamp())
    return start, start + SECONDS_PER_DAY


class HistoricalRangeFetcher:
    """Fetch one fixed 24-hour window of hourly samples; no bucketing, no cache."""

    def __init__(self, data_source: WeatherDataSource, tz: Optional[dt.tzinfo] = None) -> None:
        self.data_source = data_source
        self.tz = tz

    def fetch(
        self,
        city_name: Optional[str],
        country_code: Optional[str],
        calendar_date: Optional[DateLike],
    ) -> HistoricalWindow:
        city = (city_name or "").strip()
        country = (country_code or "").strip()
        if not city or not country or calendar_date is None:
            raise InvalidInput(MISSING_FIELDS_MESSAGE)
        day = parse_calendar_date(calendar_date)

        start, end = window_bounds(day, self.tz)
        samples = self.data_source.fetch_history(city, country, start, end)
        logger.info(
            "Fetched historical window",
            extra={"city": city, "country": country, "date": day.isoformat(), "samples": len(samples)},
        )
        return HistoricalWindow(
            location=city,
            country_code=country,
            start_epoch=start,
            end_epoch=end,
            samples=tuple(samples),
        )
