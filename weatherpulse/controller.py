"""
Aggregation controller: owns the active location, the request epoch and the
published result set.

Every location change (search, geolocation capture, explicit refresh) starts a
new epoch. Fetches are tagged with the epoch they were issued under and their
results are merged only while that epoch is still the current one, so the
published state always belongs to the most recent location ("last location
wins", not "last response wins"). Stale results are dropped; the underlying
request is left to finish on its own.

Blocking provider calls run in worker threads via asyncio.to_thread and each
is bounded by `fetch_timeout_seconds`; a fetch that does not settle in time is
recorded as a timeout failure instead of leaving the view loading forever.
"""
from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Tuple

from weatherpulse import config
from weatherpulse.current_conditions import CurrentConditionsFetcher
from weatherpulse.data_sources import WeatherDataSource, build_data_source
from weatherpulse.domain import (
    AlignedHour,
    ForecastSeries,
    HistoricalWindow,
    LoadState,
    Location,
    PollutionSample,
    PollutionSeries,
    View,
    WeatherSnapshot,
)
from weatherpulse.errors import (
    DataUnavailable,
    ErrorKind,
    FetchTimeout,
    InvalidInput,
    PipelineError,
)
from weatherpulse.forecast_service import (
    DEFAULT_DAILY_ANCHOR,
    DEFAULT_HOURLY_SIZE,
    DEFAULT_MATCH_TOLERANCE,
    ForecastFetcher,
    align_pollution,
    daily_view,
    hourly_view,
)
from weatherpulse.historical import HistoricalRangeFetcher
from weatherpulse.location_resolver import LocationResolver
from weatherpulse.pollution import PollutionFetcher, current_sample
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="controller")

GEOLOCATION_MESSAGE = "Unable to fetch your location. Please try again."
NO_LOCATION_MESSAGE = "No location selected yet."
POLLUTION_MESSAGE = "Unable to fetch pollution data. Please try again later."
HISTORY_MESSAGE = "Failed to fetch weather data"


@dataclass(frozen=True)
class PipelineState:
    """Immutable snapshot of everything the controller publishes to consumers."""
    epoch: int = 0
    status: LoadState = LoadState.IDLE
    view: View = View.CURRENT
    location: Optional[Location] = None
    snapshot: Optional[WeatherSnapshot] = None
    forecast: Optional[ForecastSeries] = None
    pollution: Optional[PollutionSeries] = None
    pollution_status: LoadState = LoadState.IDLE
    pollution_error: Optional[str] = None
    history: Optional[HistoricalWindow] = None
    history_status: LoadState = LoadState.IDLE
    history_error: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    hourly_size: int = DEFAULT_HOURLY_SIZE
    daily_anchor: str = DEFAULT_DAILY_ANCHOR
    match_tolerance: dt.timedelta = DEFAULT_MATCH_TOLERANCE

    def hourly(self, n: Optional[int] = None) -> Tuple[WeatherSnapshot, ...]:
        return hourly_view(self.forecast or (), self.hourly_size if n is None else n)

    def daily(self, anchor: Optional[str] = None) -> Tuple[WeatherSnapshot, ...]:
        return daily_view(self.forecast or (), anchor or self.daily_anchor)

    def pollution_by_hour(self) -> Tuple[AlignedHour, ...]:
        return align_pollution(self.forecast or (), self.pollution or (), self.match_tolerance)

    @property
    def current_pollution(self) -> Optional[PollutionSample]:
        return current_sample(self.pollution or ())


def _scoped_message(error: PipelineError, fallback: str) -> str:
    """Use the view's own wording for generic provider failures."""
    if error.kind is ErrorKind.DATA_UNAVAILABLE and error.message == DataUnavailable.default_message:
        return fallback
    return error.message


class AggregationController:
    """Sequence resolution and fetches for the active location and publish one consistent state."""

    def __init__(
        self,
        data_source: WeatherDataSource | None = None,
        *,
        settings: config.Settings | None = None,
        history_tz: Optional[dt.tzinfo] = None,
    ) -> None:
        self.settings = settings or config.settings
        ds = data_source or build_data_source(self.settings)
        self.resolver = LocationResolver(ds)
        self.current_fetcher = CurrentConditionsFetcher(ds)
        self.forecast_fetcher = ForecastFetcher(ds)
        self.pollution_fetcher = PollutionFetcher(ds)
        self.history_fetcher = HistoricalRangeFetcher(ds, tz=history_tz)

        self._epoch = 0
        self._history_token = 0
        self._state = PipelineState(
            hourly_size=self.settings.hourly_view_size,
            daily_anchor=self.settings.daily_anchor,
            match_tolerance=dt.timedelta(minutes=self.settings.pollution_match_tolerance_minutes),
        )

    # Published state -----------------------------------------------------
    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    def _publish(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    def _next_epoch(self) -> int:
        self._epoch += 1
        self._publish(epoch=self._epoch)
        return self._epoch

    def _is_current(self, epoch: int, location: Optional[Location] = None) -> bool:
        """True while `epoch` is the latest and, if given, `location` is still the published one."""
        if epoch != self._epoch:
            return False
        published = self._state.location
        return location is None or (published is not None and published.key == location.key)

    def _fail(self, error: PipelineError) -> None:
        self._publish(status=LoadState.FAILED, error=error.message, error_kind=error.kind)
        logger.warning(
            "Primary operation failed",
            extra={"epoch": self._epoch, "kind": error.kind.value, "error": error.message},
        )

    # Fetch plumbing --------------------------------------------------------
    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking call off the event loop with a bounded wait."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args),
                timeout=self.settings.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise FetchTimeout() from exc

    async def _settle(self, name: str, fn: Callable[..., Any], *args: Any) -> Tuple[Any, Optional[PipelineError]]:
        """Return (result, None) or (None, error); never raises."""
        try:
            return await self._call(fn, *args), None
        except PipelineError as exc:
            logger.info("Fetch failed", extra={"fetch": name, "kind": exc.kind.value, "error": exc.message})
            return None, exc
        except Exception:
            logger.exception("Unexpected error during %s fetch", name)
            return None, DataUnavailable()

    # Commands ----------------------------------------------------------------
    async def start(self) -> PipelineState:
        """Load the configured default city on first use."""
        if self._state.status is LoadState.IDLE and self._state.location is None:
            return await self.search(self.settings.default_city)
        return self._state

    async def search(self, city_name: Optional[str]) -> PipelineState:
        """Explicit city search. Blank input fails without touching the network."""
        epoch = self._next_epoch()
        logger.info("City search", extra={"query": city_name, "epoch": epoch})
        return await self._resolve_then_load(epoch, self.resolver.resolve_by_name, city_name)

    async def locate(self, latitude: float, longitude: float) -> PipelineState:
        """Device geolocation captured; resolve a display name and load."""
        epoch = self._next_epoch()
        logger.info("Geolocation captured", extra={"latitude": latitude, "longitude": longitude, "epoch": epoch})
        return await self._resolve_then_load(epoch, self.resolver.resolve_by_coordinates, latitude, longitude)

    async def geolocation_failed(self, reason: Optional[str] = None) -> PipelineState:
        """Device geolocation was refused or unavailable."""
        self._next_epoch()
        logger.warning("Geolocation unavailable", extra={"reason": reason})
        self._fail(DataUnavailable(GEOLOCATION_MESSAGE))
        return self._state

    async def refresh(self) -> PipelineState:
        """Re-run the fan-out for the active location under a new epoch."""
        location = self._state.location
        if location is None:
            if self._state.status is LoadState.LOADING:
                # the first search is still resolving and will publish on its own
                return self._state
            self._fail(InvalidInput(NO_LOCATION_MESSAGE))
            return self._state
        epoch = self._next_epoch()
        logger.info("Refreshing location", extra={"location": location.display_name, "epoch": epoch})
        return await self._load(epoch, location)

    async def select_view(self, view: View | str) -> PipelineState:
        """
        Switch the consumer view without re-entering loading.

        Entering the pollution view for a location whose pollution series is
        not loaded issues that single secondary fetch under the current epoch.
        """
        view = View(view)
        self._publish(view=view)
        state = self._state
        if (
            view is View.POLLUTION
            and state.location is not None
            and state.pollution is None
            and state.pollution_status is not LoadState.LOADING
        ):
            await self._fetch_pollution(self._epoch, state.location)
        return self._state

    async def query_history(
        self,
        city_name: Optional[str],
        country_code: Optional[str],
        calendar_date: Any,
    ) -> PipelineState:
        """Secondary query; only the most recent history query is published."""
        self._history_token += 1
        token = self._history_token
        self._publish(history_status=LoadState.LOADING, history_error=None)

        window, error = await self._settle(
            "history", self.history_fetcher.fetch, city_name, country_code, calendar_date
        )
        if token != self._history_token:
            logger.debug("Discarding superseded history result", extra={"token": token})
            return self._state
        if error is not None:
            self._publish(
                history=None,
                history_status=LoadState.FAILED,
                history_error=_scoped_message(error, HISTORY_MESSAGE),
            )
        else:
            self._publish(history=window, history_status=LoadState.READY)
        return self._state

    # Sequencing -----------------------------------------------------------------
    async def _resolve_then_load(self, epoch: int, resolve: Callable[..., Location], *args: Any) -> PipelineState:
        """Resolution must finish before any coordinate-keyed fetch is issued."""
        self._publish(status=LoadState.LOADING, error=None, error_kind=None)
        location, error = await self._settle("resolve", resolve, *args)
        if not self._is_current(epoch):
            logger.debug("Discarding superseded resolution", extra={"epoch": epoch, "current": self._epoch})
            return self._state
        if error is not None:
            self._fail(error)
            return self._state
        return await self._load(epoch, location)

    async def _load(self, epoch: int, location: Location) -> PipelineState:
        """Fan out the fetches the active view needs and settle the lifecycle state."""
        self._publish(
            location=location,
            status=LoadState.LOADING,
            snapshot=None,
            forecast=None,
            pollution=None,
            pollution_status=LoadState.IDLE,
            pollution_error=None,
            error=None,
            error_kind=None,
        )
        jobs = [
            self._fetch_current(epoch, location),
            self._fetch_forecast(epoch, location),
        ]
        if self._state.view is View.POLLUTION:
            jobs.append(self._fetch_pollution(epoch, location))

        errors = await asyncio.gather(*jobs)
        if not self._is_current(epoch):
            logger.debug("Discarding superseded fan-out", extra={"epoch": epoch, "current": self._epoch})
            return self._state

        # only current conditions and forecast decide the lifecycle state
        primary_errors = [e for e in errors[:2] if e is not None]
        if primary_errors:
            self._fail(primary_errors[0])
        else:
            self._publish(status=LoadState.READY)
            logger.info("Location ready", extra={"location": location.display_name, "epoch": epoch})
        return self._state

    async def _fetch_current(self, epoch: int, location: Location) -> Optional[PipelineError]:
        snapshot, error = await self._settle("current", self.current_fetcher.fetch, location)
        if not self._is_current(epoch, location):
            logger.debug("Discarding stale current conditions", extra={"epoch": epoch})
            return error
        if error is None:
            self._publish(snapshot=snapshot)
        return error

    async def _fetch_forecast(self, epoch: int, location: Location) -> Optional[PipelineError]:
        series, error = await self._settle("forecast", self.forecast_fetcher.fetch, location)
        if not self._is_current(epoch, location):
            logger.debug("Discarding stale forecast", extra={"epoch": epoch})
            return error
        if error is None:
            self._publish(forecast=tuple(series))
        return error

    async def _fetch_pollution(self, epoch: int, location: Location) -> Optional[PipelineError]:
        self._publish(pollution_status=LoadState.LOADING, pollution_error=None)
        series, error = await self._settle(
            "pollution", self.pollution_fetcher.fetch, location.latitude, location.longitude
        )
        if not self._is_current(epoch, location):
            logger.debug("Discarding stale pollution series", extra={"epoch": epoch})
            return error
        if error is not None:
            self._publish(
                pollution=None,
                pollution_status=LoadState.FAILED,
                pollution_error=_scoped_message(error, POLLUTION_MESSAGE),
            )
        else:
            self._publish(pollution=tuple(series), pollution_status=LoadState.READY)
        return error
