"""Current-conditions fetcher."""
from __future__ import annotations

from weatherpulse.data_sources import WeatherDataSource
from weatherpulse.domain import Location, WeatherSnapshot
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="current_conditions")


class CurrentConditionsFetcher:
    """One request per call, keyed by the resolved coordinates."""

    def __init__(self, data_source: WeatherDataSource) -> None:
        self.data_source = data_source

    def fetch(self, location: Location) -> WeatherSnapshot:
        snapshot = self.data_source.fetch_current(location.latitude, location.longitude)
        logger.info(
            "Fetched current conditions",
            extra={
                "location": location.display_name,
                "timestamp": snapshot.timestamp.isoformat(),
                "temperature_c": snapshot.temperature_c,
            },
        )
        return snapshot
