"""Air-pollution forecast fetcher."""
from __future__ import annotations

from typing import Optional

from weatherpulse.data_sources import WeatherDataSource
from weatherpulse.domain import PollutionSample, PollutionSeries
from weatherpulse.location_resolver import check_coordinates
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="pollution")


class PollutionFetcher:
    """Fetch the hourly air-quality forecast for resolved coordinates."""

    def __init__(self, data_source: WeatherDataSource) -> None:
        self.data_source = data_source

    def fetch(self, latitude: float, longitude: float) -> PollutionSeries:
        check_coordinates(latitude, longitude)
        series = self.data_source.fetch_air_pollution(float(latitude), float(longitude))
        logger.info(
            "Fetched air-pollution forecast",
            extra={"latitude": latitude, "longitude": longitude, "samples": len(series)},
        )
        return series


def current_sample(series: PollutionSeries) -> Optional[PollutionSample]:
    """The leading sample stands in for "now" in the pollution view."""
    return series[0] if series else None
