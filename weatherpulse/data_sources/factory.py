"""Factory helpers for choosing a weather data source at startup."""

from __future__ import annotations

from weatherpulse import config
from weatherpulse.data_sources.base import CallableWeatherDataSource, WeatherDataSource
from weatherpulse.data_sources.openweather_client import (
    fetch_air_pollution_forecast,
    fetch_current,
    fetch_forecast,
    fetch_history,
    lookup_city,
    lookup_coordinates,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "openweather"


def build_data_source(settings: config.Settings | None = None) -> WeatherDataSource:
    """Instantiate the configured weather data source."""
    settings = settings or config.settings
    source = (settings.weather_source or DEFAULT_SOURCE_NAME).lower()

    if source == "openweather":
        if not settings.openweather_api_key:
            logger.warning("OpenWeather selected without an API key; every fetch will fail as unauthorized")
        logger.info("Using OpenWeather data source")
        return CallableWeatherDataSource(
            city_lookup=lookup_city,
            coordinates_lookup=lookup_coordinates,
            current=fetch_current,
            forecast=fetch_forecast,
            air_pollution=fetch_air_pollution_forecast,
            history=fetch_history,
        )

    raise ValueError(f"Unknown weather source '{source}'")
