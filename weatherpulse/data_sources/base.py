"""Interfaces and helpers for weather data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from weatherpulse.domain import ForecastSeries, Location, PollutionSeries, WeatherSnapshot


class WeatherDataSource(Protocol):
    """Interface for anything that can resolve locations and provide weather data."""

    def lookup_city(self, name: str) -> Location:
        """Return the provider's match for a city name."""
        ...

    def lookup_coordinates(self, latitude: float, longitude: float) -> Location:
        """Return the provider's place for a coordinate pair."""
        ...

    def fetch_current(self, latitude: float, longitude: float) -> WeatherSnapshot:
        """Return the current weather snapshot."""
        ...

    def fetch_forecast(self, latitude: float, longitude: float) -> ForecastSeries:
        """Return the multi-day forecast series."""
        ...

    def fetch_air_pollution(self, latitude: float, longitude: float) -> PollutionSeries:
        """Return the hourly air-pollution forecast."""
        ...

    def fetch_history(self, city: str, country_code: str, start: int, end: int) -> ForecastSeries:
        """Return hourly historical weather between two epochs."""
        ...


@dataclass
class CallableWeatherDataSource(WeatherDataSource):
    """Wrap six callables so they can be swapped for different backends or fakes."""

    city_lookup: Callable[..., Location]
    coordinates_lookup: Callable[..., Location]
    current: Callable[..., WeatherSnapshot]
    forecast: Callable[..., ForecastSeries]
    air_pollution: Callable[..., PollutionSeries]
    history: Callable[..., ForecastSeries]

    def lookup_city(self, *args, **kwargs) -> Location:
        return self.city_lookup(*args, **kwargs)

    def lookup_coordinates(self, *args, **kwargs) -> Location:
        return self.coordinates_lookup(*args, **kwargs)

    def fetch_current(self, *args, **kwargs) -> WeatherSnapshot:
        return self.current(*args, **kwargs)

    def fetch_forecast(self, *args, **kwargs) -> ForecastSeries:
        return self.forecast(*args, **kwargs)

    def fetch_air_pollution(self, *args, **kwargs) -> PollutionSeries:
        return self.air_pollution(*args, **kwargs)

    def fetch_history(self, *args, **kwargs) -> ForecastSeries:
        return self.history(*args, **kwargs)
