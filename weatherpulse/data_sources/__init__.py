"""Data source factories for plugging different weather backends."""

from .base import CallableWeatherDataSource, WeatherDataSource
from .factory import build_data_source

__all__ = [
    "build_data_source",
    "CallableWeatherDataSource",
    "WeatherDataSource",
]
