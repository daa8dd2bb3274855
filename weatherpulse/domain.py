"""Domain vocabulary for the location and weather aggregation pipeline.

This module holds the value types that flow between the provider client, the
fetchers and the controller: locations, weather snapshots, pollution samples
and the historical window, plus the lifecycle and view enums consumers read.
No I/O or interpretation logic lives here beyond small display helpers.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

SECONDS_PER_DAY = 86400

PRESSURE_GAUGE_MIN_HPA = 950.0
PRESSURE_GAUGE_MAX_HPA = 1050.0

AQI_LABELS = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}


class LoadState(str, Enum):
    """Lifecycle of a published result set (or of one of its sub-views)."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class View(str, Enum):
    """Consumer view; decides which fetches a location change fans out to."""
    CURRENT = "current"
    POLLUTION = "pollution"
    HISTORICAL = "historical"


@dataclass(frozen=True)
class Location:
    """Canonical resolved location. Identity is the coordinate pair."""
    latitude: float
    longitude: float
    display_name: str

    @property
    def key(self) -> Tuple[float, float]:
        """Return the (latitude, longitude) pair used for staleness checks."""
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class WeatherSnapshot:
    """Point-in-time weather reading in metric units."""
    timestamp: dt.datetime  # timezone-aware, UTC
    temperature_c: float
    humidity_pct: float
    pressure_hpa: float
    wind_speed_ms: float
    condition_code: int
    description: str
    sunrise: Optional[dt.datetime] = None
    sunset: Optional[dt.datetime] = None
    time_text: Optional[str] = None  # provider "dt_txt" label, forecast entries only
    feels_like_c: Optional[float] = None
    icon: Optional[str] = None
    latitude: Optional[float] = None  # provider-reported, when the payload carries it
    longitude: Optional[float] = None

    @property
    def pressure_gauge_pct(self) -> float:
        return pressure_gauge_pct(self.pressure_hpa)


ForecastSeries = Tuple[WeatherSnapshot, ...]


@dataclass(frozen=True)
class PollutantComponents:
    """Pollutant concentrations in µg/m³."""
    pm2_5: float
    pm10: float
    co: float
    no: float
    no2: float
    o3: float
    so2: float


@dataclass(frozen=True)
class PollutionSample:
    """Hourly air-quality reading; `aqi` is the provider's 1..5 index."""
    timestamp: dt.datetime  # timezone-aware, UTC
    aqi: int
    components: PollutantComponents

    @property
    def aqi_label(self) -> str:
        return aqi_label(self.aqi)


PollutionSeries = Tuple[PollutionSample, ...]


@dataclass(frozen=True)
class HistoricalWindow:
    """Hourly weather for one fixed 24-hour window."""
    location: str  # city name as queried; history is looked up by name, not coordinates
    country_code: str
    start_epoch: int
    end_epoch: int
    samples: Tuple[WeatherSnapshot, ...]

    def __post_init__(self) -> None:
        if self.end_epoch - self.start_epoch != SECONDS_PER_DAY:
            raise ValueError("HistoricalWindow must span exactly 86400 seconds")


@dataclass(frozen=True)
class AlignedHour:
    """A forecast entry paired with the nearest pollution sample, if any."""
    forecast: WeatherSnapshot
    pollution: Optional[PollutionSample]


def pressure_gauge_pct(pressure_hpa: float) -> float:
    """Position of a pressure reading on a 950-1050 hPa gauge, clamped to 0..100."""
    span = PRESSURE_GAUGE_MAX_HPA - PRESSURE_GAUGE_MIN_HPA
    pct = (pressure_hpa - PRESSURE_GAUGE_MIN_HPA) / span * 100.0
    return max(0.0, min(100.0, pct))


def aqi_label(aqi: int) -> str:
    """Human label for the provider's 1..5 air-quality index."""
    return AQI_LABELS.get(aqi, "Unknown")


__all__ = [
    "SECONDS_PER_DAY",
    "LoadState",
    "View",
    "Location",
    "WeatherSnapshot",
    "ForecastSeries",
    "PollutantComponents",
    "PollutionSample",
    "PollutionSeries",
    "HistoricalWindow",
    "AlignedHour",
    "pressure_gauge_pct",
    "aqi_label",
]
