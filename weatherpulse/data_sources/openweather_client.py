"""Helpers for fetching weather, air-pollution and history data from OpenWeather."""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, List, Optional, Sequence, Type, Union

import requests

from weatherpulse.config import settings
from weatherpulse.domain import (
    ForecastSeries,
    Location,
    PollutantComponents,
    PollutionSample,
    PollutionSeries,
    WeatherSnapshot,
)
from weatherpulse.errors import DataUnavailable, NotFound, PipelineError, Unauthorized
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="openweather_client")

# One session per process; tests swap it for a dummy.
session = requests.Session()

POLLUTANT_FIELDS = ("pm2_5", "pm10", "co", "no", "no2", "o3", "so2")

_Path = Sequence[Union[str, int]]


def _weather_url(endpoint: str) -> str:
    return f"{settings.openweather_base_url}/{endpoint}"


def _api_key() -> str:
    """Return the configured provider key, or fail before any request is sent."""
    key = settings.openweather_api_key
    if not key:
        logger.warning("No OpenWeather API key configured")
        raise Unauthorized("No weather provider API key is configured.")
    return key


def _raise_for_code(code: int, *, context: str, not_found: Type[PipelineError]) -> None:
    """Translate a provider status code into the pipeline's error taxonomy."""
    if 200 <= code < 300:
        return
    if code in (401, 403):
        raise Unauthorized()
    if code == 404:
        raise not_found()
    logger.warning("OpenWeather returned an error status", extra={"context": context, "status": code})
    raise DataUnavailable()


def _get_json(
    url: str,
    params: dict,
    *,
    context: str,
    not_found: Type[PipelineError] = DataUnavailable,
) -> dict:
    """GET a provider endpoint and return its JSON body, mapping every failure to a PipelineError."""
    query = dict(params)
    query["appid"] = _api_key()

    try:
        resp = session.get(url, params=query, timeout=settings.request_timeout_seconds)
    except requests.RequestException as exc:
        logger.warning("OpenWeather request failed", extra={"context": context, "error": str(exc)})
        raise DataUnavailable() from exc

    logger.debug(
        "OpenWeather response",
        extra={"context": context, "url": mask_url(getattr(resp, "url", None) or url), "status": resp.status_code},
    )
    _raise_for_code(resp.status_code, context=context, not_found=not_found)

    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("OpenWeather returned non-JSON body", extra={"context": context})
        raise DataUnavailable() from exc
    if not isinstance(data, dict):
        raise DataUnavailable()

    # Some endpoints report failures in the body ("cod": "404") with a 200 status.
    cod = data.get("cod")
    if cod is not None and str(cod).isdigit():
        _raise_for_code(int(cod), context=context, not_found=not_found)
    return data


def _field(payload: Any, path: _Path, *, context: str) -> Any:
    """Walk `path` into a JSON payload; a missing step means the payload is malformed."""
    value = payload
    for step in path:
        try:
            value = value[step]
        except (KeyError, IndexError, TypeError) as exc:
            logger.warning("Malformed OpenWeather payload", extra={"context": context, "missing": list(path)})
            raise DataUnavailable() from exc
    return value


def _number(payload: Any, path: _Path, *, context: str) -> float:
    value = _field(payload, path, context=context)
    # json accepts NaN and Infinity literals
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        logger.warning("Non-numeric OpenWeather field", extra={"context": context, "field": list(path)})
        raise DataUnavailable()
    return float(value)


def _optional_number(payload: Any, path: _Path) -> Optional[float]:
    value = payload
    for step in path:
        try:
            value = value[step]
        except (KeyError, IndexError, TypeError):
            return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def _epoch_to_dt(value: Optional[float]) -> Optional[dt.datetime]:
    if value is None:
        return None
    try:
        return dt.datetime.fromtimestamp(int(value), tz=dt.timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        logger.warning("OpenWeather epoch out of range", extra={"value": value})
        raise DataUnavailable() from exc


def _parse_snapshot(item: dict, *, context: str) -> WeatherSnapshot:
    """Normalize one OpenWeather weather record (current, forecast or history entry)."""
    timestamp = _epoch_to_dt(_number(item, ["dt"], context=context))
    condition = _field(item, ["weather", 0], context=context)
    time_text = item.get("dt_txt") if isinstance(item, dict) else None
    description = condition.get("description", "") if isinstance(condition, dict) else ""
    icon = condition.get("icon") if isinstance(condition, dict) else None

    return WeatherSnapshot(
        timestamp=timestamp,
        temperature_c=_number(item, ["main", "temp"], context=context),
        humidity_pct=_number(item, ["main", "humidity"], context=context),
        pressure_hpa=_number(item, ["main", "pressure"], context=context),
        wind_speed_ms=_number(item, ["wind", "speed"], context=context),
        condition_code=int(_number(condition, ["id"], context=context)),
        description=str(description or ""),
        sunrise=_epoch_to_dt(_optional_number(item, ["sys", "sunrise"])),
        sunset=_epoch_to_dt(_optional_number(item, ["sys", "sunset"])),
        time_text=str(time_text) if time_text else None,
        feels_like_c=_optional_number(item, ["main", "feels_like"]),
        icon=icon,
        latitude=_optional_number(item, ["coord", "lat"]),
        longitude=_optional_number(item, ["coord", "lon"]),
    )


def _parse_series(items: Any, *, context: str) -> List[WeatherSnapshot]:
    """Parse a list of weather records, keeping only strictly increasing timestamps."""
    if not isinstance(items, list):
        raise DataUnavailable()
    out: List[WeatherSnapshot] = []
    for item in items:
        snapshot = _parse_snapshot(item, context=context)
        if out and snapshot.timestamp <= out[-1].timestamp:
            logger.warning(
                "Dropping out-of-order OpenWeather entry",
                extra={"context": context, "timestamp": snapshot.timestamp.isoformat()},
            )
            continue
        out.append(snapshot)
    return out


def _parse_pollution(item: dict, *, context: str) -> PollutionSample:
    value = _number(item, ["main", "aqi"], context=context)
    if not value.is_integer():
        logger.warning("Fractional AQI", extra={"context": context, "aqi": value})
        raise DataUnavailable()
    aqi = int(value)
    if not 1 <= aqi <= 5:
        logger.warning("AQI outside 1..5", extra={"context": context, "aqi": aqi})
        raise DataUnavailable()
    components = PollutantComponents(
        **{name: _number(item, ["components", name], context=context) for name in POLLUTANT_FIELDS}
    )
    return PollutionSample(
        timestamp=_epoch_to_dt(_number(item, ["dt"], context=context)),
        aqi=aqi,
        components=components,
    )


def _parse_location(data: dict, *, context: str) -> Location:
    name = data.get("name")
    return Location(
        latitude=_number(data, ["coord", "lat"], context=context),
        longitude=_number(data, ["coord", "lon"], context=context),
        display_name=str(name).strip() if name else "",
    )


def lookup_city(name: str) -> Location:
    """Forward lookup of a city name. The display name may be empty if the provider omits it."""
    data = _get_json(
        _weather_url("weather"),
        {"q": name, "units": settings.units},
        context="lookup_city",
        not_found=NotFound,
    )
    return _parse_location(data, context="lookup_city")


def lookup_coordinates(latitude: float, longitude: float) -> Location:
    """Reverse lookup of device coordinates; the returned coordinates are the provider's."""
    data = _get_json(
        _weather_url("weather"),
        {"lat": latitude, "lon": longitude, "units": settings.units},
        context="lookup_coordinates",
        not_found=NotFound,
    )
    return _parse_location(data, context="lookup_coordinates")


def fetch_current(latitude: float, longitude: float) -> WeatherSnapshot:
    """Fetch the current conditions for the given coordinates."""
    data = _get_json(
        _weather_url("weather"),
        {"lat": latitude, "lon": longitude, "units": settings.units},
        context="weather_current",
    )
    return _parse_snapshot(data, context="weather_current")


def fetch_forecast(latitude: float, longitude: float) -> ForecastSeries:
    """Fetch the 5-day / 3-hour forecast series."""
    data = _get_json(
        _weather_url("forecast"),
        {"lat": latitude, "lon": longitude, "units": settings.units},
        context="weather_forecast",
    )
    return tuple(_parse_series(data.get("list"), context="weather_forecast"))


def fetch_air_pollution_forecast(latitude: float, longitude: float) -> PollutionSeries:
    """Fetch the hourly air-pollution forecast."""
    data = _get_json(
        _weather_url("air_pollution/forecast"),
        {"lat": latitude, "lon": longitude},
        context="air_pollution_forecast",
    )
    items = data.get("list")
    if not isinstance(items, list):
        raise DataUnavailable()
    return tuple(_parse_pollution(item, context="air_pollution_forecast") for item in items)


def fetch_history(city: str, country_code: str, start: int, end: int) -> ForecastSeries:
    """Fetch hourly historical weather for `city,country_code` between two epochs."""
    data = _get_json(
        settings.openweather_history_url,
        {
            "q": f"{city},{country_code}",
            "type": "hour",
            "start": start,
            "end": end,
            "units": settings.units,
        },
        context="weather_history",
    )
    return tuple(_parse_series(data.get("list"), context="weather_history"))
