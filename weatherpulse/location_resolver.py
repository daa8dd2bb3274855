"""Turn a city name or device coordinates into a canonical Location."""
from __future__ import annotations

import dataclasses
import math

from weatherpulse.data_sources import WeatherDataSource
from weatherpulse.domain import Location
from weatherpulse.errors import InvalidInput, NotFound
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="location_resolver")

LOCATION_NOT_FOUND_MESSAGE = "Unable to fetch your location. Please try again."


def check_coordinates(latitude: float, longitude: float) -> None:
    """Reject non-numeric, non-finite or out-of-range coordinates with InvalidInput."""
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError) as exc:
        raise InvalidInput("Coordinates must be numbers.") from exc
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidInput("Coordinates must be finite numbers.")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise InvalidInput("Coordinates are out of range.")


class LocationResolver:
    """Resolve user input with exactly one provider lookup per call, no retries and no cache."""

    def __init__(self, data_source: WeatherDataSource) -> None:
        self.data_source = data_source

    def resolve_by_name(self, city_name: str | None) -> Location:
        """Forward lookup. Blank input fails with InvalidInput before any request."""
        name = (city_name or "").strip()
        if not name:
            raise InvalidInput("City name cannot be empty.")

        found = self.data_source.lookup_city(name)
        display_name = found.display_name or name
        logger.info("Resolved city", extra={"query": name, "display_name": display_name})
        return dataclasses.replace(found, display_name=display_name)

    def resolve_by_coordinates(self, latitude: float, longitude: float) -> Location:
        """Reverse lookup. The device coordinates stay authoritative; the provider only names them."""
        check_coordinates(latitude, longitude)
        lat, lon = float(latitude), float(longitude)

        try:
            found = self.data_source.lookup_coordinates(lat, lon)
        except NotFound as exc:
            raise NotFound(LOCATION_NOT_FOUND_MESSAGE) from exc
        display_name = found.display_name or f"{lat:.2f}, {lon:.2f}"
        logger.info("Resolved coordinates", extra={"latitude": lat, "longitude": lon, "display_name": display_name})
        return Location(latitude=lat, longitude=lon, display_name=display_name)
