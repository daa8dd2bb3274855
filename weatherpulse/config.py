"""Application configuration pulled from environment variables via pydantic."""
import re

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

_ANCHOR_RE = re.compile(r"^\d{2}:\d{2}:\d{2}$")


class Settings(BaseSettings):
    """Environment-driven configuration for the weatherpulse service."""
    model_config = SettingsConfigDict(env_prefix="WEATHERPULSE_", extra="ignore")

    weather_source: str = "openweather"  # options: openweather
    openweather_api_key: str | None = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_history_url: str = "https://history.openweathermap.org/data/2.5/history/city"
    units: str = "metric"
    request_timeout_seconds: float = 10.0
    fetch_timeout_seconds: float = 15.0
    hourly_view_size: int = 12
    daily_anchor: str = "12:00:00"
    pollution_match_tolerance_minutes: int = 90
    default_city: str = "Amman"
    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("openweather_base_url", "openweather_history_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("daily_anchor", mode="after")
    @classmethod
    def check_anchor(cls, v: str) -> str:
        """The daily anchor is matched textually, so it must look like HH:MM:SS."""
        if not _ANCHOR_RE.match(v):
            raise ValueError(f"daily_anchor must be HH:MM:SS, got {v!r}")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'openweather_api_key', 'api_key'})}")
