import os

import uvicorn

from weatherpulse.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def check_provider_key() -> None:
    """
    Warn early when no OpenWeather key is configured. Controlled by:
    - WEATHERPULSE_OPENWEATHER_API_KEY, the provider credential
    - WEATHERPULSE_REQUIRE_PROVIDER_KEY=true to refuse to start without it
    """
    if settings.openweather_api_key:
        return
    logger.warning("WEATHERPULSE_OPENWEATHER_API_KEY is not set; every fetch will report unauthorized.")
    if os.getenv("WEATHERPULSE_REQUIRE_PROVIDER_KEY", "false").lower() in ("1", "true", "yes"):
        raise SystemExit(1)


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="weatherpulse_api")
    check_provider_key()

    uvicorn.run(
        "weatherpulse.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
