import os

import uvicorn

from nomad_feed.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def log_upstream_mode() -> None:
    """
    Report which data path the feed will use. Controlled by:
    - NOMAD_OPENWEATHER_API_KEY: when unset, every reading is synthetic (demo mode)
    - NOMAD_CACHE_REDIS_URL: when set, readings are cached in Redis instead of memory
    """
    if settings.upstream_enabled:
        logger.info("OpenWeatherMap key present; upstream fetches enabled")
    else:
        logger.info("No NOMAD_OPENWEATHER_API_KEY; running in demo mode with synthetic readings")
    if settings.cache_redis_url:
        logger.info("Reading caches will try Redis first")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="nomad_feed")
    log_upstream_mode()

    uvicorn.run(
        "nomad_feed.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
