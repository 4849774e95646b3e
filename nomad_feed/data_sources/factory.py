"""Factory helpers for choosing the upstream reading source at startup."""

from __future__ import annotations

from functools import partial
from typing import Optional

from nomad_feed import config
from nomad_feed.data_sources.base import CallableReadingSource, UpstreamReadingSource
from nomad_feed.data_sources.openweather_client import fetch_air_quality, fetch_weather
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_upstream_source(settings: config.Settings | None = None) -> Optional[UpstreamReadingSource]:
    """Return the OpenWeatherMap source, or None when no API key is configured (demo mode)."""
    settings = settings or config.settings
    api_key = getattr(settings, "openweather_api_key", None)

    if not api_key:
        logger.info("No OpenWeatherMap API key configured; serving synthetic readings only")
        return None

    base_url = settings.openweather_base_url
    timeout = settings.request_timeout_seconds
    logger.info("Using OpenWeatherMap upstream", extra={"base_url": base_url, "timeout": timeout})
    return CallableReadingSource(
        weather=partial(fetch_weather, api_key=api_key, base_url=base_url, timeout=timeout),
        air_quality=partial(fetch_air_quality, api_key=api_key, base_url=base_url, timeout=timeout),
    )
