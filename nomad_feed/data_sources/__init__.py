"""Upstream and synthetic reading sources."""

from .base import CallableReadingSource, FetchResult, UpstreamReadingSource, attempt_fetch
from .factory import build_upstream_source
from .openweather_client import fetch_air_quality, fetch_weather, map_weather_icon
from .synthetic import SyntheticGenerator, synthesize_air_quality, synthesize_weather

__all__ = [
    "build_upstream_source",
    "CallableReadingSource",
    "FetchResult",
    "UpstreamReadingSource",
    "attempt_fetch",
    "fetch_air_quality",
    "fetch_weather",
    "map_weather_icon",
    "SyntheticGenerator",
    "synthesize_air_quality",
    "synthesize_weather",
]
