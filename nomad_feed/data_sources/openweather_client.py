"""Helpers for fetching current weather and air pollution from OpenWeatherMap.

Both calls hit the free-tier 2.5 API once per invocation with no retry; any
failure (missing key, network error, timeout, non-2xx, unexpected body) is
raised as UpstreamError so the feed can fall back to synthetic data.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

import requests

from nomad_feed.cities import CityCoordinate
from nomad_feed.domain import AirQualityReading, ReadingKind, WeatherIcon, WeatherReading
from nomad_feed.errors import UpstreamError
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="openweather_client")

session = requests.Session()

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_TIMEOUT_SECONDS = 10.0

UNKNOWN_WIND_DIRECTION = "정보없음"
DEFAULT_VISIBILITY_KM = 10

ICON_MAP: Dict[str, WeatherIcon] = {
    "01d": WeatherIcon.SUNNY, "01n": WeatherIcon.SUNNY,
    "02d": WeatherIcon.PARTLY_CLOUDY, "02n": WeatherIcon.PARTLY_CLOUDY,
    "03d": WeatherIcon.CLOUDY, "03n": WeatherIcon.CLOUDY,
    "04d": WeatherIcon.CLOUDY, "04n": WeatherIcon.CLOUDY,
    "09d": WeatherIcon.RAINY, "09n": WeatherIcon.RAINY,
    "10d": WeatherIcon.RAINY, "10n": WeatherIcon.RAINY,
    "11d": WeatherIcon.STORMY, "11n": WeatherIcon.STORMY,
    "13d": WeatherIcon.SNOWY, "13n": WeatherIcon.SNOWY,
    "50d": WeatherIcon.FOGGY, "50n": WeatherIcon.FOGGY,
}


def map_weather_icon(code: Optional[str]) -> WeatherIcon:
    """Translate an OpenWeatherMap icon code; unknown codes become PARTLY_CLOUDY."""
    return ICON_MAP.get(code or "", WeatherIcon.PARTLY_CLOUDY)


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _get_json(
    kind: ReadingKind,
    url: str,
    params: Dict[str, Any],
    *,
    timeout: float,
) -> Dict[str, Any]:
    """GET url and return the decoded JSON object, raising UpstreamError on any failure."""
    try:
        resp = session.get(url, params=params, timeout=timeout)
    except requests.Timeout as exc:
        raise UpstreamError(kind.value, f"{kind.value} API timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise UpstreamError(kind.value, f"{kind.value} API request failed: {exc}") from exc

    if not resp.ok:
        logger.debug(
            "Upstream returned an error status",
            extra={"url": mask_url_secrets(getattr(resp, "url", url) or url), "status": resp.status_code},
        )
        raise UpstreamError(
            kind.value,
            f"{kind.value} API error: {resp.status_code} {resp.reason}",
            status_code=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as exc:
        raise UpstreamError(kind.value, f"{kind.value} API returned invalid JSON") from exc
    if not isinstance(data, dict):
        raise UpstreamError(kind.value, f"{kind.value} API returned an unexpected payload")
    return data


def _require_key(kind: ReadingKind, api_key: Optional[str]) -> str:
    if not api_key:
        raise UpstreamError(kind.value, f"{kind.value} API key not configured")
    return api_key


def fetch_weather(
    city: CityCoordinate,
    *,
    api_key: Optional[str],
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> WeatherReading:
    """Fetch current weather (metric units, Korean descriptions) for a city."""
    kind = ReadingKind.WEATHER
    params = {
        "lat": city.latitude,
        "lon": city.longitude,
        "appid": _require_key(kind, api_key),
        "units": "metric",
        "lang": "kr",
    }
    data = _get_json(kind, f"{base_url}/weather", params, timeout=timeout)

    try:
        main = data["main"]
        condition = data["weather"][0]
        wind = data.get("wind") or {}
        wind_deg = wind.get("deg")
        visibility_m = data.get("visibility")

        reading = WeatherReading(
            city_id=city.city_id,
            city_name=city.name,
            temperature=round(main["temp"]),
            humidity=round(main["humidity"]),
            description=condition.get("description", ""),
            icon=map_weather_icon(condition.get("icon")),
            wind_speed=float(wind.get("speed") or 0.0),
            wind_direction=f"{round(wind_deg)}°" if wind_deg else UNKNOWN_WIND_DIRECTION,
            visibility=round(visibility_m / 1000) if visibility_m else DEFAULT_VISIBILITY_KM,
            pressure=round(main["pressure"]),
            updated_at=_utc_now(),
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError(kind.value, f"weather API response could not be parsed: {exc!r}") from exc

    logger.debug(f"Fetched upstream weather for {city.city_id}: {reading.temperature}°C {reading.icon.value}")
    return reading


def fetch_air_quality(
    city: CityCoordinate,
    *,
    api_key: Optional[str],
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> AirQualityReading:
    """Fetch current pollutant concentrations for a city and derive AQI from PM2.5."""
    kind = ReadingKind.AIR_QUALITY
    params = {
        "lat": city.latitude,
        "lon": city.longitude,
        "appid": _require_key(kind, api_key),
    }
    data = _get_json(kind, f"{base_url}/air_pollution", params, timeout=timeout)

    try:
        components = data["list"][0]["components"]
        reading = AirQualityReading.from_concentrations(
            city,
            pm25=float(components["pm2_5"]),
            pm10=float(components["pm10"]),
            co=float(components["co"]),
            no2=float(components["no2"]),
            o3=float(components["o3"]),
            so2=float(components["so2"]),
            updated_at=_utc_now(),
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise UpstreamError(kind.value, f"air quality API response could not be parsed: {exc!r}") from exc

    logger.debug(f"Fetched upstream air quality for {city.city_id}: AQI {reading.aqi}")
    return reading
