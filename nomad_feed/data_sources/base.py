"""Interfaces and helpers for upstream reading sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, TypeVar

from nomad_feed.cities import CityCoordinate
from nomad_feed.domain import AirQualityReading, WeatherReading
from nomad_feed.errors import UpstreamError

R = TypeVar("R")


class UpstreamReadingSource(Protocol):
    """Anything that can fetch live weather and air-quality readings for a city."""

    def fetch_weather(self, city: CityCoordinate) -> WeatherReading:
        """Return current weather or raise UpstreamError."""
        ...

    def fetch_air_quality(self, city: CityCoordinate) -> AirQualityReading:
        """Return current air quality or raise UpstreamError."""
        ...


@dataclass
class CallableReadingSource(UpstreamReadingSource):
    """Wrap two callables so different providers (or test fakes) can be swapped in."""

    weather: Callable[[CityCoordinate], WeatherReading]
    air_quality: Callable[[CityCoordinate], AirQualityReading]

    def fetch_weather(self, city: CityCoordinate) -> WeatherReading:
        """Delegate to the configured weather callable."""
        return self.weather(city)

    def fetch_air_quality(self, city: CityCoordinate) -> AirQualityReading:
        """Delegate to the configured air-quality callable."""
        return self.air_quality(city)


@dataclass(frozen=True)
class FetchResult(Generic[R]):
    """Outcome of one upstream call: exactly one of `reading` / `error` is set."""
    reading: Optional[R] = None
    error: Optional[UpstreamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.reading is not None


def attempt_fetch(fetch: Callable[[CityCoordinate], R], city: CityCoordinate) -> FetchResult[R]:
    """Run an upstream fetch, turning UpstreamError into a failed FetchResult.

    Anything other than UpstreamError is a bug and propagates.
    """
    try:
        return FetchResult(reading=fetch(city))
    except UpstreamError as exc:
        return FetchResult(error=exc)
