"""Readings and result envelopes that flow between the feed and the HTTP layer.

Readings are frozen Pydantic models: a fetch creates a new one and nothing
mutates it afterwards, so the same object can sit in the cache and be handed
to several concurrent requests. Field names serialize to camelCase to match
what the web client consumes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from nomad_feed.aqi import AQILevel, classify_aqi, compute_aqi
from nomad_feed.cities import CityCoordinate


class _FrozenModel(BaseModel):
    """Immutable, strict base with camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ReadingKind(str, Enum):
    """The two independent reading kinds, each with its own cache."""
    WEATHER = "weather"
    AIR_QUALITY = "air_quality"

    @property
    def response_key(self) -> str:
        """Key used for this kind in JSON envelopes."""
        return to_camel(self.value)


class WeatherIcon(str, Enum):
    """Icon categories understood by the front end."""
    SUNNY = "sunny"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    STORMY = "stormy"
    FOGGY = "foggy"


class ReadingSource(str, Enum):
    """Where a returned reading came from."""
    UPSTREAM = "upstream"
    SYNTHETIC = "synthetic"
    CACHE = "cache"


class WeatherReading(_FrozenModel):
    """Current weather for one city."""
    city_id: str
    city_name: str
    temperature: int  # °C
    humidity: int  # %
    description: str
    icon: WeatherIcon
    wind_speed: float  # m/s
    wind_direction: str
    visibility: int  # km
    pressure: int  # hPa
    updated_at: datetime


class AirQualityReading(_FrozenModel):
    """Current air quality for one city; `aqi` and `aqi_level` follow from PM2.5."""
    city_id: str
    city_name: str
    pm10: int
    pm25: int
    aqi: int
    aqi_level: AQILevel
    co: int
    no2: int
    o3: int
    so2: int
    updated_at: datetime

    @classmethod
    def from_concentrations(
        cls,
        city: CityCoordinate,
        *,
        pm25: float,
        pm10: float,
        co: float,
        no2: float,
        o3: float,
        so2: float,
        updated_at: datetime,
    ) -> "AirQualityReading":
        """Build a reading from raw μg/m³ values, deriving AQI from unrounded PM2.5."""
        aqi = compute_aqi(pm25)
        return cls(
            city_id=city.city_id,
            city_name=city.name,
            pm10=round(pm10),
            pm25=round(pm25),
            aqi=aqi,
            aqi_level=classify_aqi(aqi),
            co=round(co),
            no2=round(no2),
            o3=round(o3),
            so2=round(so2),
            updated_at=updated_at,
        )


Reading = Union[WeatherReading, AirQualityReading]


class ReadingResult(_FrozenModel):
    """A reading together with how it was obtained."""
    reading: Union[WeatherReading, AirQualityReading]
    cached: bool
    source: ReadingSource
    cache_expiry: Optional[datetime] = None


class PartialFailure(_FrozenModel):
    """Describes a reading kind that could not be produced, even synthetically."""
    kind: ReadingKind
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, kind: ReadingKind, exc: BaseException) -> "PartialFailure":
        return cls(kind=kind, error_type=type(exc).__name__, message=str(exc) or type(exc).__name__)


class CombinedReading(_FrozenModel):
    """Weather and air quality for one city, possibly with one side missing."""
    city_id: str
    city_name: str
    weather: Optional[WeatherReading] = None
    air_quality: Optional[AirQualityReading] = None
    weather_cached: bool = False
    air_quality_cached: bool = False
    last_updated: Optional[datetime] = None
    errors: Dict[ReadingKind, PartialFailure] = {}

    @property
    def is_complete(self) -> bool:
        return self.weather is not None and self.air_quality is not None

    @property
    def is_partial(self) -> bool:
        return bool(self.errors)
