"""Plausible stand-in readings for when the upstream provider is unavailable.

Values combine a per-city bias, a seasonal band keyed off the calendar month,
a commute-hour bump for air quality and bounded randomness on top. The random
source and clock are injectable so tests can pin both.
"""

from __future__ import annotations

import datetime as dt
import random
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from nomad_feed.cities import CityCoordinate, resolve_city
from nomad_feed.domain import AirQualityReading, WeatherIcon, WeatherReading
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="synthetic")

KST = ZoneInfo("Asia/Seoul")

# >1 means dirtier air than average (capital region, industry), <1 cleaner (coast, island).
CITY_AIR_FACTORS: Dict[str, float] = {
    "seoul": 1.3,
    "busan": 1.1,
    "incheon": 1.2,
    "daegu": 1.1,
    "daejeon": 1.0,
    "gwangju": 0.9,
    "ulsan": 1.2,
    "jeju": 0.7,
    "suwon": 1.1,
    "gangneung": 0.8,
}

# °C shift applied to the seasonal temperature band.
CITY_TEMPERATURE_OFFSETS: Dict[str, float] = {
    "seoul": -1.0,
    "busan": 1.5,
    "incheon": -0.5,
    "daegu": 1.0,
    "gwangju": 0.5,
    "ulsan": 1.0,
    "jeju": 3.0,
    "suwon": -1.0,
    "gangneung": -1.5,
}

WINTER_MONTHS = (12, 1, 2)
SPRING_MONTHS = (3, 4, 5)
SUMMER_MONTHS = (6, 7, 8)

# (low, high) °C before the city offset
SEASON_TEMPERATURE_BANDS: Dict[str, Tuple[float, float]] = {
    "winter": (-5.0, 5.0),
    "spring": (10.0, 25.0),
    "summer": (20.0, 35.0),
    "autumn": (5.0, 25.0),
}

# Winter heating and spring yellow dust raise particulates; summer rain clears them.
SEASON_AIR_FACTORS: Dict[str, float] = {
    "winter": 1.4,
    "spring": 1.2,
    "summer": 0.8,
    "autumn": 1.0,
}

COMMUTE_HOURS = ((7, 9), (18, 20))
COMMUTE_AIR_FACTOR = 1.3

CONDITIONS: List[Tuple[str, WeatherIcon]] = [
    ("맑음", WeatherIcon.SUNNY),
    ("구름많음", WeatherIcon.PARTLY_CLOUDY),
    ("흐림", WeatherIcon.CLOUDY),
    ("비", WeatherIcon.RAINY),
    ("눈", WeatherIcon.SNOWY),
]

WIND_DIRECTIONS = ["북", "북동", "동", "남동", "남", "남서", "서", "북서"]


def season_for_month(month: int) -> str:
    if month in WINTER_MONTHS:
        return "winter"
    if month in SPRING_MONTHS:
        return "spring"
    if month in SUMMER_MONTHS:
        return "summer"
    return "autumn"


def temperature_band(city_id: str, month: int) -> Tuple[float, float]:
    """Seasonal (low, high) °C range for a city, shifted by its offset."""
    low, high = SEASON_TEMPERATURE_BANDS[season_for_month(month)]
    offset = CITY_TEMPERATURE_OFFSETS.get(city_id, 0.0)
    return low + offset, high + offset


def is_commute_hour(hour: int) -> bool:
    return any(start <= hour <= end for start, end in COMMUTE_HOURS)


def _kst_now() -> dt.datetime:
    return dt.datetime.now(KST)


class SyntheticGenerator:
    """Produces WeatherReading/AirQualityReading values without any network access."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], dt.datetime] = _kst_now,
    ) -> None:
        self.rng = rng or random.Random()
        self.clock = clock

    def _local_now(self) -> dt.datetime:
        now = self.clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=KST)
        return now.astimezone(KST)

    def weather(self, city_id: str) -> WeatherReading:
        """Synthesize current weather; raises UnknownCityError for unknown ids."""
        city = resolve_city(city_id)
        now = self._local_now()
        season = season_for_month(now.month)
        low, high = temperature_band(city.city_id, now.month)

        # snow only makes sense in winter
        choices = CONDITIONS if season == "winter" else CONDITIONS[:-1]
        description, icon = self.rng.choice(choices)

        return WeatherReading(
            city_id=city.city_id,
            city_name=city.name,
            temperature=round(self.rng.uniform(low, high)),
            humidity=self.rng.randint(40, 79),
            description=description,
            icon=icon,
            wind_speed=round(self.rng.uniform(0.0, 10.0), 1),
            wind_direction=self.rng.choice(WIND_DIRECTIONS),
            visibility=self.rng.randint(5, 9),
            pressure=self.rng.randint(1000, 1049),
            updated_at=now,
        )

    def air_quality(self, city_id: str) -> AirQualityReading:
        """Synthesize current air quality; raises UnknownCityError for unknown ids."""
        city: CityCoordinate = resolve_city(city_id)
        now = self._local_now()
        factor = CITY_AIR_FACTORS.get(city.city_id, 1.0)
        season_factor = SEASON_AIR_FACTORS[season_for_month(now.month)]
        time_factor = COMMUTE_AIR_FACTOR if is_commute_hour(now.hour) else 1.0

        pm25 = round(self.rng.uniform(15.0, 55.0) * factor * season_factor * time_factor)
        pm10 = round(pm25 * self.rng.uniform(1.5, 2.0))

        return AirQualityReading.from_concentrations(
            city,
            pm25=pm25,
            pm10=pm10,
            co=self.rng.uniform(500.0, 2500.0) * factor,
            no2=self.rng.uniform(20.0, 120.0) * factor,
            # ozone runs lower where traffic NO scavenges it
            o3=self.rng.uniform(50.0, 200.0) / factor,
            so2=self.rng.uniform(10.0, 60.0) * factor,
            updated_at=now,
        )


_default_generator = SyntheticGenerator()


def synthesize_weather(city_id: str) -> WeatherReading:
    return _default_generator.weather(city_id)


def synthesize_air_quality(city_id: str) -> AirQualityReading:
    return _default_generator.air_quality(city_id)
