"""Static coordinates for the cities the realtime feed knows about."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from nomad_feed.errors import UnknownCityError


@dataclass(frozen=True)
class CityCoordinate:
    """Reference data used to build upstream query parameters."""
    city_id: str
    name: str
    latitude: float
    longitude: float
    region: str


KOREAN_CITIES: List[CityCoordinate] = [
    CityCoordinate("seoul", "서울", 37.5665, 126.9780, "seoul"),
    CityCoordinate("busan", "부산", 35.1796, 129.0756, "busan"),
    CityCoordinate("incheon", "인천", 37.4563, 126.7052, "incheon"),
    CityCoordinate("daegu", "대구", 35.8714, 128.6014, "daegu"),
    CityCoordinate("daejeon", "대전", 36.3504, 127.3845, "daejeon"),
    CityCoordinate("gwangju", "광주", 35.1595, 126.8526, "gwangju"),
    CityCoordinate("ulsan", "울산", 35.5384, 129.3114, "ulsan"),
    CityCoordinate("jeju", "제주", 33.4996, 126.5312, "jeju"),
    CityCoordinate("suwon", "수원", 37.2636, 127.0286, "gyeonggi"),
    CityCoordinate("gangneung", "강릉", 37.7519, 128.8761, "gangwon"),
]

_BY_ID: Dict[str, CityCoordinate] = {city.city_id: city for city in KOREAN_CITIES}


def get_city_coordinates(city_id: str) -> Optional[CityCoordinate]:
    """Return the coordinate record for `city_id`, or None."""
    return _BY_ID.get(city_id)


def resolve_city(city_id: str) -> CityCoordinate:
    """Return the coordinate record for `city_id` or raise UnknownCityError."""
    city = _BY_ID.get(city_id)
    if city is None:
        raise UnknownCityError(city_id)
    return city
