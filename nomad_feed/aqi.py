"""US EPA air quality index for PM2.5 plus the Korean labels shown to users.

Everything here is a pure function of its input; the feed, the synthetic
generator and the upstream adapter all derive AQI through this module.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple


class AQILevel(str, Enum):
    """AQI severity bands, declared from least to most severe."""
    GOOD = "good"
    MODERATE = "moderate"
    UNHEALTHY_SENSITIVE = "unhealthy_sensitive"
    UNHEALTHY = "unhealthy"
    VERY_UNHEALTHY = "very_unhealthy"
    HAZARDOUS = "hazardous"

    @property
    def severity(self) -> int:
        """0 for GOOD up to 5 for HAZARDOUS."""
        return list(AQILevel).index(self)


# (pm25_low, pm25_high, aqi_low, aqi_high)
PM25_BREAKPOINTS: List[Tuple[float, float, int, int]] = [
    (0.0, 12.0, 0, 50),
    (12.1, 35.4, 51, 100),
    (35.5, 55.4, 101, 150),
    (55.5, 150.4, 151, 200),
    (150.5, 250.4, 201, 300),
    (250.5, 500.4, 301, 500),
]

# Upper AQI bound of each level, in severity order; HAZARDOUS is open-ended.
AQI_LEVEL_CEILINGS: List[Tuple[int, AQILevel]] = [
    (50, AQILevel.GOOD),
    (100, AQILevel.MODERATE),
    (150, AQILevel.UNHEALTHY_SENSITIVE),
    (200, AQILevel.UNHEALTHY),
    (300, AQILevel.VERY_UNHEALTHY),
]


@dataclass(frozen=True)
class AQILevelInfo:
    """Display metadata for an AQI level."""
    level: AQILevel
    label: str
    color: str
    description: str


AQI_LEVELS: Dict[AQILevel, AQILevelInfo] = {
    AQILevel.GOOD: AQILevelInfo(
        AQILevel.GOOD, "좋음", "#00d4aa",
        "대기오염 관련 질환자군에서도 영향이 유발되지 않을 수준",
    ),
    AQILevel.MODERATE: AQILevelInfo(
        AQILevel.MODERATE, "보통", "#ffb347",
        "환경기준 이하로 평소와 같이 실외활동 가능",
    ),
    AQILevel.UNHEALTHY_SENSITIVE: AQILevelInfo(
        AQILevel.UNHEALTHY_SENSITIVE, "나쁨", "#ff6b35",
        "민감군에게 유해한 수준",
    ),
    AQILevel.UNHEALTHY: AQILevelInfo(
        AQILevel.UNHEALTHY, "상당히 나쁨", "#ff4757",
        "일반인에게도 유해한 수준",
    ),
    AQILevel.VERY_UNHEALTHY: AQILevelInfo(
        AQILevel.VERY_UNHEALTHY, "매우 나쁨", "#8b00ff",
        "외출 및 실외활동 자제 권고",
    ),
    AQILevel.HAZARDOUS: AQILevelInfo(
        AQILevel.HAZARDOUS, "위험", "#7d4cdb",
        "외출 및 모든 실외활동 중단 권고",
    ),
}

POLLUTION_ADVICE: Dict[AQILevel, str] = {
    AQILevel.GOOD: "외출하기 좋은 날씨입니다.",
    AQILevel.MODERATE: "일반적인 실외활동 가능합니다.",
    AQILevel.UNHEALTHY_SENSITIVE: "민감군은 실외활동을 줄이세요.",
    AQILevel.UNHEALTHY: "장시간 실외활동을 피하세요.",
    AQILevel.VERY_UNHEALTHY: "실외활동을 자제하고 마스크를 착용하세요.",
    AQILevel.HAZARDOUS: "외출을 삼가고 실내에 머무르세요.",
}


def compute_aqi(pm25: float) -> int:
    """Convert a PM2.5 concentration (μg/m³) to a US EPA AQI value.

    Each band is interpolated linearly. Concentrations falling in the 0.1-wide
    gaps between published bands (e.g. 12.05) use the band above, which keeps
    the result monotonic. Input is clamped to [0, 500.4], so the index never
    exceeds 500.
    """
    c = min(max(float(pm25), 0.0), PM25_BREAKPOINTS[-1][1])
    for c_low, c_high, i_low, i_high in PM25_BREAKPOINTS:
        if c <= c_high:
            c = max(c, c_low)
            if c_high == c_low:
                return i_low
            # round half up
            return math.floor((i_high - i_low) / (c_high - c_low) * (c - c_low) + i_low + 0.5)
    # unreachable: c is clamped to the last c_high
    return PM25_BREAKPOINTS[-1][3]


def classify_aqi(aqi: int) -> AQILevel:
    """Map an AQI value to its severity level."""
    for ceiling, level in AQI_LEVEL_CEILINGS:
        if aqi <= ceiling:
            return level
    return AQILevel.HAZARDOUS


def aqi_level_info(aqi: int) -> AQILevelInfo:
    return AQI_LEVELS[classify_aqi(aqi)]


def format_aqi(aqi: int) -> str:
    """e.g. 72 -> "72 (보통)"."""
    return f"{aqi} ({aqi_level_info(aqi).label})"


def pollution_advice(level: AQILevel) -> str:
    return POLLUTION_ADVICE[level]


def mask_recommendation(pm25: float) -> str:
    """Mask guidance keyed on raw PM2.5, following the Korean thresholds."""
    if pm25 <= 15:
        return "마스크 불필요"
    if pm25 <= 35:
        return "민감군 마스크 권장"
    if pm25 <= 75:
        return "마스크 착용 권장"
    return "마스크 필수 착용"
