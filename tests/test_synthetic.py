import datetime as dt
import random
import statistics
import unittest

from nomad_feed.aqi import classify_aqi, compute_aqi
from nomad_feed.data_sources.synthetic import (
    KST,
    SyntheticGenerator,
    is_commute_hour,
    season_for_month,
    temperature_band,
)
from nomad_feed.domain import WeatherIcon
from nomad_feed.errors import UnknownCityError


def _generator(year=2025, month=1, day=15, hour=12, seed=7) -> SyntheticGenerator:
    fixed = dt.datetime(year, month, day, hour, 0, tzinfo=KST)
    return SyntheticGenerator(rng=random.Random(seed), clock=lambda: fixed)


class TestSeasonHelpers(unittest.TestCase):
    def test_season_for_month(self):
        self.assertEqual(season_for_month(12), "winter")
        self.assertEqual(season_for_month(1), "winter")
        self.assertEqual(season_for_month(4), "spring")
        self.assertEqual(season_for_month(7), "summer")
        self.assertEqual(season_for_month(10), "autumn")

    def test_commute_hours(self):
        self.assertTrue(is_commute_hour(8))
        self.assertTrue(is_commute_hour(19))
        self.assertFalse(is_commute_hour(13))

    def test_temperature_band_applies_city_offset(self):
        self.assertEqual(temperature_band("daejeon", 1), (-5.0, 5.0))
        low, high = temperature_band("jeju", 1)
        self.assertGreater(low, -5.0)
        self.assertLess(high, 20.0)


class TestSyntheticWeather(unittest.TestCase):
    def test_jeju_january_stays_in_winter_band(self):
        gen = _generator(month=1)
        low, high = temperature_band("jeju", 1)
        temps = [gen.weather("jeju").temperature for _ in range(300)]
        for t in temps:
            self.assertGreaterEqual(t, round(low))
            self.assertLessEqual(t, round(high))
            self.assertLess(t, 20)

    def test_summer_is_warmer_than_winter(self):
        winter = _generator(month=1)
        summer = _generator(month=7)
        w = statistics.mean(winter.weather("seoul").temperature for _ in range(100))
        s = statistics.mean(summer.weather("seoul").temperature for _ in range(100))
        self.assertGreater(s, w + 15)

    def test_no_snow_outside_winter(self):
        gen = _generator(month=7)
        icons = {gen.weather("busan").icon for _ in range(200)}
        self.assertNotIn(WeatherIcon.SNOWY, icons)

    def test_fields_within_bounds(self):
        gen = _generator()
        for _ in range(100):
            reading = gen.weather("seoul")
            self.assertEqual(reading.city_name, "서울")
            self.assertTrue(40 <= reading.humidity <= 80)
            self.assertTrue(0.0 <= reading.wind_speed <= 10.0)
            self.assertTrue(5 <= reading.visibility <= 10)
            self.assertTrue(1000 <= reading.pressure <= 1050)

    def test_unknown_city(self):
        with self.assertRaises(UnknownCityError):
            _generator().weather("atlantis")


class TestSyntheticAirQuality(unittest.TestCase):
    def test_aqi_is_derived_from_pm25(self):
        gen = _generator()
        for _ in range(50):
            reading = gen.air_quality("incheon")
            self.assertEqual(reading.aqi, compute_aqi(reading.pm25))
            self.assertEqual(reading.aqi_level, classify_aqi(reading.aqi))
            self.assertGreaterEqual(reading.pm10, reading.pm25)

    def test_city_bias_seoul_worse_than_jeju(self):
        seoul = _generator(seed=1)
        jeju = _generator(seed=1)
        seoul_pm = statistics.mean(seoul.air_quality("seoul").pm25 for _ in range(200))
        jeju_pm = statistics.mean(jeju.air_quality("jeju").pm25 for _ in range(200))
        self.assertGreater(seoul_pm, jeju_pm)

    def test_winter_commute_worse_than_summer_midday(self):
        winter_rush = _generator(month=1, hour=8, seed=3)
        summer_noon = _generator(month=7, hour=13, seed=3)
        w = statistics.mean(winter_rush.air_quality("daejeon").pm25 for _ in range(200))
        s = statistics.mean(summer_noon.air_quality("daejeon").pm25 for _ in range(200))
        self.assertGreater(w, s * 1.5)

    def test_unknown_city(self):
        with self.assertRaises(UnknownCityError):
            _generator().air_quality("atlantis")


if __name__ == "__main__":
    unittest.main()
