import unittest

import requests

from nomad_feed.aqi import AQILevel
from nomad_feed.cities import resolve_city
from nomad_feed.data_sources import openweather_client
from nomad_feed.domain import WeatherIcon
from nomad_feed.errors import UpstreamError


class DummyResp:
    def __init__(self, payload=None, status_code=200, reason="OK", json_error=False):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason
        self.ok = 200 <= status_code < 300
        self.url = "https://api.openweathermap.org/data/2.5/weather?appid=secret"
        self._json_error = json_error

    def json(self):
        if self._json_error:
            raise ValueError("no json")
        return self._payload


class RecordingSession:
    def __init__(self, resp=None, exc=None):
        self.resp = resp
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.resp


def _weather_payload(icon="10d", deg=225, visibility=8000):
    return {
        "weather": [{"id": 500, "main": "Rain", "description": "실 비", "icon": icon}],
        "main": {"temp": 3.6, "humidity": 81, "pressure": 1019},
        "visibility": visibility,
        "wind": {"speed": 4.1, "deg": deg},
    }


def _air_payload():
    return {
        "list": [{
            "main": {"aqi": 2},
            "components": {
                "co": 340.5, "no2": 21.2, "o3": 62.9, "so2": 4.4, "pm2_5": 35.4, "pm10": 48.7,
            },
        }]
    }


class TestOpenWeatherClient(unittest.TestCase):
    def setUp(self):
        self._orig_session = openweather_client.session
        self.seoul = resolve_city("seoul")

    def tearDown(self):
        openweather_client.session = self._orig_session

    def test_fetch_weather_maps_fields(self):
        fake = RecordingSession(DummyResp(_weather_payload()))
        openweather_client.session = fake

        reading = openweather_client.fetch_weather(self.seoul, api_key="k", timeout=3)
        self.assertEqual(reading.city_id, "seoul")
        self.assertEqual(reading.city_name, "서울")
        self.assertEqual(reading.temperature, 4)
        self.assertEqual(reading.humidity, 81)
        self.assertEqual(reading.icon, WeatherIcon.RAINY)
        self.assertEqual(reading.wind_direction, "225°")
        self.assertEqual(reading.visibility, 8)
        self.assertEqual(reading.pressure, 1019)

        call = fake.calls[0]
        self.assertTrue(call["url"].endswith("/weather"))
        self.assertEqual(call["params"]["units"], "metric")
        self.assertEqual(call["params"]["lat"], self.seoul.latitude)
        self.assertEqual(call["timeout"], 3)

    def test_unknown_icon_and_missing_wind_use_defaults(self):
        payload = _weather_payload(icon="99x", deg=None, visibility=None)
        openweather_client.session = RecordingSession(DummyResp(payload))

        reading = openweather_client.fetch_weather(self.seoul, api_key="k")
        self.assertEqual(reading.icon, WeatherIcon.PARTLY_CLOUDY)
        self.assertEqual(reading.wind_direction, openweather_client.UNKNOWN_WIND_DIRECTION)
        self.assertEqual(reading.visibility, 10)

    def test_fetch_air_quality_derives_aqi(self):
        openweather_client.session = RecordingSession(DummyResp(_air_payload()))

        reading = openweather_client.fetch_air_quality(self.seoul, api_key="k")
        self.assertEqual(reading.pm25, 35)
        self.assertEqual(reading.pm10, 49)
        self.assertEqual(reading.aqi, 100)
        self.assertEqual(reading.aqi_level, AQILevel.MODERATE)
        self.assertEqual(reading.co, 340)

    def test_missing_key_raises_without_network_call(self):
        fake = RecordingSession(DummyResp(_weather_payload()))
        openweather_client.session = fake
        with self.assertRaises(UpstreamError):
            openweather_client.fetch_weather(self.seoul, api_key=None)
        self.assertEqual(fake.calls, [])

    def test_error_status_raises(self):
        openweather_client.session = RecordingSession(DummyResp({}, status_code=401, reason="Unauthorized"))
        with self.assertRaises(UpstreamError) as ctx:
            openweather_client.fetch_air_quality(self.seoul, api_key="bad")
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.kind, "air_quality")

    def test_timeout_raises_upstream_error(self):
        openweather_client.session = RecordingSession(exc=requests.Timeout("slow"))
        with self.assertRaises(UpstreamError):
            openweather_client.fetch_weather(self.seoul, api_key="k")

    def test_connection_error_raises_upstream_error(self):
        openweather_client.session = RecordingSession(exc=requests.ConnectionError("down"))
        with self.assertRaises(UpstreamError):
            openweather_client.fetch_weather(self.seoul, api_key="k")

    def test_unparseable_bodies_raise_upstream_error(self):
        for resp in (
            DummyResp(json_error=True),
            DummyResp({"weather": []}),
            DummyResp(["not", "a", "dict"]),
            DummyResp({"main": {"temp": "warm"}, "weather": [{"icon": "01d"}]}),
        ):
            with self.subTest(payload=resp._payload):
                openweather_client.session = RecordingSession(resp)
                with self.assertRaises(UpstreamError):
                    openweather_client.fetch_weather(self.seoul, api_key="k")

    def test_air_quality_missing_components(self):
        openweather_client.session = RecordingSession(DummyResp({"list": []}))
        with self.assertRaises(UpstreamError):
            openweather_client.fetch_air_quality(self.seoul, api_key="k")


if __name__ == "__main__":
    unittest.main()
