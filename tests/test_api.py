import datetime as dt
import random
import unittest

from fastapi.testclient import TestClient

from nomad_feed.cache_store.memory import InMemoryReadingCache
from nomad_feed.data_sources.base import CallableReadingSource
from nomad_feed.data_sources.synthetic import KST, SyntheticGenerator
from nomad_feed.errors import UpstreamError
from nomad_feed.feed import RealtimeFeed
from nomad_feed.main import create_app


def _feed(upstream=None) -> RealtimeFeed:
    fixed_now = dt.datetime(2025, 1, 15, 12, 0, tzinfo=KST)

    async def no_sleep(_seconds):
        return None

    return RealtimeFeed(
        weather_cache=InMemoryReadingCache(name="weather"),
        air_quality_cache=InMemoryReadingCache(name="air_quality"),
        upstream=upstream,
        synthetic=SyntheticGenerator(rng=random.Random(5), clock=lambda: fixed_now),
        sleep=no_sleep,
    )


def _failing(kind):
    def fetch(city):
        raise UpstreamError(kind, "503")
    return fetch


class TestApi(unittest.TestCase):
    def setUp(self):
        self.feed = _feed()
        self.client = TestClient(create_app(self.feed))

    def _assert_cors(self, resp):
        self.assertEqual(resp.headers["access-control-allow-origin"], "*")
        self.assertEqual(resp.headers["access-control-allow-methods"], "GET")
        self.assertEqual(resp.headers["access-control-allow-headers"], "Content-Type")

    def test_realtime_200_then_cached(self):
        resp = self.client.get("/realtime/seoul")
        self.assertEqual(resp.status_code, 200)
        self._assert_cors(resp)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["cached"], {"weather": False, "airQuality": False})
        data = body["data"]
        self.assertEqual(data["cityId"], "seoul")
        self.assertEqual(data["cityName"], "서울")
        self.assertIn("windSpeed", data["weather"])
        self.assertIn("aqiLevel", data["airQuality"])
        self.assertIsNotNone(data["lastUpdated"])

        again = self.client.get("/realtime/seoul").json()
        self.assertEqual(again["cached"], {"weather": True, "airQuality": True})
        self.assertEqual(again["data"]["weather"], data["weather"])
        self.assertEqual(again["data"]["airQuality"], data["airQuality"])

    def test_realtime_unknown_city_400(self):
        resp = self.client.get("/realtime/not-a-real-city")
        self.assertEqual(resp.status_code, 400)
        self._assert_cors(resp)
        self.assertEqual(resp.json(), {"success": False, "error": "City not found: not-a-real-city"})

    def test_realtime_partial_206(self):
        def broken_weather(city):
            raise RuntimeError("weather parser bug")

        upstream = CallableReadingSource(weather=broken_weather, air_quality=_failing("air_quality"))
        client = TestClient(create_app(_feed(upstream)))

        resp = client.get("/realtime/busan")
        self.assertEqual(resp.status_code, 206)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertIsNone(body["data"]["weather"])
        self.assertEqual(body["data"]["airQuality"]["cityId"], "busan")
        self.assertEqual(body["errors"], {"weather": "weather parser bug"})

    def test_realtime_unexpected_error_500(self):
        async def boom(city_id):
            raise RuntimeError("feed offline")

        self.feed.get_environment = boom
        resp = self.client.get("/realtime/seoul")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": "feed offline"})

    def test_upstream_outage_is_invisible(self):
        upstream = CallableReadingSource(weather=_failing("weather"), air_quality=_failing("air_quality"))
        client = TestClient(create_app(_feed(upstream)))
        resp = client.get("/realtime/jeju")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["success"])

    def test_weather_route(self):
        resp = self.client.get("/weather/daejeon")
        self.assertEqual(resp.status_code, 200)
        self._assert_cors(resp)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertFalse(body["cached"])
        self.assertNotIn("cacheExpiry", body)
        self.assertEqual(body["data"]["cityId"], "daejeon")

        cached = self.client.get("/weather/daejeon").json()
        self.assertTrue(cached["cached"])
        self.assertIn("cacheExpiry", cached)

    def test_weather_route_unknown_city_reports_in_envelope(self):
        resp = self.client.get("/weather/atlantis")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": False, "error": "City not found: atlantis"})

    def test_weather_route_unexpected_error_500(self):
        async def boom(kind, city_id):
            raise RuntimeError("cache backend gone")

        self.feed.get_reading = boom
        resp = self.client.get("/weather/seoul")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "cache backend gone")

    def test_air_quality_route(self):
        body = self.client.get("/air-quality/ulsan").json()
        self.assertTrue(body["success"])
        self.assertIn(body["data"]["aqiLevel"], {
            "good", "moderate", "unhealthy_sensitive", "unhealthy", "very_unhealthy", "hazardous",
        })

    def test_batch_route(self):
        resp = self.client.get("/realtime", params={"cityIds": "seoul,jeju"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(set(body["data"]), {"seoul", "jeju"})

        partial = self.client.get("/realtime", params={"cityIds": "seoul,atlantis"})
        self.assertEqual(partial.status_code, 206)
        self.assertIsNone(partial.json()["data"]["atlantis"])
        self.assertIn("atlantis", partial.json()["errors"])

    def test_batch_route_rejects_empty(self):
        resp = self.client.get("/realtime", params={"cityIds": " , "})
        self.assertEqual(resp.status_code, 400)

    def test_options_preflight(self):
        for path in ("/realtime/seoul", "/weather/seoul"):
            resp = self.client.options(path)
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.content, b"")
            self._assert_cors(resp)

    def test_cities_and_cache_stats(self):
        cities = self.client.get("/cities").json()["data"]
        self.assertEqual(len(cities), 10)
        self.assertEqual(cities[0]["cityId"], "seoul")

        self.client.get("/realtime/seoul")
        stats = self.client.get("/cache/stats").json()
        self.assertFalse(stats["upstreamEnabled"])
        self.assertEqual(stats["data"]["weather"]["size"], 1)
        self.assertEqual(stats["data"]["airQuality"]["entries"][0]["cityId"], "seoul")


if __name__ == "__main__":
    unittest.main()
