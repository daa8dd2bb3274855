import unittest

from fastapi.testclient import TestClient

import weatherpulse.api as api_mod
from weatherpulse.config import Settings, settings
from weatherpulse.controller import AggregationController
from weatherpulse.main import app as fastapi_app

from weather_fakes import FakeProvider


class TestApi(unittest.TestCase):
    def setUp(self):
        self.provider = FakeProvider()
        self._orig_controller = api_mod.CONTROLLER
        self._orig_api_key = settings.api_key
        api_mod.CONTROLLER = AggregationController(
            self.provider.data_source(),
            settings=Settings(fetch_timeout_seconds=3.0),
        )
        settings.api_key = None
        self.client = TestClient(fastapi_app)

    def tearDown(self):
        api_mod.CONTROLLER = self._orig_controller
        settings.api_key = self._orig_api_key

    def test_state_starts_idle(self):
        resp = self.client.get("/v1/state")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "idle")
        self.assertIsNone(data["location"])
        self.assertEqual(data["hourly"], [])

    def test_search_returns_ui_ready_state(self):
        resp = self.client.post("/v1/search", json={"city": "Amman"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "ready")
        self.assertEqual(data["location"]["display_name"], "Amman")
        self.assertEqual(data["current"]["temperature_c"], 24.0)
        self.assertAlmostEqual(data["current"]["pressure_gauge_pct"], 63.0)
        self.assertEqual(len(data["hourly"]), 12)
        self.assertEqual(len(data["daily"]), 5)
        self.assertIsNone(data["pollution"])

    def test_blank_search_is_reported_in_state(self):
        resp = self.client.post("/v1/search", json={"city": "   "})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "failed")
        self.assertEqual(data["error_kind"], "invalid_input")
        self.assertEqual(self.provider.calls, [])

    def test_pollution_view_and_alignment(self):
        self.client.post("/v1/search", json={"city": "Amman"})
        resp = self.client.post("/v1/view", json={"view": "pollution"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["view"], "pollution")
        self.assertEqual(data["pollution_status"], "ready")
        self.assertEqual(data["pollution"][0]["aqi_label"], "Fair")
        self.assertEqual(data["pollution"][0]["components"]["pm2_5"], 8.0)

        aligned = self.client.get("/v1/pollution/aligned").json()
        self.assertEqual(len(aligned), 40)
        self.assertEqual(aligned[0]["forecast"]["timestamp"], aligned[0]["pollution"]["timestamp"])

    def test_unknown_view_is_rejected(self):
        resp = self.client.post("/v1/view", json={"view": "map"})
        self.assertEqual(resp.status_code, 422)

    def test_forecast_views(self):
        self.client.post("/v1/search", json={"city": "Amman"})

        hourly = self.client.get("/v1/forecast/hourly", params={"n": 3})
        self.assertEqual(hourly.status_code, 200)
        self.assertEqual(len(hourly.json()), 3)

        daily = self.client.get("/v1/forecast/daily", params={"anchor": "09:00:00"})
        self.assertEqual(len(daily.json()), 5)
        self.assertTrue(all(d["time_text"].endswith("09:00:00") for d in daily.json()))

        self.assertEqual(self.client.get("/v1/forecast/hourly", params={"n": -1}).status_code, 422)
        self.assertEqual(self.client.get("/v1/forecast/daily", params={"anchor": "noon"}).status_code, 422)

    def test_locate_and_geolocation_error(self):
        resp = self.client.post("/v1/locate", json={"latitude": 31.95, "longitude": 35.93})
        self.assertEqual(resp.json()["status"], "ready")

        resp = self.client.post("/v1/geolocation-error", json={"reason": "denied"})
        data = resp.json()
        self.assertEqual(data["status"], "failed")
        self.assertEqual(data["error"], "Unable to fetch your location. Please try again.")

    def test_history(self):
        resp = self.client.post(
            "/v1/history",
            json={"city": "Amman", "country_code": "JO", "date": "2024-03-10"},
        )
        data = resp.json()
        self.assertEqual(data["history_status"], "ready")
        self.assertEqual(data["history"]["end_epoch"] - data["history"]["start_epoch"], 86400)
        self.assertEqual(len(data["history"]["samples"]), 24)
        self.assertEqual(data["status"], "idle")

    def test_refresh_and_start(self):
        data = self.client.post("/v1/start").json()
        self.assertEqual(data["location"]["display_name"], "Amman")

        data = self.client.post("/v1/refresh").json()
        self.assertEqual(data["status"], "ready")
        self.assertEqual(data["epoch"], 2)

    def test_requires_api_key_when_set(self):
        settings.api_key = "sekret"

        missing = self.client.get("/v1/state")
        self.assertEqual(missing.status_code, 401)

        wrong = self.client.get("/v1/state", headers={"X-API-Key": "nope"})
        self.assertEqual(wrong.status_code, 401)

        ok = self.client.get("/v1/state", headers={"X-API-Key": "sekret"})
        self.assertEqual(ok.status_code, 200)


if __name__ == "__main__":
    unittest.main()
