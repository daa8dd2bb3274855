import os
import unittest

from pydantic import ValidationError

from weatherpulse.config import Settings


class TestConfig(unittest.TestCase):
    def _env(self, **values):
        """Set WEATHERPULSE_* variables for the duration of a test."""
        for key, value in values.items():
            name = f"WEATHERPULSE_{key.upper()}"
            previous = os.environ.get(name)
            os.environ[name] = value
            if previous is None:
                self.addCleanup(os.environ.pop, name, None)
            else:
                self.addCleanup(os.environ.__setitem__, name, previous)

    def test_settings_defaults(self):
        previous = os.environ.pop("WEATHERPULSE_DEFAULT_CITY", None)
        try:
            s = Settings()
            self.assertEqual(s.default_city, "Amman")
            self.assertEqual(s.units, "metric")
            self.assertEqual(s.hourly_view_size, 12)
            self.assertEqual(s.daily_anchor, "12:00:00")
            self.assertEqual(s.pollution_match_tolerance_minutes, 90)
        finally:
            if previous is not None:
                os.environ["WEATHERPULSE_DEFAULT_CITY"] = previous

    def test_settings_env_override(self):
        self._env(default_city="London", openweather_api_key="abc123", fetch_timeout_seconds="2.5")
        s = Settings()
        self.assertEqual(s.default_city, "London")
        self.assertEqual(s.openweather_api_key, "abc123")
        self.assertEqual(s.fetch_timeout_seconds, 2.5)

    def test_base_urls_lose_trailing_slash(self):
        s = Settings(openweather_base_url="https://example.test/data/2.5/")
        self.assertEqual(s.openweather_base_url, "https://example.test/data/2.5")

    def test_invalid_anchor_rejected(self):
        with self.assertRaises(ValidationError):
            Settings(daily_anchor="noon")


if __name__ == "__main__":
    unittest.main()
