import unittest

from weatherpulse.data_sources.factory import build_data_source, DEFAULT_SOURCE_NAME
from weatherpulse.data_sources.base import CallableWeatherDataSource
from weatherpulse.data_sources import openweather_client


class DummySettings:
    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)
        # provide defaults if not passed
        self.weather_source = getattr(self, "weather_source", DEFAULT_SOURCE_NAME)
        self.openweather_api_key = getattr(self, "openweather_api_key", "key")


class TestDataSourceFactory(unittest.TestCase):
    def test_build_openweather_default(self):
        ds = build_data_source(DummySettings())
        self.assertIsInstance(ds, CallableWeatherDataSource)
        self.assertIs(ds.current, openweather_client.fetch_current)
        self.assertIs(ds.air_pollution, openweather_client.fetch_air_pollution_forecast)

    def test_source_name_is_case_insensitive(self):
        ds = build_data_source(DummySettings(weather_source="OpenWeather"))
        self.assertIsInstance(ds, CallableWeatherDataSource)

    def test_missing_key_still_builds(self):
        with self.assertLogs("weatherpulse.data_sources.factory", level="WARNING"):
            ds = build_data_source(DummySettings(openweather_api_key=None))
        self.assertIsInstance(ds, CallableWeatherDataSource)

    def test_unknown_source_raises(self):
        settings = DummySettings(weather_source="unknown-source")
        with self.assertRaises(ValueError):
            build_data_source(settings)


class TestCallableDataSource(unittest.TestCase):
    def test_delegates_to_callables(self):
        seen = []

        def record(name):
            def fn(*args):
                seen.append((name, args))
                return name
            return fn

        ds = CallableWeatherDataSource(
            city_lookup=record("city"),
            coordinates_lookup=record("coords"),
            current=record("current"),
            forecast=record("forecast"),
            air_pollution=record("air"),
            history=record("history"),
        )
        self.assertEqual(ds.lookup_city("Amman"), "city")
        self.assertEqual(ds.lookup_coordinates(1.0, 2.0), "coords")
        self.assertEqual(ds.fetch_current(1.0, 2.0), "current")
        self.assertEqual(ds.fetch_forecast(1.0, 2.0), "forecast")
        self.assertEqual(ds.fetch_air_pollution(1.0, 2.0), "air")
        self.assertEqual(ds.fetch_history("Amman", "JO", 0, 86400), "history")
        self.assertEqual(seen[-1], ("history", ("Amman", "JO", 0, 86400)))


if __name__ == "__main__":
    unittest.main()
