import datetime as dt
import time
import unittest
from zoneinfo import ZoneInfo

from weatherpulse.domain import HistoricalWindow
from weatherpulse.errors import DataUnavailable, InvalidInput
from weatherpulse.historical import (
    MISSING_FIELDS_MESSAGE,
    HistoricalRangeFetcher,
    parse_calendar_date,
    window_bounds,
)

from weather_fakes import FakeProvider


class TestWindowBounds(unittest.TestCase):
    def test_midnight_in_given_zone(self):
        start, end = window_bounds(dt.date(2024, 3, 10), ZoneInfo("Asia/Amman"))
        # Amman was UTC+3 on that date
        self.assertEqual(start, int(dt.datetime(2024, 3, 9, 21, 0, tzinfo=dt.timezone.utc).timestamp()))
        self.assertEqual(end - start, 86400)

    def test_local_zone_by_default(self):
        start, end = window_bounds(dt.date(2024, 6, 1))
        self.assertEqual(start, int(time.mktime((2024, 6, 1, 0, 0, 0, 0, 0, -1))))
        self.assertEqual(end, start + 86400)

    def test_dst_day_is_still_86400_seconds(self):
        tz = ZoneInfo("America/Chicago")
        start, end = window_bounds(dt.date(2024, 3, 10), tz)
        self.assertEqual(end - start, 86400)
        # the day itself is only 23 hours long, so the window runs into the next morning
        next_midnight = int(dt.datetime(2024, 3, 11, tzinfo=tz).timestamp())
        self.assertEqual(end - next_midnight, 3600)

    def test_window_type_enforces_span(self):
        with self.assertRaises(ValueError):
            HistoricalWindow("Amman", "JO", 0, 3600, ())


class TestParseCalendarDate(unittest.TestCase):
    def test_accepts_dates_and_strings(self):
        self.assertEqual(parse_calendar_date("2024-03-10"), dt.date(2024, 3, 10))
        self.assertEqual(parse_calendar_date(dt.date(2024, 3, 10)), dt.date(2024, 3, 10))
        self.assertEqual(parse_calendar_date(dt.datetime(2024, 3, 10, 15, 30)), dt.date(2024, 3, 10))

    def test_blank_is_missing(self):
        for value in (None, "", "  "):
            with self.assertRaises(InvalidInput) as ctx:
                parse_calendar_date(value)
            self.assertEqual(ctx.exception.message, MISSING_FIELDS_MESSAGE)

    def test_malformed_date(self):
        with self.assertRaises(InvalidInput):
            parse_calendar_date("10/03/2024")


class TestHistoricalRangeFetcher(unittest.TestCase):
    def setUp(self):
        self.provider = FakeProvider()
        self.tz = ZoneInfo("UTC")
        self.fetcher = HistoricalRangeFetcher(self.provider.data_source(), tz=self.tz)

    def test_fetch_builds_window(self):
        window = self.fetcher.fetch(" Amman ", "JO", "2024-03-10")

        self.assertEqual(window.location, "Amman")
        self.assertEqual(window.country_code, "JO")
        self.assertEqual(window.start_epoch, 1710028800)
        self.assertEqual(window.end_epoch, 1710115200)
        self.assertEqual(len(window.samples), 24)
        self.assertEqual(self.provider.calls_of("history"), [("Amman", "JO", 1710028800, 1710115200)])

    def test_missing_fields_send_nothing(self):
        for args in (("", "JO", "2024-03-10"), ("Amman", " ", "2024-03-10"), ("Amman", "JO", None), (None, None, None)):
            with self.assertRaises(InvalidInput) as ctx:
                self.fetcher.fetch(*args)
            self.assertEqual(ctx.exception.message, MISSING_FIELDS_MESSAGE)
        self.assertEqual(self.provider.calls, [])

    def test_bad_date_sends_nothing(self):
        with self.assertRaises(InvalidInput):
            self.fetcher.fetch("Amman", "JO", "2024-13-40")
        self.assertEqual(self.provider.calls, [])

    def test_provider_failure_propagates(self):
        self.provider.failures["history"] = DataUnavailable()
        with self.assertRaises(DataUnavailable):
            self.fetcher.fetch("Amman", "JO", "2024-03-10")


if __name__ == "__main__":
    unittest.main()
