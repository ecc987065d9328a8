import unittest
from datetime import datetime, time

from room_booking import OperatingCalendar, TimeWindow, WeeklyClosure

# 2026-02-24 is a Tuesday, 2026-02-27 a Friday, 2026-02-28 a Saturday, 2026-03-01 a Sunday.


class TestIsOpen(unittest.TestCase):
    def setUp(self) -> None:
        self.calendar = OperatingCalendar()

    def test_weekday_opening_hours_are_half_open(self) -> None:
        self.assertFalse(self.calendar.is_open(datetime(2026, 2, 24, 7, 59)))
        self.assertTrue(self.calendar.is_open(datetime(2026, 2, 24, 8, 0)))
        self.assertTrue(self.calendar.is_open(datetime(2026, 2, 24, 21, 59)))
        self.assertFalse(self.calendar.is_open(datetime(2026, 2, 24, 22, 0)))

    def test_saturday_is_closed_all_day(self) -> None:
        self.assertFalse(self.calendar.is_open(datetime(2026, 2, 28, 12, 0)))

    def test_friday_closes_at_five_pm(self) -> None:
        self.assertTrue(self.calendar.is_open(datetime(2026, 2, 27, 16, 59)))
        self.assertFalse(self.calendar.is_open(datetime(2026, 2, 27, 17, 0)))

    def test_sunday_opens_at_opening_hour(self) -> None:
        self.assertFalse(self.calendar.is_open(datetime(2026, 3, 1, 7, 0)))
        self.assertTrue(self.calendar.is_open(datetime(2026, 3, 1, 9, 0)))


class TestWindowIsFullyOpen(unittest.TestCase):
    def setUp(self) -> None:
        self.calendar = OperatingCalendar()

    def test_window_straddling_friday_closure_is_rejected(self) -> None:
        window = TimeWindow(datetime(2026, 2, 27, 16, 50), datetime(2026, 2, 27, 17, 10))

        self.assertTrue(self.calendar.is_open(window.start))
        self.assertFalse(self.calendar.window_is_fully_open(window))

    def test_window_ending_exactly_at_closure_is_open(self) -> None:
        self.assertTrue(
            self.calendar.window_is_fully_open(TimeWindow(datetime(2026, 2, 27, 16, 0), datetime(2026, 2, 27, 17, 0)))
        )
        self.assertTrue(
            self.calendar.window_is_fully_open(TimeWindow(datetime(2026, 2, 24, 21, 0), datetime(2026, 2, 24, 22, 0)))
        )

    def test_window_running_past_closing_hour_is_rejected(self) -> None:
        window = TimeWindow(datetime(2026, 2, 24, 21, 0), datetime(2026, 2, 24, 22, 30))

        self.assertFalse(self.calendar.window_is_fully_open(window))

    def test_overnight_window_is_rejected(self) -> None:
        window = TimeWindow(datetime(2026, 2, 24, 21, 0), datetime(2026, 2, 25, 9, 0))

        self.assertFalse(self.calendar.window_is_fully_open(window))

    def test_window_starting_in_closed_period_is_rejected(self) -> None:
        window = TimeWindow(datetime(2026, 2, 28, 10, 0), datetime(2026, 2, 28, 11, 0))

        self.assertFalse(self.calendar.window_is_fully_open(window))

    def test_closed_intervals_include_friday_evening(self) -> None:
        intervals = self.calendar.closed_intervals(datetime(2026, 2, 27, 9, 0), datetime(2026, 2, 27, 18, 0))

        self.assertIn(TimeWindow(datetime(2026, 2, 27, 17, 0), datetime(2026, 2, 28, 0, 0)), intervals)
        self.assertIn(TimeWindow(datetime(2026, 2, 27, 0, 0), datetime(2026, 2, 27, 8, 0)), intervals)


class TestCalendarConfiguration(unittest.TestCase):
    def test_round_the_clock_calendar_without_closures(self) -> None:
        calendar = OperatingCalendar(opening_hour=0, closing_hour=24, closures=())
        window = TimeWindow(datetime(2026, 2, 27, 23, 0), datetime(2026, 2, 28, 2, 0))

        self.assertTrue(calendar.window_is_fully_open(window))

    def test_custom_closure(self) -> None:
        calendar = OperatingCalendar(closures=(WeeklyClosure(weekday=1, start=time(12, 0), end=time(13, 0)),))

        self.assertFalse(calendar.is_open(datetime(2026, 2, 24, 12, 30)))
        self.assertTrue(calendar.is_open(datetime(2026, 2, 24, 13, 0)))
        self.assertTrue(calendar.is_open(datetime(2026, 2, 28, 12, 0)))

    def test_holiday_closes_whole_day(self) -> None:
        calendar = OperatingCalendar(holiday_country="US")

        self.assertFalse(calendar.is_open(datetime(2026, 12, 25, 10, 0)))
        self.assertTrue(calendar.is_open(datetime(2026, 12, 24, 10, 0)))

    def test_invalid_hours_raise(self) -> None:
        with self.assertRaises(ValueError):
            OperatingCalendar(opening_hour=22, closing_hour=8)
        with self.assertRaises(ValueError):
            OperatingCalendar(opening_hour=8, closing_hour=25)

    def test_invalid_closure_raises(self) -> None:
        with self.assertRaises(ValueError):
            WeeklyClosure(weekday=7)
        with self.assertRaises(ValueError):
            WeeklyClosure(weekday=1, start=time(13, 0), end=time(12, 0))


if __name__ == "__main__":
    unittest.main()
