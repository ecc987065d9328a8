import unittest
from datetime import datetime, timedelta, timezone

from room_booking import InvalidWindowError, TimeWindow
from room_booking.booking import parse_timestamp


class TestTimeOverlap(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = TimeWindow(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 11, 0))

    def test_non_overlapping_before_passes(self) -> None:
        self.assertFalse(
            TimeWindow(datetime(2026, 2, 24, 9, 0), datetime(2026, 2, 24, 9, 59)).overlaps(self.existing)
        )

    def test_exactly_touching_boundary_passes(self) -> None:
        self.assertFalse(
            TimeWindow(datetime(2026, 2, 24, 11, 0), datetime(2026, 2, 24, 12, 0)).overlaps(self.existing)
        )
        self.assertFalse(
            TimeWindow(datetime(2026, 2, 24, 9, 0), datetime(2026, 2, 24, 10, 0)).overlaps(self.existing)
        )

    def test_partially_overlapping_fails(self) -> None:
        self.assertTrue(
            TimeWindow(datetime(2026, 2, 24, 10, 30), datetime(2026, 2, 24, 11, 30)).overlaps(self.existing)
        )

    def test_fully_contained_fails(self) -> None:
        self.assertTrue(
            TimeWindow(datetime(2026, 2, 24, 10, 15), datetime(2026, 2, 24, 10, 45)).overlaps(self.existing)
        )

    def test_fully_enclosing_fails(self) -> None:
        self.assertTrue(
            TimeWindow(datetime(2026, 2, 24, 9, 0), datetime(2026, 2, 24, 12, 0)).overlaps(self.existing)
        )


class TestTimeWindow(unittest.TestCase):
    def test_rejects_empty_and_reversed_windows(self) -> None:
        with self.assertRaises(InvalidWindowError):
            TimeWindow(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 10, 0))
        with self.assertRaises(ValueError):
            TimeWindow(datetime(2026, 2, 24, 11, 0), datetime(2026, 2, 24, 10, 0))

    def test_contains_is_half_open(self) -> None:
        window = TimeWindow(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 11, 0))

        self.assertTrue(window.contains(datetime(2026, 2, 24, 10, 0)))
        self.assertTrue(window.contains(datetime(2026, 2, 24, 10, 59)))
        self.assertFalse(window.contains(datetime(2026, 2, 24, 11, 0)))

    def test_duration_minutes(self) -> None:
        start = datetime(2026, 2, 24, 10, 0)
        window = TimeWindow(start, start + timedelta(hours=1, minutes=30))

        self.assertEqual(window.duration_minutes(), 90)

    def test_overlap_is_symmetric(self) -> None:
        first = TimeWindow(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 11, 0))
        second = TimeWindow(datetime(2026, 2, 24, 10, 30), datetime(2026, 2, 24, 12, 0))

        self.assertTrue(first.overlaps(second))
        self.assertTrue(second.overlaps(first))


class TestParseTimestamp(unittest.TestCase):
    def test_naive_value_is_kept(self) -> None:
        self.assertEqual(parse_timestamp("2026-02-24T10:00:00"), datetime(2026, 2, 24, 10, 0))

    def test_aware_value_is_converted_to_zone(self) -> None:
        parsed = parse_timestamp("2026-02-24T10:00:00+02:00", timezone.utc)

        self.assertEqual(parsed, datetime(2026, 2, 24, 8, 0))
        self.assertIsNone(parsed.tzinfo)


if __name__ == "__main__":
    unittest.main()
