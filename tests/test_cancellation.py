import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from room_booking import (
    Attendee,
    Booking,
    BookingStatus,
    BookingStorageError,
    CancellationManager,
    InMemoryBookingStore,
    Rejection,
    RejectionCode,
)

NOW = datetime(2026, 2, 24, 9, 0)


class FailingStatusStore(InMemoryBookingStore):
    def compare_and_set_status(self, booking_id, expected, new_status, cancellation_reason=None):
        raise BookingStorageError("disk full")


def _booking(booking_id: str, start: datetime, end: datetime, user_id: str = "owner") -> Booking:
    return Booking(
        booking_id=booking_id,
        room_id="room-a",
        user_id=user_id,
        start=start,
        end=end,
        purpose="study group",
        attendees=(Attendee("Me (Booker)", is_companion=False), Attendee("Ann")),
        created_at=datetime(2026, 2, 20, 9, 0),
    )


class TestCancellationManager(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryBookingStore()
        self.store.insert_booking(_booking("upcoming", datetime(2026, 2, 25, 10, 0), datetime(2026, 2, 25, 11, 0)))
        self.store.insert_booking(_booking("past", datetime(2026, 2, 23, 10, 0), datetime(2026, 2, 23, 11, 0)))
        self.manager = CancellationManager(self.store)

    def test_owner_can_cancel_with_reason(self) -> None:
        outcome = self.manager.cancel("upcoming", "owner", "STUDENT", reason="  exam moved  ", now=NOW)

        self.assertIsInstance(outcome, Booking)
        self.assertEqual(outcome.status, BookingStatus.CANCELLED)
        self.assertEqual(outcome.cancellation_reason, "exam moved")
        self.assertEqual(self.store.get_booking("upcoming").status, BookingStatus.CANCELLED)

    def test_blank_reason_is_stored_as_none(self) -> None:
        outcome = self.manager.cancel("upcoming", "owner", None, reason="   ", now=NOW)

        self.assertIsNone(outcome.cancellation_reason)

    def test_elapsed_booking_cannot_be_cancelled(self) -> None:
        outcome = self.manager.cancel("past", "owner", "STUDENT", now=NOW)

        self.assertIsInstance(outcome, Rejection)
        self.assertEqual(outcome.code, RejectionCode.ALREADY_ELAPSED)
        self.assertEqual(self.store.get_booking("past").status, BookingStatus.CONFIRMED)

    def test_booking_in_progress_can_still_be_cancelled(self) -> None:
        outcome = self.manager.cancel("upcoming", "owner", None, now=datetime(2026, 2, 25, 10, 30))

        self.assertIsInstance(outcome, Booking)

    def test_booking_ending_exactly_now_has_elapsed(self) -> None:
        outcome = self.manager.cancel("upcoming", "owner", None, now=datetime(2026, 2, 25, 11, 0))

        self.assertEqual(outcome.code, RejectionCode.ALREADY_ELAPSED)

    def test_other_student_is_not_authorized(self) -> None:
        outcome = self.manager.cancel("upcoming", "someone-else", "STUDENT", now=NOW)

        self.assertEqual(outcome.code, RejectionCode.NOT_AUTHORIZED)
        self.assertEqual(outcome.http_status, 403)
        self.assertEqual(self.store.get_booking("upcoming").status, BookingStatus.CONFIRMED)

    def test_admin_can_cancel_any_booking(self) -> None:
        outcome = self.manager.cancel("upcoming", "staff-1", "admin", now=NOW)

        self.assertIsInstance(outcome, Booking)
        self.assertEqual(outcome.status, BookingStatus.CANCELLED)

    def test_unknown_booking_is_not_found(self) -> None:
        outcome = self.manager.cancel("missing", "owner", None, now=NOW)

        self.assertEqual(outcome.code, RejectionCode.NOT_FOUND)

    def test_second_cancel_is_an_invalid_transition(self) -> None:
        self.manager.cancel("upcoming", "owner", None, now=NOW)

        outcome = self.manager.cancel("upcoming", "owner", None, now=NOW)

        self.assertEqual(outcome.code, RejectionCode.INVALID_STATE_TRANSITION)
        self.assertEqual(outcome.message, "Cannot cancel a cancelled booking.")

    def test_concurrent_cancels_succeed_exactly_once(self) -> None:
        barrier = threading.Barrier(4)

        def attempt(_: int):
            barrier.wait()
            return self.manager.cancel("upcoming", "owner", None, now=NOW)

        with ThreadPoolExecutor(max_workers=4) as pool:
            outcomes = list(pool.map(attempt, range(4)))

        successes = [outcome for outcome in outcomes if isinstance(outcome, Booking)]
        failures = [outcome for outcome in outcomes if isinstance(outcome, Rejection)]
        self.assertEqual(len(successes), 1)
        self.assertEqual({failure.code for failure in failures}, {RejectionCode.INVALID_STATE_TRANSITION})

    def test_storage_failure_leaves_booking_confirmed(self) -> None:
        store = FailingStatusStore()
        store.insert_booking(_booking("upcoming", datetime(2026, 2, 25, 10, 0), datetime(2026, 2, 25, 11, 0)))

        outcome = CancellationManager(store).cancel("upcoming", "owner", None, now=NOW)

        self.assertEqual(outcome.code, RejectionCode.PERSISTENCE_ERROR)
        self.assertTrue(outcome.retryable)
        self.assertEqual(store.get_booking("upcoming").status, BookingStatus.CONFIRMED)


if __name__ == "__main__":
    unittest.main()
