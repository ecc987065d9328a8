from __future__ import annotations

from datetime import datetime
from threading import Lock
from uuid import uuid4
import logging

from .booking import TimeWindow
from .conflicts import ConflictDetector, ConflictReport
from .errors import BookingStorageError, Rejection, RejectionCode
from .models import Booking, BookingRequest, BookingStatus
from .store import BookingStore
from .validator import BookingValidator

logger = logging.getLogger(__name__)


class RoomLockRegistry:
    """One lazily created lock per room id, reused for the lifetime of the registry."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, Lock] = {}

    def lock_for(self, room_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = self._locks[room_id] = Lock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ReservationCoordinator:
    """Validate and commit reservations one room at a time.

    The conflict check and the insert happen under the same per-room lock, so for
    any room at most one of a set of mutually overlapping requests can succeed.
    Requests for different rooms never wait on each other.
    """

    def __init__(
        self,
        store: BookingStore,
        validator: BookingValidator,
        lock_timeout: float = 5.0,
        locks: RoomLockRegistry | None = None,
    ) -> None:
        self.store = store
        self.validator = validator
        self.lock_timeout = lock_timeout
        self.locks = locks or RoomLockRegistry()

    @property
    def detector(self) -> ConflictDetector:
        return self.validator.detector

    def reserve(self, request: BookingRequest) -> Booking | Rejection:
        # room rows are not guarded by the room lock, so look the room up before creating one for its id
        try:
            room = self.store.get_room(request.room_id)
        except BookingStorageError as error:
            return _storage_unavailable(request.room_id, error)
        if room is None:
            return Rejection(RejectionCode.NOT_FOUND, "Room not found.")

        lock = self.locks.lock_for(request.room_id)
        if not lock.acquire(timeout=self.lock_timeout):
            logger.warning("Timed out waiting for room %s after %.1fs", request.room_id, self.lock_timeout)
            return Rejection(
                RejectionCode.BUSY,
                "The room is busy with another reservation, please try again.",
            )

        try:
            try:
                verdict = self.validator.validate(request)
            except BookingStorageError as error:
                return _storage_unavailable(request.room_id, error)
            if verdict.rejection is not None:
                if verdict.rejection.code is RejectionCode.SCHEDULING_CONFLICT:
                    logger.warning(
                        "Booking conflict detected for room %s at %s-%s",
                        request.room_id,
                        request.start.isoformat(),
                        request.end.isoformat(),
                    )
                return verdict.rejection
            return self._commit(request)
        finally:
            lock.release()

    def check_conflicts(self, room_id: str, start: datetime, end: datetime) -> ConflictReport:
        """Read-only pre-flight check. Does not take the room lock, so the answer may be stale."""
        return self.detector.report(room_id, TimeWindow(start, end))

    def _commit(self, request: BookingRequest) -> Booking | Rejection:
        booking = Booking(
            booking_id=str(uuid4()),
            room_id=request.room_id,
            user_id=request.user_id,
            start=request.start,
            end=request.end,
            purpose=request.purpose,
            attendees=tuple(request.attendees),
            created_at=request.now,
            status=BookingStatus.CONFIRMED,
            user_display=request.user_display,
        )
        try:
            self.store.insert_booking(booking)
        except BookingStorageError as error:
            logger.error("Failed to persist booking %s for room %s: %s", booking.booking_id, booking.room_id, error)
            self._rollback(booking)
            return Rejection(RejectionCode.PERSISTENCE_ERROR, "The booking could not be saved, please try again.")

        logger.info("Booking %s confirmed for room %s by user %s", booking.booking_id, booking.room_id, booking.user_id)
        return booking

    def _rollback(self, booking: Booking) -> None:
        try:
            removed = self.store.delete_booking(booking.booking_id)
        except BookingStorageError:
            logger.exception("Rollback of booking %s failed", booking.booking_id)
            raise
        if removed:
            logger.warning("Rolled back partially stored booking %s", booking.booking_id)


def _storage_unavailable(room_id: str, error: BookingStorageError) -> Rejection:
    logger.error("Could not read bookings for room %s: %s", room_id, error)
    return Rejection(RejectionCode.PERSISTENCE_ERROR, "Bookings could not be read, please try again.")
