from __future__ import annotations

from datetime import datetime
import logging

from .errors import BookingStorageError, Rejection, RejectionCode
from .models import ROLE_ADMIN, Booking, BookingStatus
from .store import BookingStore

logger = logging.getLogger(__name__)


class CancellationManager:
    def __init__(self, store: BookingStore, admin_roles: frozenset[str] = frozenset({ROLE_ADMIN})) -> None:
        self.store = store
        self.admin_roles = admin_roles

    def cancel(
        self,
        booking_id: str,
        requester_id: str,
        requester_role: str | None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Booking | Rejection:
        """Move a confirmed booking to CANCELLED.

        The final write is a compare-and-set on the status, so of two concurrent
        cancellations exactly one succeeds and the other sees InvalidStateTransition.
        """
        effective_now = now or datetime.now()
        try:
            booking = self.store.get_booking(booking_id)
        except BookingStorageError as error:
            logger.error("Could not read booking %s: %s", booking_id, error)
            return Rejection(RejectionCode.PERSISTENCE_ERROR, "Bookings could not be read, please try again.")
        if booking is None:
            return Rejection(RejectionCode.NOT_FOUND, "Booking not found.")

        if booking.user_id != requester_id and (requester_role or "").upper() not in self.admin_roles:
            return Rejection(RejectionCode.NOT_AUTHORIZED, "You can only cancel your own bookings.")

        if booking.status is not BookingStatus.CONFIRMED:
            return _invalid_transition(booking.status)

        if booking.end <= effective_now:
            return Rejection(RejectionCode.ALREADY_ELAPSED, "Cannot cancel a booking that has already ended.")

        reason = (reason or "").strip() or None
        try:
            updated = self.store.compare_and_set_status(
                booking_id,
                expected=BookingStatus.CONFIRMED,
                new_status=BookingStatus.CANCELLED,
                cancellation_reason=reason,
            )
        except BookingStorageError as error:
            logger.error("Failed to cancel booking %s: %s", booking_id, error)
            return Rejection(RejectionCode.PERSISTENCE_ERROR, "The cancellation could not be saved, please try again.")

        if updated is None:
            current = self.store.get_booking(booking_id)
            return _invalid_transition(current.status if current is not None else BookingStatus.CANCELLED)

        logger.info("Booking %s cancelled by user %s. Reason: %s", booking_id, requester_id, reason or "None")
        return updated


def _invalid_transition(status: BookingStatus) -> Rejection:
    return Rejection(
        RejectionCode.INVALID_STATE_TRANSITION,
        f"Cannot cancel a {status.value.lower()} booking.",
    )
