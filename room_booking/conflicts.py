"""Overlap detection against confirmed bookings of a single room."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .booking import TimeWindow
from .models import Booking, BookingStatus
from .store import BookingStore

STRATEGY_SCAN = "scan"
STRATEGY_RANGE = "range"
CONFLICT_STRATEGIES = (STRATEGY_SCAN, STRATEGY_RANGE)


@dataclass(frozen=True)
class ConflictReport:
    room_id: str
    window: TimeWindow
    conflicts: tuple[Booking, ...]

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasConflict": self.has_conflict,
            "conflicts": [booking.conflict_summary() for booking in self.conflicts],
        }


class ConflictDetector:
    """Find confirmed bookings of a room that overlap a candidate window.

    ``scan`` loads the room's bookings and filters them here, ``range`` pushes the
    same ``start < other.end and end > other.start`` condition down to the store.
    Both return the same bookings, ordered by start.
    """

    def __init__(self, store: BookingStore, strategy: str = STRATEGY_RANGE) -> None:
        if strategy not in CONFLICT_STRATEGIES:
            raise ValueError(f"unknown conflict strategy: {strategy}")
        self.store = store
        self.strategy = strategy

    def find_overlapping(self, room_id: str, window: TimeWindow) -> list[Booking]:
        if self.strategy == STRATEGY_RANGE:
            found = self.store.query_overlapping(room_id, window.start, window.end)
        else:
            found = [
                booking
                for booking in self.store.list_bookings(room_id)
                if booking.status is BookingStatus.CONFIRMED and window.overlaps(booking.window)
            ]
        return sorted(found, key=lambda booking: (booking.start, booking.booking_id))

    def has_conflict(self, room_id: str, window: TimeWindow) -> bool:
        return bool(self.find_overlapping(room_id, window))

    def report(self, room_id: str, window: TimeWindow) -> ConflictReport:
        return ConflictReport(room_id=room_id, window=window, conflicts=tuple(self.find_overlapping(room_id, window)))
