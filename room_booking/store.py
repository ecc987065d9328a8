from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Iterable, Protocol

from .booking import TimeWindow
from .models import Booking, BookingStatus, Room


class BookingStore(Protocol):
    """Persistence the engine relies on.

    Implementations must make ``insert_booking``, ``delete_booking`` and
    ``compare_and_set_status`` atomic with respect to each other.
    """

    def list_rooms(self) -> list[Room]: ...

    def get_room(self, room_id: str) -> Room | None: ...

    def get_booking(self, booking_id: str) -> Booking | None: ...

    def list_bookings(self, room_id: str | None = None) -> list[Booking]: ...

    def query_overlapping(self, room_id: str, start: datetime, end: datetime) -> list[Booking]: ...

    def insert_booking(self, booking: Booking) -> Booking: ...

    def delete_booking(self, booking_id: str) -> bool: ...

    def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        cancellation_reason: str | None = None,
    ) -> Booking | None: ...


class InMemoryBookingStore:
    def __init__(self, rooms: Iterable[Room] = ()) -> None:
        self._lock = Lock()
        self._rooms: dict[str, Room] = {room.room_id: room for room in rooms}
        self._by_id: dict[str, Booking] = {}
        self._by_room: dict[str, list[str]] = {}

    def add_room(self, room: Room) -> Room:
        with self._lock:
            self._rooms[room.room_id] = room
        return room

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return sorted(self._rooms.values(), key=lambda room: room.name)

    def get_room(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def get_booking(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._by_id.get(booking_id)

    def list_bookings(self, room_id: str | None = None) -> list[Booking]:
        with self._lock:
            if room_id is None:
                bookings = list(self._by_id.values())
            else:
                bookings = [self._by_id[booking_id] for booking_id in self._by_room.get(room_id, [])]
        return sorted(bookings, key=lambda booking: (booking.start, booking.room_id))

    def query_overlapping(self, room_id: str, start: datetime, end: datetime) -> list[Booking]:
        window = TimeWindow(start, end)
        with self._lock:
            matches: list[Booking] = []
            # per-room ids are kept ordered by start, so stop at the first booking starting at or after `end`
            for booking_id in self._by_room.get(room_id, []):
                booking = self._by_id[booking_id]
                if booking.start >= end:
                    break
                if booking.status is BookingStatus.CONFIRMED and booking.window.overlaps(window):
                    matches.append(booking)
            return matches

    def insert_booking(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.booking_id in self._by_id:
                raise ValueError(f"booking {booking.booking_id} already exists")
            self._by_id[booking.booking_id] = booking
            room_ids = self._by_room.setdefault(booking.room_id, [])
            room_ids.append(booking.booking_id)
            room_ids.sort(key=lambda booking_id: self._by_id[booking_id].start)
        return booking

    def delete_booking(self, booking_id: str) -> bool:
        with self._lock:
            booking = self._by_id.pop(booking_id, None)
            if booking is None:
                return False
            self._by_room[booking.room_id].remove(booking_id)
            return True

    def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        cancellation_reason: str | None = None,
    ) -> Booking | None:
        with self._lock:
            current = self._by_id.get(booking_id)
            if current is None or current.status is not expected:
                return None
            updated = current.with_status(new_status, cancellation_reason)
            self._by_id[booking_id] = updated
            return updated
