from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .booking import TimeWindow
from .config import BookingPolicy
from .conflicts import ConflictDetector
from .errors import InvalidWindowError, Rejection, RejectionCode
from .models import Booking, BookingRequest
from .operating_calendar import OperatingCalendar
from .store import BookingStore


@dataclass(frozen=True)
class Verdict:
    rejection: Rejection | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None

    @staticmethod
    def accept() -> "Verdict":
        return ACCEPTED

    @staticmethod
    def reject(code: RejectionCode, message: str, conflicts: Iterable[Booking] = ()) -> "Verdict":
        return Verdict(Rejection(code=code, message=message, conflicts=tuple(conflicts)))


ACCEPTED = Verdict()


class BookingValidator:
    """Check a booking request against every scheduling rule.

    Rules run in a fixed order and the first failure is reported. Validation only
    reads the store, so running it again for the same request is always safe.
    """

    def __init__(
        self,
        calendar: OperatingCalendar,
        detector: ConflictDetector,
        policy: BookingPolicy | None = None,
        store: BookingStore | None = None,
    ) -> None:
        self.calendar = calendar
        self.detector = detector
        self.policy = policy or BookingPolicy()
        self.store = store or detector.store

    def validate(self, request: BookingRequest) -> Verdict:
        try:
            window = TimeWindow(request.start, request.end)
        except InvalidWindowError as error:
            return Verdict.reject(RejectionCode.INVALID_WINDOW, str(error))

        for check in (self._check_lead_time, self._check_duration, self._check_attendees, self._check_open_hours):
            verdict = check(request, window)
            if not verdict.accepted:
                return verdict

        conflicts = self.detector.find_overlapping(request.room_id, window)
        if conflicts:
            first = conflicts[0]
            return Verdict.reject(
                RejectionCode.SCHEDULING_CONFLICT,
                "This time slot conflicts with an existing booking "
                f"({first.start:%Y-%m-%d %H:%M}-{first.end:%H:%M} by {first.user_display or first.user_id}).",
                conflicts,
            )
        return ACCEPTED

    def _check_lead_time(self, request: BookingRequest, window: TimeWindow) -> Verdict:
        earliest = request.now + self.policy.min_lead_time
        if window.start < earliest:
            return Verdict.reject(
                RejectionCode.LEAD_TIME_VIOLATION,
                f"Bookings must start at least {self.policy.min_lead_time_minutes} minutes from now.",
            )
        return ACCEPTED

    def _check_duration(self, request: BookingRequest, window: TimeWindow) -> Verdict:
        minutes = window.duration_minutes()
        if not self.policy.min_duration_minutes <= minutes <= self.policy.max_duration_minutes:
            return Verdict.reject(
                RejectionCode.DURATION_VIOLATION,
                f"Booking duration must be between {self.policy.min_duration_minutes} "
                f"and {self.policy.max_duration_minutes} minutes.",
            )
        return ACCEPTED

    def _check_attendees(self, request: BookingRequest, window: TimeWindow) -> Verdict:
        count = len(request.attendees)
        if not self.policy.min_attendees <= count <= self.policy.max_attendees:
            return Verdict.reject(
                RejectionCode.ATTENDEE_COUNT_VIOLATION,
                f"Bookings need between {self.policy.min_attendees} and {self.policy.max_attendees} "
                f"people including the booker, got {count}.",
            )

        if self.policy.enforce_room_capacity:
            room = self.store.get_room(request.room_id)
            if room is not None and not room.min_capacity <= count <= room.max_capacity:
                return Verdict.reject(
                    RejectionCode.ATTENDEE_COUNT_VIOLATION,
                    f"{room.name} holds between {room.min_capacity} and {room.max_capacity} people, got {count}.",
                )
        return ACCEPTED

    def _check_open_hours(self, request: BookingRequest, window: TimeWindow) -> Verdict:
        if not self.calendar.window_is_fully_open(window):
            return Verdict.reject(
                RejectionCode.CLOSED_PERIOD_VIOLATION,
                "The requested time overlaps a period when the rooms are closed.",
            )
        return ACCEPTED
