from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import TypeAdapter

from .booking import TimeWindow

ROLE_ADMIN = "ADMIN"
ROLE_STUDENT = "STUDENT"

# "false" and "no" parse as False; anything not boolean-like raises ValueError
_FLAG = TypeAdapter(bool)


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    min_capacity: int = 1
    max_capacity: int = 10
    description: str = ""
    features: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.room_id,
            "name": self.name,
            "min_capacity": self.min_capacity,
            "max_capacity": self.max_capacity,
            "description": self.description,
            "features": sorted(self.features),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Room":
        return Room(
            room_id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            min_capacity=int(data.get("min_capacity", 1)),
            max_capacity=int(data.get("max_capacity", 10)),
            description=str(data.get("description") or ""),
            features=frozenset(str(item) for item in data.get("features") or []),
        )


@dataclass(frozen=True)
class Attendee:
    name: str
    student_id: str | None = None
    is_companion: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "student_id": self.student_id,
            "is_companion": self.is_companion,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Attendee":
        student_id = data.get("student_id", data.get("studentId"))
        return Attendee(
            name=str(data["name"]).strip(),
            student_id=str(student_id) if student_id not in (None, "") else None,
            is_companion=_FLAG.validate_python(data.get("is_companion", data.get("isCompanion", True))),
        )


@dataclass(frozen=True)
class BookingRequest:
    room_id: str
    user_id: str
    start: datetime
    end: datetime
    now: datetime
    attendees: tuple[Attendee, ...] = ()
    purpose: str = ""
    user_display: str | None = None


@dataclass(frozen=True)
class Booking:
    booking_id: str
    room_id: str
    user_id: str
    start: datetime
    end: datetime
    purpose: str
    attendees: tuple[Attendee, ...]
    created_at: datetime
    status: BookingStatus = BookingStatus.CONFIRMED
    cancellation_reason: str | None = None
    user_display: str | None = None

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)

    def status_at(self, now: datetime) -> BookingStatus:
        """Status as seen by readers: a confirmed booking that has ended reads as completed."""
        if self.status is BookingStatus.CONFIRMED and self.end <= now:
            return BookingStatus.COMPLETED
        return self.status

    def with_status(self, status: BookingStatus, cancellation_reason: str | None = None) -> "Booking":
        return replace(self, status=status, cancellation_reason=cancellation_reason)

    def conflict_summary(self) -> dict[str, str]:
        return {
            "id": self.booking_id,
            "room_id": self.room_id,
            "start": self.start.isoformat(timespec="seconds"),
            "end": self.end.isoformat(timespec="seconds"),
            "booked_by": self.user_display or self.user_id,
        }

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        status = self.status_at(now) if now is not None else self.status
        payload: dict[str, Any] = {
            "id": self.booking_id,
            "room_id": self.room_id,
            "user_id": self.user_id,
            "user_display": self.user_display,
            "start": self.start.isoformat(timespec="seconds"),
            "end": self.end.isoformat(timespec="seconds"),
            "purpose": self.purpose,
            "attendees": [attendee.to_dict() for attendee in self.attendees],
            "status": status.value,
            "created_at": self.created_at.isoformat(timespec="seconds"),
        }
        if self.cancellation_reason is not None:
            payload["cancellation_reason"] = self.cancellation_reason
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Booking":
        reason = data.get("cancellation_reason")
        display = data.get("user_display")
        return Booking(
            booking_id=str(data["id"]),
            room_id=str(data["room_id"]),
            user_id=str(data["user_id"]),
            start=datetime.fromisoformat(str(data["start"])),
            end=datetime.fromisoformat(str(data["end"])),
            purpose=str(data.get("purpose") or ""),
            attendees=tuple(Attendee.from_dict(row) for row in data.get("attendees") or []),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            status=BookingStatus(str(data.get("status", BookingStatus.CONFIRMED.value))),
            cancellation_reason=str(reason) if reason is not None else None,
            user_display=str(display) if display is not None else None,
        )
