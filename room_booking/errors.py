from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Booking


class InvalidWindowError(ValueError):
    pass


class BookingStorageError(RuntimeError):
    pass


class SettingsError(ValueError):
    pass


class RejectionCode(str, Enum):
    INVALID_WINDOW = "InvalidWindow"
    LEAD_TIME_VIOLATION = "LeadTimeViolation"
    DURATION_VIOLATION = "DurationViolation"
    ATTENDEE_COUNT_VIOLATION = "AttendeeCountViolation"
    CLOSED_PERIOD_VIOLATION = "ClosedPeriodViolation"
    SCHEDULING_CONFLICT = "SchedulingConflict"
    INVALID_STATE_TRANSITION = "InvalidStateTransition"
    ALREADY_ELAPSED = "AlreadyElapsed"
    NOT_AUTHORIZED = "NotAuthorized"
    NOT_FOUND = "NotFound"
    PERSISTENCE_ERROR = "PersistenceError"
    BUSY = "Busy"


_HTTP_STATUS = {
    RejectionCode.INVALID_WINDOW: 400,
    RejectionCode.LEAD_TIME_VIOLATION: 400,
    RejectionCode.DURATION_VIOLATION: 400,
    RejectionCode.ATTENDEE_COUNT_VIOLATION: 400,
    RejectionCode.CLOSED_PERIOD_VIOLATION: 400,
    RejectionCode.SCHEDULING_CONFLICT: 409,
    RejectionCode.INVALID_STATE_TRANSITION: 400,
    RejectionCode.ALREADY_ELAPSED: 400,
    RejectionCode.NOT_AUTHORIZED: 403,
    RejectionCode.NOT_FOUND: 404,
    RejectionCode.PERSISTENCE_ERROR: 503,
    RejectionCode.BUSY: 503,
}

_RETRYABLE = {RejectionCode.PERSISTENCE_ERROR, RejectionCode.BUSY}


@dataclass(frozen=True)
class Rejection:
    """A refused reservation or cancellation.

    Rejections are returned, not raised. Only ``PersistenceError`` and ``Busy``
    may be retried by the caller, and a retry must go through full validation again.
    """

    code: RejectionCode
    message: str
    conflicts: tuple[Booking, ...] = field(default=())

    @property
    def retryable(self) -> bool:
        return self.code in _RETRYABLE

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.code]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": False,
            "code": self.code.value,
            "message": self.message,
        }
        if self.conflicts:
            payload["conflicts"] = [booking.conflict_summary() for booking in self.conflicts]
            payload["conflict"] = payload["conflicts"][0]
        return payload
