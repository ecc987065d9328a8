from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from .errors import InvalidWindowError


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidWindowError("Booking start time must be earlier than end time.")

    def overlaps(self, other: "TimeWindow") -> bool:
        """Return True when the windows share at least one instant.

        Touching boundaries (10:00-11:00 and 11:00-12:00) do not overlap.
        """
        return self.start < other.end and self.end > other.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def duration(self) -> timedelta:
        return self.end - self.start

    def duration_minutes(self) -> float:
        return self.duration().total_seconds() / 60

    def to_dict(self) -> dict[str, str]:
        return {
            "start": self.start.isoformat(timespec="seconds"),
            "end": self.end.isoformat(timespec="seconds"),
        }


def parse_timestamp(value: str, zone: tzinfo | None = None) -> datetime:
    """Parse an ISO-8601 timestamp into naive wall-clock time.

    Offset-aware values are converted to ``zone`` (the system zone when None) first.
    """
    parsed = datetime.fromisoformat(str(value).strip())
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(zone).replace(tzinfo=None)
    return parsed
