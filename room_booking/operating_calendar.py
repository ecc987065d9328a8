from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable

import holidays as pyholidays

from .booking import TimeWindow

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class WeeklyClosure:
    """A recurring closed period on one weekday (0 = Monday).

    ``start=None`` means from midnight and ``end=None`` means until the end of the day,
    so ``WeeklyClosure(5)`` closes all of Saturday.
    """

    weekday: int
    start: time | None = None
    end: time | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError("weekday must be between 0 (Monday) and 6 (Sunday)")
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("closure end must be later than closure start")

    def on(self, day: date) -> TimeWindow | None:
        if day.weekday() != self.weekday:
            return None
        day_start = datetime.combine(day, time.min)
        start = datetime.combine(day, self.start) if self.start is not None else day_start
        end = datetime.combine(day, self.end) if self.end is not None else day_start + timedelta(days=1)
        if end <= start:
            return None
        return TimeWindow(start, end)


def default_weekly_closures(opening_hour: int = 8) -> tuple[WeeklyClosure, ...]:
    return (
        WeeklyClosure(weekday=4, start=time(17, 0)),
        WeeklyClosure(weekday=5),
        WeeklyClosure(weekday=6, end=time(opening_hour, 0)),
    )


@dataclass
class OperatingCalendar:
    opening_hour: int = 8
    closing_hour: int = 22
    closures: tuple[WeeklyClosure, ...] = field(default_factory=default_weekly_closures)
    holiday_country: str | None = None
    _holiday_cache: dict[int, set[date]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0 <= self.opening_hour < self.closing_hour <= 24:
            raise ValueError("opening_hour must be earlier than closing_hour, both within 0-24")
        self.closures = tuple(self.closures)

    def is_open(self, instant: datetime) -> bool:
        day = instant.date()
        if self.is_holiday(day):
            return False
        for closure in self.closures:
            closed = closure.on(day)
            if closed is not None and closed.contains(instant):
                return False
        opening, closing = self._business_bounds(day)
        return opening <= instant < closing

    def window_is_fully_open(self, window: TimeWindow) -> bool:
        """Return True only when no closed period touches the window.

        Checking the endpoints alone is not enough: Friday 16:50-17:10 starts and
        could end in open time while still crossing a 17:00 closure.
        """
        if not self.is_open(window.start):
            return False
        return not any(window.overlaps(closed) for closed in self.closed_intervals(window.start, window.end))

    def closed_intervals(self, start: datetime, end: datetime) -> list[TimeWindow]:
        intervals: list[TimeWindow] = []
        for day in _days_touched(start, end):
            intervals.extend(self._closed_on(day))
        return sorted(intervals, key=lambda item: (item.start, item.end))

    def is_holiday(self, day: date) -> bool:
        if not self.holiday_country:
            return False
        if day.year not in self._holiday_cache:
            holiday_map = pyholidays.country_holidays(self.holiday_country, years=[day.year])
            self._holiday_cache[day.year] = set(holiday_map.keys())
        return day in self._holiday_cache[day.year]

    def _closed_on(self, day: date) -> Iterable[TimeWindow]:
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)
        if self.is_holiday(day):
            yield TimeWindow(day_start, day_end)
            return

        opening, closing = self._business_bounds(day)
        if opening > day_start:
            yield TimeWindow(day_start, opening)
        if closing < day_end:
            yield TimeWindow(closing, day_end)
        for closure in self.closures:
            closed = closure.on(day)
            if closed is not None:
                yield closed

    def _business_bounds(self, day: date) -> tuple[datetime, datetime]:
        day_start = datetime.combine(day, time.min)
        return day_start + timedelta(hours=self.opening_hour), day_start + timedelta(hours=self.closing_hour)


def _days_touched(start: datetime, end: datetime) -> list[date]:
    last_day = (end - timedelta(microseconds=1)).date() if end > start else start.date()
    days: list[date] = []
    cursor = start.date()
    while cursor <= last_day:
        days.append(cursor)
        cursor += timedelta(days=1)
    return days
