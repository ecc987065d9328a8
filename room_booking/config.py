from __future__ import annotations

from datetime import time, timedelta
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .conflicts import STRATEGY_RANGE
from .errors import SettingsError
from .models import Room
from .operating_calendar import WEEKDAY_NAMES, OperatingCalendar, WeeklyClosure, default_weekly_closures

ENV_PREFIX = "ROOM_BOOKING_"
SETTINGS_ENV_VAR = f"{ENV_PREFIX}SETTINGS"

OPENING_HOUR = 8
CLOSING_HOUR = 22
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 720
MIN_LEAD_TIME_MINUTES = 30
MIN_ATTENDEES = 2
MAX_ATTENDEES = 10
LOCK_TIMEOUT_SECONDS = 5.0


class BookingPolicy(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    min_duration_minutes: int = Field(MIN_DURATION_MINUTES, gt=0)
    max_duration_minutes: int = Field(MAX_DURATION_MINUTES, gt=0)
    min_lead_time_minutes: int = Field(MIN_LEAD_TIME_MINUTES, ge=0)
    min_attendees: int = Field(MIN_ATTENDEES, ge=1)
    max_attendees: int = Field(MAX_ATTENDEES, ge=1)
    enforce_room_capacity: bool = False

    @model_validator(mode="after")
    def check_bounds(self) -> "BookingPolicy":
        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError("min_duration_minutes must not exceed max_duration_minutes")
        if self.min_attendees > self.max_attendees:
            raise ValueError("min_attendees must not exceed max_attendees")
        return self

    @property
    def min_lead_time(self) -> timedelta:
        return timedelta(minutes=self.min_lead_time_minutes)


class ClosureSettings(BaseModel):
    """One weekly closure as written in the settings file.

    ``weekday`` takes a name or 0-6, times take ``"HH:MM"``. YAML 1.1 reads an
    unquoted ``17:00`` as the integer 1020 (minutes), which is accepted too.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    weekday: int = Field(ge=0, le=6)
    start: time | None = None
    end: time | None = None

    @field_validator("weekday", mode="before")
    @classmethod
    def weekday_from_name(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip().isdigit():
            name = value.strip().lower()
            if name not in WEEKDAY_NAMES:
                raise ValueError(f"unknown weekday: {value}")
            return WEEKDAY_NAMES.index(name)
        return value

    @field_validator("start", "end", mode="before")
    @classmethod
    def time_from_minutes(cls, value: Any) -> Any:
        if value == "":
            return None
        if isinstance(value, int) and not isinstance(value, bool):
            return time(value // 60, value % 60)
        return value

    @model_validator(mode="after")
    def check_order(self) -> "ClosureSettings":
        self.to_closure()
        return self

    def to_closure(self) -> WeeklyClosure:
        return WeeklyClosure(weekday=self.weekday, start=self.start, end=self.end)


class OperatingHoursSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    opening_hour: int = Field(OPENING_HOUR, ge=0, le=24)
    closing_hour: int = Field(CLOSING_HOUR, ge=0, le=24)
    # None keeps the default closures, which follow the opening hour
    closures: tuple[ClosureSettings, ...] | None = None
    holiday_country: str | None = None

    @field_validator("holiday_country", mode="before")
    @classmethod
    def blank_country_is_none(cls, value: Any) -> Any:
        return value or None

    @model_validator(mode="after")
    def check_hours(self) -> "OperatingHoursSettings":
        if self.opening_hour >= self.closing_hour:
            raise ValueError("opening_hour must be earlier than closing_hour")
        return self

    def weekly_closures(self) -> tuple[WeeklyClosure, ...]:
        if self.closures is None:
            return default_weekly_closures(self.opening_hour)
        return tuple(closure.to_closure() for closure in self.closures)

    def build_calendar(self) -> OperatingCalendar:
        return OperatingCalendar(
            opening_hour=self.opening_hour,
            closing_hour=self.closing_hour,
            closures=self.weekly_closures(),
            holiday_country=self.holiday_country,
        )


class EngineSettings(BaseSettings):
    """Engine configuration.

    Top-level scalars can also come from ``ROOM_BOOKING_*`` environment
    variables, e.g. ``ROOM_BOOKING_DATA_DIR``. Values given explicitly (or read
    from the settings file) win over the environment.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True, extra="forbid", env_ignore_empty=True)

    operating_hours: OperatingHoursSettings = Field(default_factory=OperatingHoursSettings)
    policy: BookingPolicy = Field(default_factory=BookingPolicy)
    lock_timeout_seconds: float = Field(LOCK_TIMEOUT_SECONDS, gt=0)
    conflict_strategy: Literal["scan", "range"] = STRATEGY_RANGE
    timezone: str | None = None
    data_dir: str = "data"
    rooms: tuple[Room, ...] = ()

    @field_validator("timezone", mode="before")
    @classmethod
    def blank_timezone_is_none(cls, value: Any) -> Any:
        return value or None

    @field_validator("rooms", mode="before")
    @classmethod
    def rooms_from_rows(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(_room_row(row) for row in value)
        return value


class _SettingsFileLocation(BaseSettings):
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore", env_ignore_empty=True)

    settings: Path | None = None


def load_settings(path: str | Path | None = None) -> EngineSettings:
    """Read settings from a YAML file.

    Without an explicit path the file named by ``ROOM_BOOKING_SETTINGS`` is used;
    when neither is given the built-in defaults (plus environment) apply.
    """
    target = path or _SettingsFileLocation().settings
    if not target:
        return settings_from_dict({})

    try:
        payload = yaml.safe_load(Path(target).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
        raise SettingsError(f"Failed to read settings file: {target}") from error

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise SettingsError("top-level settings YAML must be a mapping")
    return settings_from_dict(payload)


def settings_from_dict(data: dict[str, Any]) -> EngineSettings:
    try:
        return EngineSettings(**{str(key): value for key, value in data.items()})
    except ValidationError as error:
        raise SettingsError(f"Invalid settings: {error}") from error


def _room_row(row: Any) -> Any:
    # settings files use the wire key "id"
    if isinstance(row, dict) and "id" in row:
        return {("room_id" if key == "id" else key): value for key, value in row.items()}
    return row
