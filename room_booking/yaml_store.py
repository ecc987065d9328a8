from __future__ import annotations

from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Iterable
import shutil

import yaml

from .booking import TimeWindow
from .errors import BookingStorageError
from .models import Booking, BookingStatus, Room


class BookingYamlRepository:
    """Booking store backed by YAML files in ``base_dir``.

    Every mutation rewrites the whole file through a temp file and an atomic
    rename, under a single re-entrant lock, so readers never see a half-written
    row. Events are appended to ``booking_events.yaml`` as an audit trail.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.rooms_file = self.base_dir / "rooms.yaml"
        self.bookings_file = self.base_dir / "bookings.yaml"
        self.log_file = self.base_dir / "booking_events.yaml"
        self._lock = RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.rooms_file, self.bookings_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        """Read a YAML list of mappings.

        Only the audit log is reset when it cannot be parsed. An unreadable rooms or
        bookings file raises ``BookingStorageError`` and is left untouched, since
        treating it as empty would hide confirmed bookings from the conflict check.
        """
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            return self._unreadable(path, error)

        if payload is None:
            return []
        if not isinstance(payload, list):
            return self._unreadable(path, ValueError("top-level YAML is not a list"))

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            elif path != self.log_file:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _unreadable(self, path: Path, error: Exception) -> list[dict[str, Any]]:
        if path != self.log_file:
            raise BookingStorageError(f"Unreadable YAML file: {path}") from error
        self._recover_corrupted_yaml(path, error)
        return []

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise BookingStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            backup_path = Path("-")

        path.write_text("[]\n", encoding="utf-8")
        self._log_event(
            "YAML_RECOVERED",
            {
                "file": str(path.name),
                "backup": str(backup_path.name),
                "reason": str(error),
            },
        )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def get_events(self) -> list[dict[str, Any]]:
        with self._lock:
            return self._read_yaml_list(self.log_file)

    def seed_rooms(self, rooms: Iterable[Room], overwrite: bool = False) -> list[Room]:
        with self._lock:
            rows = [] if overwrite else self._read_yaml_list(self.rooms_file)
            known = {str(row.get("id")) for row in rows}
            added = [room for room in rooms if room.room_id not in known]
            rows.extend(room.to_dict() for room in added)
            self._write_yaml_list(self.rooms_file, rows)
            return added

    def list_rooms(self) -> list[Room]:
        with self._lock:
            rooms = [_room_from_row(row) for row in self._read_yaml_list(self.rooms_file)]
        return sorted(rooms, key=lambda room: room.name)

    def get_room(self, room_id: str) -> Room | None:
        for room in self.list_rooms():
            if room.room_id == room_id:
                return room
        return None

    def get_booking(self, booking_id: str) -> Booking | None:
        with self._lock:
            for row in self._read_yaml_list(self.bookings_file):
                if str(row.get("id")) == booking_id:
                    return _booking_from_row(row)
        return None

    def list_bookings(self, room_id: str | None = None) -> list[Booking]:
        with self._lock:
            rows = self._read_yaml_list(self.bookings_file)
        bookings = [_booking_from_row(row) for row in rows if room_id is None or str(row.get("room_id")) == room_id]
        return sorted(bookings, key=lambda booking: (booking.start, booking.room_id))

    def query_overlapping(self, room_id: str, start: datetime, end: datetime) -> list[Booking]:
        window = TimeWindow(start, end)
        return [
            booking
            for booking in self.list_bookings(room_id)
            if booking.status is BookingStatus.CONFIRMED and booking.window.overlaps(window)
        ]

    def insert_booking(self, booking: Booking) -> Booking:
        with self._lock:
            rows = self._read_yaml_list(self.bookings_file)
            if any(str(row.get("id")) == booking.booking_id for row in rows):
                raise ValueError(f"booking {booking.booking_id} already exists")
            rows.append(booking.to_dict())
            self._write_yaml_list(self.bookings_file, rows)

            try:
                self._log_event(
                    "BOOKING_CREATED",
                    {
                        "booking_id": booking.booking_id,
                        "room_id": booking.room_id,
                        "user_id": booking.user_id,
                        "start": booking.start.isoformat(timespec="minutes"),
                        "end": booking.end.isoformat(timespec="minutes"),
                    },
                    booking.created_at,
                )
            except BookingStorageError:
                self._write_yaml_list(self.bookings_file, rows[:-1])
                raise
        return booking

    def delete_booking(self, booking_id: str) -> bool:
        with self._lock:
            rows = self._read_yaml_list(self.bookings_file)
            remaining = [row for row in rows if str(row.get("id")) != booking_id]
            if len(remaining) == len(rows):
                return False
            self._write_yaml_list(self.bookings_file, remaining)
            self._log_event("BOOKING_ROLLED_BACK", {"booking_id": booking_id})
            return True

    def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
        cancellation_reason: str | None = None,
    ) -> Booking | None:
        with self._lock:
            rows = self._read_yaml_list(self.bookings_file)
            for index, row in enumerate(rows):
                if str(row.get("id")) != booking_id:
                    continue
                current = _booking_from_row(row)
                if current.status is not expected:
                    return None

                updated = current.with_status(new_status, cancellation_reason)
                rows[index] = updated.to_dict()
                self._write_yaml_list(self.bookings_file, rows)
                try:
                    self._log_event(
                        f"BOOKING_{new_status.value}",
                        {
                            "booking_id": booking_id,
                            "from": expected.value,
                            "to": new_status.value,
                            "reason": cancellation_reason,
                        },
                    )
                except BookingStorageError:
                    rows[index] = row
                    self._write_yaml_list(self.bookings_file, rows)
                    raise
                return updated
        return None


def _booking_from_row(row: dict[str, Any]) -> Booking:
    try:
        return Booking.from_dict(row)
    except (KeyError, TypeError, ValueError) as error:
        raise BookingStorageError(f"Malformed booking row {row.get('id')!r}: {error}") from error


def _room_from_row(row: dict[str, Any]) -> Room:
    try:
        return Room.from_dict(row)
    except (KeyError, TypeError, ValueError) as error:
        raise BookingStorageError(f"Malformed room row {row.get('id')!r}: {error}") from error
