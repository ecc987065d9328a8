from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo
import logging

from flask import Flask, jsonify, request

from .attendees import ensure_creator_entry, parse_attendee_text
from .booking import parse_timestamp
from .config import EngineSettings, load_settings
from .engine import BookingEngine
from .errors import BookingStorageError, InvalidWindowError, Rejection, RejectionCode
from .models import Attendee, BookingRequest
from .store import BookingStore
from .yaml_store import BookingYamlRepository

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"
USER_NAME_HEADER = "X-User-Name"


def create_app(
    data_dir: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    settings: EngineSettings | None = None,
    store: BookingStore | None = None,
) -> Flask:
    app = Flask(__name__)
    settings = settings or load_settings()
    if store is None:
        repository = BookingYamlRepository(data_dir or settings.data_dir)
        if settings.rooms:
            repository.seed_rooms(settings.rooms)
        store = repository

    engine = BookingEngine(store, settings, now_provider)
    local_zone = ZoneInfo(settings.timezone) if settings.timezone else None
    app.extensions["room_booking"] = engine

    def _json_body() -> dict[str, Any]:
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    def _error(message: str, status: int) -> tuple[Any, int]:
        return jsonify({"ok": False, "message": message}), status

    def _rejected(rejection: Rejection) -> tuple[Any, int]:
        return jsonify(rejection.to_dict()), rejection.http_status

    def _parse_window(payload: dict[str, Any]) -> tuple[str, datetime, datetime]:
        room_id = str(payload.get("roomId") or payload.get("room_id") or "").strip()
        start_value = payload.get("startTime") or payload.get("start")
        end_value = payload.get("endTime") or payload.get("end")
        if not room_id or not start_value or not end_value:
            raise KeyError("Missing required fields")
        return room_id, parse_timestamp(start_value, local_zone), parse_timestamp(end_value, local_zone)

    def _parse_attendees(payload: dict[str, Any], creator_name: str | None) -> tuple[Attendee, ...]:
        if payload.get("attendeesText") is not None:
            return parse_attendee_text(str(payload["attendeesText"]), creator_name)
        rows = payload.get("attendees")
        if not isinstance(rows, list):
            raise ValueError("attendees must be a list")
        attendees = [Attendee.from_dict(row) for row in rows if isinstance(row, dict)]
        if any(not attendee.name for attendee in attendees):
            raise ValueError("attendee name must not be empty")
        return ensure_creator_entry(attendees, creator_name)

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = f"Content-Type,{USER_ID_HEADER},{USER_ROLE_HEADER},{USER_NAME_HEADER}"
        return response

    @app.errorhandler(BookingStorageError)
    def storage_unavailable(error: BookingStorageError) -> Any:
        logger.error("Booking storage unavailable: %s", error)
        return _error("Booking storage is unavailable, please try again.", 503)

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        return jsonify({"ok": True, "rooms": [room.to_dict() for room in engine.store.list_rooms()]})

    @app.get("/api/bookings")
    def list_bookings() -> Any:
        now = engine.clock()
        room_id = request.args.get("room_id") or None
        bookings = engine.store.list_bookings(room_id)
        return jsonify({"ok": True, "bookings": [booking.to_dict(now) for booking in bookings]})

    @app.get("/api/bookings/<booking_id>")
    def get_booking(booking_id: str) -> Any:
        booking = engine.store.get_booking(booking_id)
        if booking is None:
            return _error("Booking not found", 404)
        return jsonify({"ok": True, "booking": booking.to_dict(engine.clock())})

    @app.post("/api/bookings/check-conflicts")
    def check_conflicts() -> Any:
        payload = _json_body()
        try:
            room_id, start, end = _parse_window(payload)
            report = engine.coordinator.check_conflicts(room_id, start, end)
        except KeyError:
            return _error("Missing required fields", 400)
        except InvalidWindowError as error:
            return _rejected(Rejection(RejectionCode.INVALID_WINDOW, str(error)))
        except ValueError:
            return _error("startTime and endTime must be ISO-8601 timestamps", 400)
        return jsonify({"ok": True, **report.to_dict()})

    @app.post("/api/bookings")
    def create_booking() -> Any:
        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return _error("Authentication required", 401)
        user_name = request.headers.get(USER_NAME_HEADER)

        payload = _json_body()
        try:
            room_id, start, end = _parse_window(payload)
        except KeyError:
            return _error("Missing required fields", 400)
        except ValueError:
            return _error("startTime and endTime must be ISO-8601 timestamps", 400)

        purpose = str(payload.get("purpose") or "").strip()
        if not purpose:
            return _error("Purpose is required", 400)

        try:
            attendees = _parse_attendees(payload, user_name)
        except (KeyError, ValueError) as error:
            return _error(f"Invalid attendees: {error}", 400)

        booking_request = BookingRequest(
            room_id=room_id,
            user_id=user_id,
            start=start,
            end=end,
            now=engine.clock(),
            attendees=attendees,
            purpose=purpose,
            user_display=user_name,
        )
        try:
            outcome = engine.coordinator.reserve(booking_request)
        except BookingStorageError:
            logger.exception("Reservation for room %s left the store in an unknown state", room_id)
            return _error("Failed to create booking", 500)

        if isinstance(outcome, Rejection):
            return _rejected(outcome)
        return jsonify({"ok": True, "booking": outcome.to_dict(booking_request.now)}), 201

    @app.delete("/api/bookings/<booking_id>")
    def cancel_booking(booking_id: str) -> Any:
        user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return _error("Authentication required", 401)

        payload = _json_body()
        reason = payload.get("reason")
        now = engine.clock()
        outcome = engine.cancellations.cancel(
            booking_id,
            requester_id=user_id,
            requester_role=request.headers.get(USER_ROLE_HEADER),
            reason=str(reason) if reason is not None else None,
            now=now,
        )
        if isinstance(outcome, Rejection):
            return _rejected(outcome)
        return jsonify({"ok": True, "booking": outcome.to_dict(now)})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
