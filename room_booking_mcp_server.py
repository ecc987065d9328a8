from __future__ import annotations

from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from mcp.server.fastmcp import FastMCP

from room_booking import Attendee, BookingEngine, BookingRequest, BookingYamlRepository, Rejection, load_settings
from room_booking.attendees import ensure_creator_entry
from room_booking.booking import parse_timestamp

mcp = FastMCP(
    "Room Booking MCP Server",
    instructions="Check availability, reserve and cancel study rooms through the booking engine.",
    json_response=True,
)

SETTINGS = load_settings()
# ROOM_BOOKING_DATA_DIR overrides the relative default through the settings environment
DATA_DIR = Path(__file__).parent / SETTINGS.data_dir
REPOSITORY = BookingYamlRepository(DATA_DIR)
if SETTINGS.rooms:
    REPOSITORY.seed_rooms(SETTINGS.rooms)
ENGINE = BookingEngine(REPOSITORY, SETTINGS)
LOCAL_ZONE = ZoneInfo(SETTINGS.timezone) if SETTINGS.timezone else None


def _outcome(outcome: Any) -> dict[str, Any]:
    if isinstance(outcome, Rejection):
        return outcome.to_dict()
    return {"ok": True, "booking": outcome.to_dict(ENGINE.clock())}


@mcp.resource("booking://rooms")
async def list_rooms() -> list[dict[str, Any]]:
    """List bookable rooms."""
    return [room.to_dict() for room in ENGINE.store.list_rooms()]


@mcp.tool()
def list_bookings(room_id: str | None = None) -> list[dict[str, Any]]:
    """Return bookings with their current status, optionally filtered by room."""
    now = ENGINE.clock()
    return [booking.to_dict(now) for booking in ENGINE.store.list_bookings(room_id)]


@mcp.tool()
def check_conflicts(room_id: str, start_iso: str, end_iso: str) -> dict[str, Any]:
    """Report confirmed bookings that overlap the given window without reserving anything."""
    start = parse_timestamp(start_iso, LOCAL_ZONE)
    end = parse_timestamp(end_iso, LOCAL_ZONE)
    report = ENGINE.coordinator.check_conflicts(room_id, start, end)
    return report.to_dict()


@mcp.tool()
def reserve_room(
    room_id: str,
    user_id: str,
    start_iso: str,
    end_iso: str,
    purpose: str,
    companions: list[str] | None = None,
    user_name: str | None = None,
) -> dict[str, Any]:
    """Reserve a room using ISO timestamps. Companions are the other attendees besides the booker."""
    attendees = ensure_creator_entry([Attendee(name=name.strip()) for name in companions or [] if name.strip()], user_name)
    booking_request = BookingRequest(
        room_id=room_id,
        user_id=user_id,
        start=parse_timestamp(start_iso, LOCAL_ZONE),
        end=parse_timestamp(end_iso, LOCAL_ZONE),
        now=ENGINE.clock(),
        attendees=attendees,
        purpose=purpose,
        user_display=user_name,
    )
    return _outcome(ENGINE.coordinator.reserve(booking_request))


@mcp.tool()
def cancel_booking(booking_id: str, user_id: str, role: str | None = None, reason: str | None = None) -> dict[str, Any]:
    """Cancel a confirmed booking owned by the user (admins may cancel any booking)."""
    return _outcome(ENGINE.cancellations.cancel(booking_id, user_id, role, reason, now=ENGINE.clock()))


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
