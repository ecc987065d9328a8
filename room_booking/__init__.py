from .attendees import parse_attendee_text
from .booking import TimeWindow
from .cancellation import CancellationManager
from .config import BookingPolicy, EngineSettings, OperatingHoursSettings, load_settings, settings_from_dict
from .conflicts import ConflictDetector, ConflictReport
from .coordinator import ReservationCoordinator, RoomLockRegistry
from .engine import BookingEngine
from .errors import BookingStorageError, InvalidWindowError, Rejection, RejectionCode, SettingsError
from .models import Attendee, Booking, BookingRequest, BookingStatus, Room
from .operating_calendar import OperatingCalendar, WeeklyClosure
from .store import BookingStore, InMemoryBookingStore
from .validator import ACCEPTED, BookingValidator, Verdict
from .yaml_store import BookingYamlRepository

__all__ = [
	"TimeWindow",
	"OperatingCalendar",
	"WeeklyClosure",
	"ConflictDetector",
	"ConflictReport",
	"BookingValidator",
	"Verdict",
	"ACCEPTED",
	"ReservationCoordinator",
	"RoomLockRegistry",
	"CancellationManager",
	"BookingEngine",
	"Attendee",
	"Booking",
	"BookingRequest",
	"BookingStatus",
	"Room",
	"Rejection",
	"RejectionCode",
	"InvalidWindowError",
	"BookingStorageError",
	"SettingsError",
	"BookingPolicy",
	"EngineSettings",
	"OperatingHoursSettings",
	"load_settings",
	"settings_from_dict",
	"BookingStore",
	"InMemoryBookingStore",
	"BookingYamlRepository",
	"parse_attendee_text",
]
