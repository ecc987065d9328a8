from __future__ import annotations

from datetime import datetime
from typing import Callable

from .cancellation import CancellationManager
from .config import EngineSettings
from .conflicts import ConflictDetector
from .coordinator import ReservationCoordinator
from .store import BookingStore
from .validator import BookingValidator


class BookingEngine:
    """Everything needed to reserve and cancel against one store."""

    def __init__(
        self,
        store: BookingStore,
        settings: EngineSettings | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or EngineSettings()
        self.clock: Callable[[], datetime] = now_provider or datetime.now

        self.calendar = self.settings.operating_hours.build_calendar()
        self.detector = ConflictDetector(store, strategy=self.settings.conflict_strategy)
        self.validator = BookingValidator(self.calendar, self.detector, self.settings.policy, store)
        self.coordinator = ReservationCoordinator(store, self.validator, lock_timeout=self.settings.lock_timeout_seconds)
        self.cancellations = CancellationManager(store)
