"""
In-memory store for installations and telemetry readings.

The store is the only component that mutates either collection. It is
constructed explicitly (at application startup, or per test) and shared
through ``app.state``.
"""

import logging
import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import Request

from solar_monitor.core.config import DEFAULT_READINGS_LIMIT, DEFAULT_STATE
from solar_monitor.core.exceptions import DuplicateDeviceError
from solar_monitor.models.installation import (
    Installation,
    InstallationCreate,
    InstallationUpdate,
)
from solar_monitor.models.reading import Reading, ReadingCreate

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TelemetryResult:
    """Outcome of applying one telemetry message to the store."""

    reading: Reading
    installation: Installation
    created: bool


class MemStorage:
    """
    Keyed in-memory storage with simple query operations.

    Every operation runs under a re-entrant lock so a read-modify-write is
    never torn by a concurrent request, whether it comes from the event loop
    or from the endpoint thread pool.
    """

    def __init__(
        self,
        seed: Iterable[InstallationCreate] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._clock = clock
        self._lock = threading.RLock()
        self._last_timestamp: datetime | None = None

        # dicts keep insertion order, which is the listing order
        self._installations: dict[str, Installation] = {}
        self._device_index: dict[str, str] = {}
        self._readings: dict[str, Reading] = {}
        self._reading_sequence: dict[str, int] = {}

        for fields in seed or ():
            self.create_installation(fields)

        if self._installations:
            logger.info("Storage initialized with %d seed installations", len(self._installations))
        else:
            logger.info("Storage initialized - waiting for devices to connect")

    def _now(self) -> datetime:
        """Return a timestamp strictly later than any previously issued."""
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + _TICK
        self._last_timestamp = now
        return now

    # Installations

    def get_all_installations(self) -> List[Installation]:
        with self._lock:
            return list(self._installations.values())

    def get_installation(self, installation_id: str) -> Optional[Installation]:
        with self._lock:
            return self._installations.get(installation_id)

    def get_installation_by_device_id(self, device_id: str) -> Optional[Installation]:
        with self._lock:
            installation_id = self._device_index.get(device_id)
            if installation_id is None:
                return None
            return self._installations[installation_id]

    def get_installations_by_district(self, district: str) -> List[Installation]:
        with self._lock:
            return [i for i in self._installations.values() if i.district == district]

    def get_installations_by_state(self, state: str) -> List[Installation]:
        with self._lock:
            return [i for i in self._installations.values() if i.state == state]

    def create_installation(self, fields: InstallationCreate) -> Installation:
        """
        Store a new installation.

        Args:
            fields: Installation attributes; ``state`` falls back to the
                configured default region when omitted

        Returns:
            The stored installation with its assigned id and last_update

        Raises:
            DuplicateDeviceError: If an installation already exists for
                ``fields.device_id``
        """
        with self._lock:
            if fields.device_id in self._device_index:
                raise DuplicateDeviceError(fields.device_id)

            installation = self._build_installation(fields)
            self._installations[installation.id] = installation
            self._device_index[installation.device_id] = installation.id
            return installation

    def _build_installation(self, fields: InstallationCreate) -> Installation:
        data = fields.model_dump()
        data["state"] = fields.state or DEFAULT_STATE
        return Installation(**data, id=str(uuid.uuid4()), last_update=self._now())

    def update_installation(
        self, installation_id: str, patch: InstallationUpdate
    ) -> Optional[Installation]:
        """
        Overwrite the fields set on ``patch`` and refresh last_update.

        Returns:
            The updated installation, or None if no installation has that id
            (the store is left untouched)
        """
        with self._lock:
            existing = self._installations.get(installation_id)
            if existing is None:
                return None

            updated = self._apply_patch(existing, patch)
            self._installations[installation_id] = updated
            return updated

    def _apply_patch(self, installation: Installation, patch: InstallationUpdate) -> Installation:
        return Installation.model_validate(
            {**installation.model_dump(), **patch.changes(), "last_update": self._now()}
        )

    # Readings

    def add_reading(self, fields: ReadingCreate) -> Reading:
        with self._lock:
            reading = self._build_reading(fields)
            self._insert_reading(reading)
            return reading

    def _build_reading(self, fields: ReadingCreate) -> Reading:
        return Reading(**fields.model_dump(), id=str(uuid.uuid4()), timestamp=self._now())

    def _insert_reading(self, reading: Reading) -> None:
        self._reading_sequence[reading.id] = len(self._readings)
        self._readings[reading.id] = reading

    def get_readings_by_device_id(
        self, device_id: str, limit: int = DEFAULT_READINGS_LIMIT
    ) -> List[Reading]:
        with self._lock:
            matches = [r for r in self._readings.values() if r.device_id == device_id]
            return self._most_recent(matches, limit)

    def get_latest_readings(self, limit: int = DEFAULT_READINGS_LIMIT) -> List[Reading]:
        with self._lock:
            return self._most_recent(list(self._readings.values()), limit)

    def _most_recent(self, readings: List[Reading], limit: int) -> List[Reading]:
        # Later insertion wins ties so ordering stays total with coarse clocks
        readings.sort(
            key=lambda r: (r.timestamp, self._reading_sequence[r.id]),
            reverse=True,
        )
        return readings[: max(limit, 0)]

    # Ingestion

    def record_telemetry(
        self,
        reading: ReadingCreate,
        patch: InstallationUpdate,
        defaults: InstallationCreate,
    ) -> TelemetryResult:
        """
        Apply one telemetry sample atomically.

        Stores the reading, then either applies ``patch`` to the
        installation for the reading's device or, when the device is
        unknown, creates one from ``defaults``. The lookup and the create
        happen under the same lock, so two concurrent first messages from a
        device can never produce two installations.

        Args:
            reading: The sample to store
            patch: Live-metric update for an existing installation
            defaults: Full record used when the device has no installation

        Returns:
            The stored reading, the resulting installation, and whether it
            was created by this call
        """
        if defaults.device_id != reading.device_id:
            raise ValueError("Reading and installation defaults refer to different devices")

        with self._lock:
            # Build both records before touching the maps so a failure leaves no partial state
            stored = self._build_reading(reading)
            installation_id = self._device_index.get(reading.device_id)
            created = installation_id is None

            if created:
                installation = self._build_installation(defaults)
            else:
                installation = self._apply_patch(self._installations[installation_id], patch)

            self._insert_reading(stored)
            self._installations[installation.id] = installation
            self._device_index[installation.device_id] = installation.id

        if created:
            logger.info(
                "Registered new installation %s for device %s",
                installation.id,
                installation.device_id,
            )
        return TelemetryResult(reading=stored, installation=installation, created=created)

    # Lifecycle

    def installation_count(self) -> int:
        with self._lock:
            return len(self._installations)

    def reading_count(self) -> int:
        with self._lock:
            return len(self._readings)

    def clear(self) -> None:
        """Drop all records; called when the application shuts down."""
        with self._lock:
            self._installations.clear()
            self._device_index.clear()
            self._readings.clear()
            self._reading_sequence.clear()


def get_storage(request: Request) -> MemStorage:
    """
    Dependency that provides the application's store.

    The store is created by the application lifespan and kept on app.state.
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise RuntimeError("Storage not initialized. Is the application lifespan running?")
    return storage
