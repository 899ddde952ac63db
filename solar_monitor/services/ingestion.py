"""Telemetry ingestion: validation, storage write-through and broadcast."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, List

from fastapi import WebSocket
from pydantic import BaseModel, ValidationError
from starlette.websockets import WebSocketState

from solar_monitor.core.config import (
    BROADCAST_SEND_TIMEOUT_SECONDS,
    DEFAULT_DISTRICT,
    DEFAULT_LATITUDE,
    DEFAULT_LOCATION,
    DEFAULT_LONGITUDE,
    DEFAULT_STATE,
)
from solar_monitor.core.storage import MemStorage, TelemetryResult
from solar_monitor.models.installation import (
    InstallationCreate,
    InstallationStatus,
    InstallationUpdate,
)
from solar_monitor.models.reading import ReadingCreate
from solar_monitor.schemas.telemetry import (
    TELEMETRY_TYPE,
    ConnectionEstablished,
    DataUpdate,
    ErrorFrame,
    TelemetryMessage,
)

logger = logging.getLogger(__name__)


class InvalidFrame(Exception):
    """Raised when an inbound frame cannot be parsed or validated."""

    pass


def _reject_constant(token: str) -> None:
    raise InvalidFrame(f"Non-standard JSON token {token}")


def _is_open(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


class ConnectionManager:
    """
    Registry of live WebSocket connections.

    Connections are added on connect and removed on disconnect. Broadcasts
    iterate over a snapshot, so peers may join or leave mid-broadcast.
    """

    def __init__(self, send_timeout: float = BROADCAST_SEND_TIMEOUT_SECONDS):
        self.send_timeout = send_timeout
        self._connections: dict[int, WebSocket] = {}
        self._pending: set[asyncio.Task] = set()

    def register(self, websocket: WebSocket) -> None:
        self._connections[id(websocket)] = websocket

    def unregister(self, websocket: WebSocket) -> None:
        self._connections.pop(id(websocket), None)

    @property
    def active_count(self) -> int:
        return len(self._connections)

    def snapshot(self) -> List[WebSocket]:
        return list(self._connections.values())

    async def send(self, websocket: WebSocket, frame: BaseModel) -> bool:
        """
        Send one frame to one peer.

        Returns:
            True if the frame was written, False if the peer was not open,
            failed, or did not accept the frame within ``send_timeout``
        """
        if not _is_open(websocket):
            return False

        try:
            await asyncio.wait_for(
                websocket.send_json(frame.model_dump(mode="json")),
                timeout=self.send_timeout,
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timed out sending {frame.type} frame to {websocket.client}")
        except Exception as e:
            logger.warning(f"Failed to send {frame.type} frame to {websocket.client}: {e}")
        return False

    async def broadcast(self, frame: BaseModel, exclude: WebSocket | None = None) -> int:
        """
        Best-effort push of ``frame`` to every open peer except ``exclude``.

        Sends run concurrently so one slow peer does not hold up the rest.
        Nothing is queued or retried.

        Returns:
            Number of peers the frame was delivered to
        """
        targets = [ws for ws in self.snapshot() if ws is not exclude]
        if not targets:
            return 0

        results = await asyncio.gather(*(self.send(ws, frame) for ws in targets))
        return sum(1 for delivered in results if delivered)

    def schedule_broadcast(self, frame: BaseModel, exclude: WebSocket | None = None) -> asyncio.Task:
        """Run ``broadcast`` in the background so the caller is not held up by slow peers."""
        task = asyncio.create_task(self.broadcast(frame, exclude=exclude))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def join(self) -> None:
        """Wait for every scheduled broadcast to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        """Cancel scheduled broadcasts that are still running."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()


class TelemetryIngestionService:
    """
    Applies device telemetry to the store and fans out updates.

    Frames from one connection are handled one at a time; frames from
    different connections may interleave, which the store tolerates because
    each telemetry write is a single atomic call.
    """

    def __init__(self, storage: MemStorage, connections: ConnectionManager):
        self.storage = storage
        self.connections = connections

    async def on_connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.register(websocket)
        logger.info(f"Device connected from {websocket.client}")
        await self.connections.send(websocket, ConnectionEstablished())

    def on_disconnect(self, websocket: WebSocket) -> None:
        # The installation keeps its isOnline flag; staleness shows in lastUpdate
        self.connections.unregister(websocket)
        logger.info(f"Device disconnected from {websocket.client}")

    async def handle_frame(self, websocket: WebSocket, raw: str | None) -> None:
        """
        Process one inbound text frame from ``websocket``.

        Invalid frames get a single error frame back; other message types
        are dropped; valid telemetry is stored and a broadcast to the other
        peers is scheduled without waiting for it.
        """
        try:
            message = self.parse_frame(raw)
        except InvalidFrame as e:
            logger.warning(f"Rejected frame from {websocket.client}: {e}")
            await self.connections.send(websocket, ErrorFrame())
            return

        if message.get("type") != TELEMETRY_TYPE:
            logger.debug(f"Ignoring message of type {message.get('type')!r}")
            return

        try:
            telemetry = TelemetryMessage.model_validate(message)
        except ValidationError as e:
            logger.warning(
                f"Invalid telemetry from {websocket.client}: {e.error_count()} validation error(s)"
            )
            await self.connections.send(websocket, ErrorFrame())
            return

        try:
            self.apply(telemetry)
        except Exception as e:
            logger.error(f"Failed to store telemetry for device {telemetry.device_id}: {e}")
            await self.connections.send(websocket, ErrorFrame())
            return

        update = DataUpdate(data=message, timestamp=datetime.now(timezone.utc))
        self.connections.schedule_broadcast(update, exclude=websocket)

    @staticmethod
    def parse_frame(raw: str | None) -> dict[str, Any]:
        """Decode a text frame into a JSON object."""
        try:
            message = json.loads(raw, parse_constant=_reject_constant)
        except (TypeError, ValueError) as e:
            raise InvalidFrame(f"Malformed JSON: {e}") from e

        if not isinstance(message, dict):
            raise InvalidFrame("Expected a JSON object")
        return message

    def apply(self, telemetry: TelemetryMessage) -> TelemetryResult:
        """
        Write one validated telemetry message through to the store.

        Appends a reading and updates (or, for an unseen device, creates)
        the device's installation.
        """
        reading = ReadingCreate(
            device_id=telemetry.device_id,
            location=telemetry.location or DEFAULT_LOCATION,
            power=telemetry.power,
            voltage=telemetry.voltage,
            current=telemetry.current,
            irradiance=telemetry.irradiance,
            panel_angle=telemetry.panel_angle or 0.0,
            sunlight_intensity=telemetry.sunlight_intensity or 0.0,
            temperature=telemetry.temperature,
        )

        live_metrics = {
            "current_power": telemetry.power,
            "voltage": telemetry.voltage,
            "current": telemetry.current,
            "irradiance": telemetry.irradiance,
        }
        # Angle and intensity are only overwritten when the device reports them
        if telemetry.panel_angle is not None:
            live_metrics["panel_angle"] = telemetry.panel_angle
        if telemetry.sunlight_intensity is not None:
            live_metrics["sunlight_intensity"] = telemetry.sunlight_intensity
        patch = InstallationUpdate(**live_metrics, is_online=True)

        defaults = InstallationCreate(
            device_id=telemetry.device_id,
            location=telemetry.location or DEFAULT_LOCATION,
            district=telemetry.district or DEFAULT_DISTRICT,
            state=DEFAULT_STATE,
            latitude=telemetry.latitude if telemetry.latitude is not None else DEFAULT_LATITUDE,
            longitude=telemetry.longitude if telemetry.longitude is not None else DEFAULT_LONGITUDE,
            current_power=telemetry.power,
            voltage=telemetry.voltage,
            current=telemetry.current,
            irradiance=telemetry.irradiance,
            panel_angle=telemetry.panel_angle or 0.0,
            sunlight_intensity=telemetry.sunlight_intensity or 0.0,
            status=InstallationStatus.ACTIVE,
            is_online=True,
        )

        return self.storage.record_telemetry(reading, patch, defaults)
