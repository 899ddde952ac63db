"""WebSocket endpoint for device telemetry."""

from fastapi import APIRouter, Depends, WebSocket

from solar_monitor.core.config import WS_PATH
from solar_monitor.services.ingestion import TelemetryIngestionService

router = APIRouter()


def get_ingestion_service(websocket: WebSocket) -> TelemetryIngestionService:
    """Dependency that provides the ingestion service created by the lifespan."""
    service = getattr(websocket.app.state, "ingestion", None)
    if service is None:
        raise RuntimeError("Ingestion service not initialized. Is the application lifespan running?")
    return service


@router.websocket(WS_PATH)
async def telemetry_socket(
    websocket: WebSocket,
    service: TelemetryIngestionService = Depends(get_ingestion_service),
) -> None:
    """
    Persistent connection for devices and dashboard viewers.

    Devices send ``arduino_data`` frames; every other connected peer gets a
    ``solar_data_update`` frame for each valid one. Frames are handled in
    arrival order, one at a time per connection.
    """
    await service.on_connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")
            await service.handle_frame(websocket, raw)
    finally:
        service.on_disconnect(websocket)
