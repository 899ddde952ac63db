"""Pydantic models for WebSocket telemetry frames."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Discriminant values of the "type" field
TELEMETRY_TYPE = "arduino_data"
CONNECTION_ESTABLISHED_TYPE = "connection_established"
DATA_UPDATE_TYPE = "solar_data_update"
ERROR_TYPE = "error"


class TelemetryMessage(BaseModel):
    """
    Inbound telemetry frame sent by a device.

    Numbers must be real JSON numbers: numeric strings, booleans, NaN and
    infinities are rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        strict=True,
        allow_inf_nan=False,
    )

    type: Literal["arduino_data"] = TELEMETRY_TYPE
    device_id: str = Field(..., min_length=1, description="Stable identifier of the physical device")

    # Required live metrics
    power: float
    voltage: float
    current: float
    irradiance: float

    # Optional sensor values
    temperature: float | None = None
    panel_angle: float | None = None
    sunlight_intensity: float | None = None

    # Optional site description, used when the device is seen for the first time
    location: str | None = None
    district: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class ConnectionEstablished(BaseModel):
    """Sent once to every newly connected peer."""

    type: Literal["connection_established"] = CONNECTION_ESTABLISHED_TYPE
    message: str = "Arduino connected successfully"


class DataUpdate(BaseModel):
    """Broadcast to the other peers after a telemetry message is applied."""

    type: Literal["solar_data_update"] = DATA_UPDATE_TYPE
    data: dict[str, Any] = Field(..., description="The telemetry message as received")
    timestamp: datetime = Field(..., description="Server time of the broadcast (UTC)")


class ErrorFrame(BaseModel):
    """Sent only to the connection that produced an invalid frame."""

    type: Literal["error"] = ERROR_TYPE
    message: str = "Invalid data format"
