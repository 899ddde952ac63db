from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReadingCreate(BaseModel):
    """Telemetry sample fields before the store stamps id and timestamp."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    device_id: str
    location: str
    power: float
    voltage: float
    current: float
    irradiance: float
    panel_angle: float = 0.0
    sunlight_intensity: float = 0.0
    temperature: float | None = None


class Reading(ReadingCreate):
    """One immutable telemetry sample tied to a device."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    timestamp: datetime

    def __repr__(self):
        return f"<Reading(id={self.id}, device_id={self.device_id}, power={self.power})>"
