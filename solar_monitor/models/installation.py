"""Installation records held by the in-memory store."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from solar_monitor.core.config import DEFAULT_STATE


class InstallationStatus(str, Enum):
    """Operational status of a solar installation."""

    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class InstallationCreate(BaseModel):
    """
    Fields supplied when an installation is created.

    Used by seed data and by the ingestion path when a device reports for
    the first time. The store assigns ``id`` and ``last_update``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    device_id: str = Field(..., min_length=1)
    location: str
    district: str
    state: str | None = Field(default=None, description="Defaults to the configured region")
    latitude: float
    longitude: float

    # Financial and sizing figures
    annual_money_saved: float = 0.0
    annual_electricity_saved: float = 0.0
    annual_solar_energy_usage: float = 0.0
    surface_area: float = 0.0
    cost_per_square_meter: float = 0.0

    # Live metrics from the device
    current_power: float = 0.0
    voltage: float = 0.0
    current: float = 0.0
    irradiance: float = 0.0
    panel_angle: float = 0.0
    sunlight_intensity: float = 0.0

    status: InstallationStatus = InstallationStatus.ACTIVE
    is_online: bool = False


class InstallationUpdate(BaseModel):
    """
    Typed partial update for an installation.

    Only fields that were explicitly set are applied; each one overwrites
    the stored value.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    location: str | None = None
    district: str | None = None
    state: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    annual_money_saved: float | None = None
    annual_electricity_saved: float | None = None
    annual_solar_energy_usage: float | None = None
    surface_area: float | None = None
    cost_per_square_meter: float | None = None
    current_power: float | None = None
    voltage: float | None = None
    current: float | None = None
    irradiance: float | None = None
    panel_angle: float | None = None
    sunlight_intensity: float | None = None
    status: InstallationStatus | None = None
    is_online: bool | None = None

    def changes(self) -> dict:
        """Return the fields set to a value, keyed by attribute name; None means unchanged."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class Installation(InstallationCreate):
    """A stored solar installation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    state: str = DEFAULT_STATE
    last_update: datetime

    def __repr__(self):
        return f"<Installation(id={self.id}, device_id={self.device_id}, district={self.district})>"
