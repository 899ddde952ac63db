"""Exceptions raised by the solar monitor service layer."""

from typing import Any


class SolarMonitorError(Exception):
    """Base exception for all solar monitor errors."""


class DuplicateDeviceError(SolarMonitorError):
    """Raised when an installation already exists for a device id."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        super().__init__(f"Installation already exists for device {device_id!r}")


class UpstreamError(SolarMonitorError):
    """Raised when a third-party API fails or answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None, details: Any = None):
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class UpstreamTimeout(SolarMonitorError):
    """Raised when a third-party API does not answer in time."""

    pass
