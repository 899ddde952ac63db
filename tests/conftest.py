"""Pytest fixtures for the solar monitor tests."""

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from solar_monitor.core.storage import MemStorage
from solar_monitor.main import create_app


@pytest.fixture
def storage() -> MemStorage:
    """A fresh, empty store."""
    return MemStorage()


@pytest.fixture
def client(storage: MemStorage) -> Generator[TestClient, None, None]:
    """Test client with the lifespan running and ``storage`` injected."""
    with TestClient(create_app(storage=storage)) as test_client:
        yield test_client


@pytest.fixture
def telemetry() -> dict[str, Any]:
    """A minimal valid telemetry frame."""
    return {
        "type": "arduino_data",
        "deviceId": "D1",
        "power": 12.5,
        "voltage": 24.0,
        "current": 0.52,
        "irradiance": 800,
    }
