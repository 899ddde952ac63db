"""Tests for the third-party API proxy."""

import asyncio
import re
from collections.abc import AsyncGenerator

import aiohttp
import pytest
from aioresponses import aioresponses
from fastapi.testclient import TestClient

from solar_monitor.core.exceptions import UpstreamError, UpstreamTimeout
from solar_monitor.services.proxy import (
    FALLBACK_SOLAR_INSIGHT,
    FALLBACK_WEATHER,
    ExternalProxyService,
)

PVGIS_PATTERN = re.compile(r"^https://re\.jrc\.ec\.europa\.eu/api/v5_2/PVcalc.*$")
WEATHER_PATTERN = re.compile(r"^https://api\.openweathermap\.org/data/2\.5/weather.*$")
SOLAR_PATTERN = re.compile(r"^https://solar\.googleapis\.com/v1/buildingInsights:findClosest.*$")


@pytest.fixture
def mocked_api() -> aioresponses:
    with aioresponses() as mocked:
        yield mocked


@pytest.fixture
async def http_session() -> AsyncGenerator[aiohttp.ClientSession, None]:
    session = aiohttp.ClientSession()
    yield session
    await session.close()


@pytest.fixture
def keyed_proxy(http_session: aiohttp.ClientSession) -> ExternalProxyService:
    return ExternalProxyService(
        http_session,
        openweather_api_key="ow-key",
        google_solar_api_key="gs-key",
        timeout=1,
    )


class TestProxyService:
    async def test_weather_without_key_uses_fallback(
        self, http_session: aiohttp.ClientSession, mocked_api: aioresponses
    ) -> None:
        proxy = ExternalProxyService(http_session, openweather_api_key=None)

        assert await proxy.get_weather(12.9, 77.6) == FALLBACK_WEATHER

    async def test_demo_key_counts_as_missing(
        self, http_session: aiohttp.ClientSession, mocked_api: aioresponses
    ) -> None:
        proxy = ExternalProxyService(http_session, google_solar_api_key="demo_key")

        assert await proxy.get_solar_insight(12.9, 77.6) == FALLBACK_SOLAR_INSIGHT

    async def test_weather_success(self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses) -> None:
        payload = {"main": {"temp": 31.2, "humidity": 40}, "clouds": {"all": 75}}
        mocked_api.get(WEATHER_PATTERN, payload=payload)

        assert await keyed_proxy.get_weather(12.9, 77.6) == payload

        (method, url), _ = next(iter(mocked_api.requests.items()))
        assert method == "GET"
        assert url.query["units"] == "metric"
        assert url.query["appid"] == "ow-key"

    async def test_weather_rejected_key_raises(
        self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(WEATHER_PATTERN, status=401, payload={"message": "Invalid API key"})

        with pytest.raises(UpstreamError) as exc_info:
            await keyed_proxy.get_weather(12.9, 77.6)

        assert exc_info.value.status_code == 401

    async def test_weather_server_error_falls_back(
        self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(WEATHER_PATTERN, status=503, body="unavailable")

        assert await keyed_proxy.get_weather(12.9, 77.6) == FALLBACK_WEATHER

    async def test_weather_timeout_raises(
        self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(WEATHER_PATTERN, exception=asyncio.TimeoutError())

        with pytest.raises(UpstreamTimeout):
            await keyed_proxy.get_weather(12.9, 77.6)

    async def test_solar_insight_forbidden_raises(
        self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(SOLAR_PATTERN, status=403, payload={"error": {"code": 403}})

        with pytest.raises(UpstreamError) as exc_info:
            await keyed_proxy.get_solar_insight(12.9, 77.6)

        assert exc_info.value.status_code == 403

    async def test_solar_insight_connection_error_falls_back(
        self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(SOLAR_PATTERN, exception=aiohttp.ClientConnectionError("refused"))

        assert await keyed_proxy.get_solar_insight(12.9, 77.6) == FALLBACK_SOLAR_INSIGHT

    async def test_pvgis_error_carries_details(
        self, keyed_proxy: ExternalProxyService, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(PVGIS_PATTERN, status=400, payload={"message": "Location over the sea"})

        with pytest.raises(UpstreamError) as exc_info:
            await keyed_proxy.get_pvgis(10.0, 70.0)

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"message": "Location over the sea"}

    async def test_fallback_payloads_are_copies(self, http_session: aiohttp.ClientSession) -> None:
        proxy = ExternalProxyService(http_session, openweather_api_key=None)

        payload = await proxy.get_weather(0, 0)
        payload["main"]["temp"] = -100

        assert FALLBACK_WEATHER["main"]["temp"] == 25


class TestProxyEndpoints:
    @pytest.mark.parametrize("path", ["pvgis", "weather", "solar-insight"])
    @pytest.mark.parametrize(("lat", "lng"), [("abc", "77.6"), ("12.9", "east"), ("nan", "77.6"), ("12.9", "inf")])
    def test_invalid_coordinates_rejected(
        self, client: TestClient, mocked_api: aioresponses, path: str, lat: str, lng: str
    ) -> None:
        response = client.get(f"/api/{path}/{lat}/{lng}")

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid coordinates"}
        assert not mocked_api.requests

    def test_weather_fallback_without_key(self, client: TestClient, mocked_api: aioresponses) -> None:
        client.app.state.proxy.openweather_api_key = None

        response = client.get("/api/weather/12.97/77.59")

        assert response.status_code == 200
        assert response.json() == FALLBACK_WEATHER
        assert not mocked_api.requests

    def test_weather_rejected_key_is_401(self, client: TestClient, mocked_api: aioresponses) -> None:
        client.app.state.proxy.openweather_api_key = "bad-key"
        mocked_api.get(WEATHER_PATTERN, status=401, payload={"message": "Invalid API key"})

        response = client.get("/api/weather/12.97/77.59")

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid OpenWeather API key"}

    def test_solar_insight_timeout_is_408(self, client: TestClient, mocked_api: aioresponses) -> None:
        client.app.state.proxy.google_solar_api_key = "key"
        mocked_api.get(SOLAR_PATTERN, exception=asyncio.TimeoutError())

        response = client.get("/api/solar-insight/12.97/77.59")

        assert response.status_code == 408
        assert response.json() == {"detail": "Google Solar API timeout"}

    def test_pvgis_passthrough(self, client: TestClient, mocked_api: aioresponses) -> None:
        payload = {"outputs": {"totals": {"fixed": {"E_y": 1612.4}}}}
        mocked_api.get(PVGIS_PATTERN, payload=payload)

        response = client.get("/api/pvgis/12.97/77.59")

        assert response.status_code == 200
        assert response.json() == payload

    def test_pvgis_upstream_error_status_passed_through(
        self, client: TestClient, mocked_api: aioresponses
    ) -> None:
        mocked_api.get(PVGIS_PATTERN, status=400, payload={"message": "Location over the sea"})

        response = client.get("/api/pvgis/10.0/70.0")

        assert response.status_code == 400
        assert response.json() == {
            "detail": {"error": "PVGIS API error", "details": {"message": "Location over the sea"}}
        }

    def test_pvgis_connection_failure_is_500(self, client: TestClient, mocked_api: aioresponses) -> None:
        mocked_api.get(PVGIS_PATTERN, exception=aiohttp.ClientConnectionError("refused"))

        response = client.get("/api/pvgis/12.97/77.59")

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to fetch PVGIS data"}
