"""Forwarding to third-party solar and weather APIs with static fallbacks."""

import asyncio
import copy
import logging
from typing import Any

import aiohttp
from aiohttp import ClientTimeout

from solar_monitor.core.config import (
    GOOGLE_SOLAR_API_KEY,
    OPENWEATHER_API_KEY,
    UPSTREAM_TIMEOUT_SECONDS,
    UPSTREAM_USER_AGENT,
)
from solar_monitor.core.exceptions import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)

PVGIS_URL = "https://re.jrc.ec.europa.eu/api/v5_2/PVcalc"
OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
GOOGLE_SOLAR_URL = "https://solar.googleapis.com/v1/buildingInsights:findClosest"

# Placeholder key shipped in example env files; treated as "not configured"
DEMO_API_KEY = "demo_key"

FALLBACK_WEATHER = {
    "main": {"temp": 25, "humidity": 60},
    "weather": [{"main": "Clear", "description": "clear sky"}],
    "clouds": {"all": 10},
}

FALLBACK_SOLAR_INSIGHT = {
    "solarPotential": {
        "yearlyEnergyDcKwh": 1500,
        "roofSegmentSummaries": [
            {
                "yearlyEnergyDcKwh": 1500,
                "segmentIndex": 0,
            }
        ],
    }
}


def _configured(api_key: str | None) -> bool:
    return bool(api_key) and api_key != DEMO_API_KEY


class ExternalProxyService:
    """
    Thin client for the PVGIS, OpenWeather and Google Solar APIs.

    Uses a shared aiohttp session owned by the application lifespan.
    Weather and solar-insight lookups fall back to static payloads when no
    API key is configured or the upstream fails for any reason other than
    a rejected key or a timeout.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        openweather_api_key: str | None = OPENWEATHER_API_KEY,
        google_solar_api_key: str | None = GOOGLE_SOLAR_API_KEY,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        user_agent: str = UPSTREAM_USER_AGENT,
    ):
        self.session = session
        self.openweather_api_key = openweather_api_key
        self.google_solar_api_key = google_solar_api_key
        self.timeout = ClientTimeout(total=timeout)
        self.user_agent = user_agent

        if not _configured(openweather_api_key):
            logger.warning("OPENWEATHER_API_KEY not configured - weather lookups return fallback data")
        if not _configured(google_solar_api_key):
            logger.warning("GOOGLE_SOLAR_API_KEY not configured - solar insight lookups return fallback data")

    async def _get_json(self, name: str, url: str, params: dict[str, Any]) -> Any:
        """
        GET ``url`` and decode the JSON body.

        Raises:
            UpstreamTimeout: If the request exceeds the configured timeout
            UpstreamError: On an error status (``status_code`` set) or a
                connection failure (``status_code`` is None)
        """
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        try:
            async with self.session.get(
                url, params=params, headers=headers, timeout=self.timeout
            ) as response:
                if response.status >= 400:
                    details = await self._read_body(response)
                    raise UpstreamError(
                        f"{name} API returned HTTP {response.status}",
                        status_code=response.status,
                        details=details,
                    )
                return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(f"{name} API timeout") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"{name} API connection error: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"{name} API returned invalid JSON") from e

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except ValueError:
            return await response.text()

    async def get_pvgis(self, latitude: float, longitude: float) -> Any:
        """
        Fetch PV performance estimates from PVGIS.

        PVGIS needs no credentials and has no fallback payload; every
        failure is raised to the caller.
        """
        params = {
            "lat": latitude,
            "lon": longitude,
            "raddatabase": "PVGIS-SARAH2",
            "browser": 0,
            "outputformat": "json",
            "peakpower": 1,
            "loss": 14,
            "mountingplace": "free",
            "angle": 35,
            "aspect": 0,
        }
        return await self._get_json("PVGIS", PVGIS_URL, params)

    async def get_weather(self, latitude: float, longitude: float) -> Any:
        """
        Fetch current weather from OpenWeather.

        Raises:
            UpstreamError: If the API key is rejected (HTTP 401)
            UpstreamTimeout: If OpenWeather does not answer in time
        """
        if not _configured(self.openweather_api_key):
            return copy.deepcopy(FALLBACK_WEATHER)

        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.openweather_api_key,
            "units": "metric",
        }
        try:
            return await self._get_json("Weather", OPENWEATHER_URL, params)
        except UpstreamError as e:
            if e.status_code == 401:
                raise
            logger.error(f"Weather API Error: {e}")
            return copy.deepcopy(FALLBACK_WEATHER)

    async def get_solar_insight(self, latitude: float, longitude: float) -> Any:
        """
        Fetch building solar potential from the Google Solar API.

        Raises:
            UpstreamError: If the API key is rejected (HTTP 403)
            UpstreamTimeout: If Google does not answer in time
        """
        if not _configured(self.google_solar_api_key):
            return copy.deepcopy(FALLBACK_SOLAR_INSIGHT)

        params = {
            "location.latitude": latitude,
            "location.longitude": longitude,
            "key": self.google_solar_api_key,
        }
        try:
            return await self._get_json("Google Solar", GOOGLE_SOLAR_URL, params)
        except UpstreamError as e:
            if e.status_code == 403:
                raise
            logger.error(f"Google Solar API Error: {e}")
            return copy.deepcopy(FALLBACK_SOLAR_INSIGHT)
