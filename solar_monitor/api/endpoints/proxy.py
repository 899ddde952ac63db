"""Proxy endpoints for third-party solar and weather data."""

import logging
import math
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from solar_monitor.core.exceptions import UpstreamError, UpstreamTimeout
from solar_monitor.services.proxy import ExternalProxyService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_proxy_service(request: Request) -> ExternalProxyService:
    """Dependency that provides the proxy service created by the lifespan."""
    proxy = getattr(request.app.state, "proxy", None)
    if proxy is None:
        raise RuntimeError("Proxy service not initialized. Is the application lifespan running?")
    return proxy


def parse_coordinates(lat: str, lng: str) -> tuple[float, float]:
    """
    Parse path coordinates, rejecting anything that is not a finite number.

    Raises:
        HTTPException: 400 before any upstream call is attempted
    """
    try:
        latitude = float(lat)
        longitude = float(lng)
    except ValueError:
        latitude = longitude = math.nan

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid coordinates",
        )
    return latitude, longitude


@router.get("/pvgis/{lat}/{lng}")
async def pvgis(
    lat: str,
    lng: str,
    proxy: ExternalProxyService = Depends(get_proxy_service),
) -> Any:
    """
    PV performance estimate for a location from PVGIS (1 kWp, 35 degree tilt).

    Upstream error statuses are passed through with the upstream body.
    """
    latitude, longitude = parse_coordinates(lat, lng)

    try:
        return await proxy.get_pvgis(latitude, longitude)
    except UpstreamTimeout:
        logger.error("PVGIS API Error: timeout")
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="PVGIS API timeout",
        )
    except UpstreamError as e:
        logger.error(f"PVGIS API Error: {e}")
        if e.status_code is not None:
            raise HTTPException(
                status_code=e.status_code,
                detail={"error": "PVGIS API error", "details": e.details},
            )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch PVGIS data",
        )


@router.get("/weather/{lat}/{lng}")
async def weather(
    lat: str,
    lng: str,
    proxy: ExternalProxyService = Depends(get_proxy_service),
) -> Any:
    """
    Current weather for a location from OpenWeather.

    Returns a static clear-sky payload when no API key is configured or the
    upstream fails.
    """
    latitude, longitude = parse_coordinates(lat, lng)

    try:
        return await proxy.get_weather(latitude, longitude)
    except UpstreamTimeout:
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="Weather API timeout",
        )
    except UpstreamError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid OpenWeather API key",
        )


@router.get("/solar-insight/{lat}/{lng}")
async def solar_insight(
    lat: str,
    lng: str,
    proxy: ExternalProxyService = Depends(get_proxy_service),
) -> Any:
    """
    Rooftop solar potential for a location from the Google Solar API.

    Returns a static 1500 kWh/year estimate when no API key is configured or
    the upstream fails.
    """
    latitude, longitude = parse_coordinates(lat, lng)

    try:
        return await proxy.get_solar_insight(latitude, longitude)
    except UpstreamTimeout:
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="Google Solar API timeout",
        )
    except UpstreamError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid Google Solar API key",
        )
