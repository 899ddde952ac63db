"""Read endpoints for telemetry readings."""

import logging
import re
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from solar_monitor.core.config import DEFAULT_READINGS_LIMIT, MAX_READINGS_LIMIT
from solar_monitor.core.storage import MemStorage, get_storage
from solar_monitor.models.reading import Reading

logger = logging.getLogger(__name__)

router = APIRouter()


LEADING_INTEGER = re.compile(r"\s*([+-]?\d+)")


def parse_limit(raw: str | None) -> int:
    """
    Coerce the ``limit`` query parameter.

    The leading integer is used and trailing text ignored, so ``"5.5"``
    means 5 and ``"7abc"`` means 7. Missing, non-numeric and negative
    values fall back to the default; large values are clamped to
    MAX_READINGS_LIMIT.
    """
    if raw is None:
        return DEFAULT_READINGS_LIMIT
    match = LEADING_INTEGER.match(raw)
    if match is None:
        return DEFAULT_READINGS_LIMIT
    limit = int(match.group(1))
    if limit < 0:
        return DEFAULT_READINGS_LIMIT
    return min(limit, MAX_READINGS_LIMIT)


@router.get("/latest", response_model=List[Reading])
def latest_readings(
    limit: str | None = Query(default=None, description="Maximum number of readings (default 10)"),
    storage: MemStorage = Depends(get_storage),
) -> List[Reading]:
    """
    Get the most recent readings across all devices, newest first.

    - **limit**: Maximum number of readings to return
    """
    try:
        return storage.get_latest_readings(parse_limit(limit))
    except Exception as e:
        logger.error(f"Failed to fetch latest readings: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch latest readings",
        )


@router.get("/device/{device_id}", response_model=List[Reading])
def device_readings(
    device_id: str,
    limit: str | None = Query(default=None, description="Maximum number of readings (default 10)"),
    storage: MemStorage = Depends(get_storage),
) -> List[Reading]:
    """
    Get the most recent readings for one device, newest first.

    - **device_id**: Device identifier
    - **limit**: Maximum number of readings to return
    """
    try:
        return storage.get_readings_by_device_id(device_id, parse_limit(limit))
    except Exception as e:
        logger.error(f"Failed to fetch readings for device {device_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch device readings",
        )
