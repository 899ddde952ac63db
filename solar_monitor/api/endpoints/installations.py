"""Read endpoints for solar installations."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from solar_monitor.core.storage import MemStorage, get_storage
from solar_monitor.models.installation import Installation

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[Installation])
def list_installations(storage: MemStorage = Depends(get_storage)) -> List[Installation]:
    """List every installation in insertion order."""
    try:
        return storage.get_all_installations()
    except Exception as e:
        logger.error(f"Failed to fetch installations: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch installations",
        )


@router.get("/district/{district}", response_model=List[Installation])
def list_installations_by_district(
    district: str,
    storage: MemStorage = Depends(get_storage),
) -> List[Installation]:
    """
    List installations in a district.

    - **district**: Exact, case-sensitive district name

    Returns an empty list when the district has no installations.
    """
    try:
        return storage.get_installations_by_district(district)
    except Exception as e:
        logger.error(f"Failed to fetch installations for district {district!r}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch installations by district",
        )


@router.get("/state/{state}", response_model=List[Installation])
def list_installations_by_state(
    state: str,
    storage: MemStorage = Depends(get_storage),
) -> List[Installation]:
    """
    List installations in a state.

    - **state**: Exact, case-sensitive state name (e.g. "Karnataka")
    """
    try:
        return storage.get_installations_by_state(state)
    except Exception as e:
        logger.error(f"Failed to fetch installations for state {state!r}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch installations by state",
        )


@router.get("/device/{device_id}", response_model=Installation)
def get_installation_by_device(
    device_id: str,
    storage: MemStorage = Depends(get_storage),
) -> Installation:
    """Get the installation registered for a device."""
    installation = storage.get_installation_by_device_id(device_id)
    if installation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No installation found for device {device_id}",
        )
    return installation


@router.get("/{installation_id}", response_model=Installation)
def get_installation(
    installation_id: str,
    storage: MemStorage = Depends(get_storage),
) -> Installation:
    """Get one installation by id."""
    installation = storage.get_installation(installation_id)
    if installation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Installation {installation_id} not found",
        )
    return installation
