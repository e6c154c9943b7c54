"""
Driver API Endpoints.

Nearby-driver search for the rider app, and presence updates (location
pings and online/offline) for the driver app.
"""

from fastapi import APIRouter, Depends, Query

from uride.app.domain.entities import Driver
from uride.app.domain.geo import Coordinate
from uride.app.schemas.driver import (
    DriverResponse, LocationUpdate, StatusUpdate, NearbyDriversResponse
)
from uride.app.core.dependencies import get_current_user
from uride.app.core.guards import require_driver
from uride.app.core.exceptions import ResourceNotFoundError
from uride.app.services.dispatch import DispatchService, get_dispatch_service
from uride.app.storage.base import RideStore
from uride.app.storage.factory import get_store
from uride.app.api.v1.endpoints.rides import nearby_driver_responses

router = APIRouter(prefix="/drivers", tags=["Drivers"])


async def _current_driver(store: RideStore, current_user: dict) -> Driver:
    driver = await store.get_driver_for_user(current_user["user_id"])
    if not driver:
        raise ResourceNotFoundError("Driver profile")
    return driver


@router.get("/nearby", response_model=NearbyDriversResponse)
async def nearby_drivers(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(None, ge=0, description="Defaults to the dispatch search radius"),
    limit: int = Query(None, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    dispatcher: DispatchService = Depends(get_dispatch_service)
):
    """
    Eligible drivers within `radius_km` of a point, nearest first.

    Only active, approved, online drivers with a known location are listed.
    """
    if radius_km is None:
        radius_km = dispatcher.policy.search_radius_km

    matches = await dispatcher.find_nearby_drivers(
        Coordinate(lat, lng), radius_km=radius_km, limit=limit
    )

    return NearbyDriversResponse(
        latitude=lat,
        longitude=lng,
        radius_km=radius_km,
        drivers=nearby_driver_responses(matches),
        total=len(matches)
    )


@router.get("/me", response_model=DriverResponse)
async def get_my_driver_profile(
    current_user: dict = Depends(require_driver),
    store: RideStore = Depends(get_store)
):
    return DriverResponse.model_validate(await _current_driver(store, current_user))


@router.put("/me/location", response_model=DriverResponse)
async def update_my_location(
    location: LocationUpdate,
    current_user: dict = Depends(require_driver),
    store: RideStore = Depends(get_store)
):
    """Record the driver's latest GPS position."""
    driver = await _current_driver(store, current_user)
    await store.update_driver_location(
        driver.id, Coordinate(location.latitude, location.longitude)
    )
    return DriverResponse.model_validate(await store.get_driver(driver.id))


@router.put("/me/status", response_model=DriverResponse)
async def update_my_status(
    update: StatusUpdate,
    current_user: dict = Depends(require_driver),
    store: RideStore = Depends(get_store)
):
    """Go online or offline. Offline drivers are never matched."""
    driver = await _current_driver(store, current_user)
    await store.set_driver_online_status(driver.id, update.online_status)
    return DriverResponse.model_validate(await store.get_driver(driver.id))
