"""
Ride API Endpoints.

Booking, claiming and the rest of a ride's lifecycle:

    pending -> accepted -> completed
    pending | accepted -> cancelled

Every status change goes through a conditional write in the ride store, so
two drivers claiming the same ride can never both win.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from uride.app.db.session import get_db
from uride.app.models.enums import OnlineStatus, RideStatus, UserRole
from uride.app.domain.entities import MatchResult, NewRide, Ride, RideQuery
from uride.app.domain.fare import estimate_fare
from uride.app.domain.geo import Coordinate, haversine_distance
from uride.app.schemas.ride import (
    RideCreate, RideResponse, RideListResponse, FareResponse, NearbyDriverResponse,
    BookingResponse, ClaimResponse, RateRideRequest
)
from uride.app.core.dependencies import get_current_user
from uride.app.core.guards import require_driver, require_rider
from uride.app.core.exceptions import (
    DriverNotEligibleError, InsufficientPermissionsError, InvalidRideTransitionError,
    ResourceNotFoundError, RideAlreadyClaimedError
)
from uride.app.services.audit import log_actor_event, AuditAction
from uride.app.services.dispatch import DispatchService, get_dispatch_service
from uride.app.storage.base import RideStore
from uride.app.storage.factory import get_store

router = APIRouter(prefix="/rides", tags=["Rides"])


def nearby_driver_responses(matches: List[MatchResult]) -> List[NearbyDriverResponse]:
    return [
        NearbyDriverResponse(
            driver_id=m.driver.id,
            display_name=m.driver.display_name,
            distance_km=round(m.distance_km, 3),
            latitude=m.driver.last_known_location.latitude,
            longitude=m.driver.last_known_location.longitude,
            rating=m.driver.rating,
        )
        for m in matches
    ]


async def _get_ride_or_404(store: RideStore, ride_id: str) -> Ride:
    ride = await store.get_ride(ride_id)
    if not ride:
        raise ResourceNotFoundError("Ride", ride_id)
    return ride


async def _driver_id_for(store: RideStore, current_user: dict):
    if current_user.get("role") != UserRole.DRIVER.value:
        return None
    driver = await store.get_driver_for_user(current_user["user_id"])
    return driver.id if driver else None


async def _ensure_can_view(store: RideStore, ride: Ride, current_user: dict) -> None:
    """Admins, the ride's rider and its assigned driver may see a ride."""
    role = current_user.get("role")
    if role == UserRole.ADMIN.value:
        return
    if role == UserRole.RIDER.value and ride.rider_id == current_user["user_id"]:
        return
    if role == UserRole.DRIVER.value and ride.driver_id:
        if ride.driver_id == await _driver_id_for(store, current_user):
            return
    raise InsufficientPermissionsError("You do not have access to this ride")


@router.get("", response_model=RideListResponse)
async def list_my_rides(
    status_filter: RideStatus = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    store: RideStore = Depends(get_store)
):
    """
    List the caller's rides, newest first.

    Riders see rides they booked, drivers see rides assigned to them and
    admins see everything.
    """
    query = RideQuery(limit=limit, offset=offset)
    if status_filter:
        query.statuses = [status_filter]

    role = current_user.get("role")
    if role == UserRole.RIDER.value:
        query.rider_id = current_user["user_id"]
    elif role == UserRole.DRIVER.value:
        driver_id = await _driver_id_for(store, current_user)
        if not driver_id:
            return RideListResponse(rides=[], total=0)
        query.driver_id = driver_id

    rides = await store.list_rides(query)
    return RideListResponse(
        rides=[RideResponse.model_validate(r) for r in rides],
        total=await store.count_rides(query)
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_ride(
    booking: RideCreate,
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store),
    dispatcher: DispatchService = Depends(get_dispatch_service)
):
    """
    Book a ride.

    - Prices the trip from the great-circle pickup/destination distance
    - Creates the ride as pending
    - Finds the nearest eligible drivers; emergency rides are assigned to
      the nearest one straight away

    A booking with no drivers nearby still succeeds; the ride stays
    pending with drivers_available=false.
    """
    pickup = Coordinate(booking.pickup.latitude, booking.pickup.longitude)
    destination = Coordinate(booking.destination.latitude, booking.destination.longitude)
    distance_km = haversine_distance(pickup, destination)
    fare = estimate_fare(distance_km, booking.ride_type, booking.purpose)

    ride = await store.create_ride(
        NewRide(
            rider_id=current_user["user_id"],
            pickup=pickup,
            destination=destination,
            distance_km=fare.distance_km,
            estimated_fare=fare.total,
            purpose=booking.purpose,
            ride_type=booking.ride_type,
            pickup_address=booking.pickup.address,
            destination_address=booking.destination.address,
        )
    )

    outcome = await dispatcher.dispatch(ride)

    await log_actor_event(
        db, AuditAction.RIDE_REQUESTED, current_user,
        metadata={
            "ride_id": ride.id,
            "purpose": ride.purpose.value,
            "candidates": [m.driver.id for m in outcome.candidates],
            "search_radius_km": outcome.search_radius_km,
        }
    )

    if outcome.assigned_driver_id:
        await log_actor_event(
            db, AuditAction.RIDE_AUTO_ASSIGNED, current_user,
            metadata={"ride_id": ride.id, "driver_id": outcome.assigned_driver_id}
        )
        ride = await store.get_ride(ride.id)

    return BookingResponse(
        ride=RideResponse.model_validate(ride),
        fare=FareResponse.model_validate(fare),
        candidates=nearby_driver_responses(outcome.candidates),
        drivers_available=outcome.drivers_available,
        search_radius_km=outcome.search_radius_km,
        assigned_driver_id=outcome.assigned_driver_id
    )


@router.get("/{ride_id}", response_model=RideResponse)
async def get_ride(
    ride_id: str,
    current_user: dict = Depends(get_current_user),
    store: RideStore = Depends(get_store)
):
    ride = await _get_ride_or_404(store, ride_id)
    await _ensure_can_view(store, ride, current_user)
    return RideResponse.model_validate(ride)


@router.post("/{ride_id}/claim", response_model=ClaimResponse)
async def claim_ride(
    ride_id: str,
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store),
    dispatcher: DispatchService = Depends(get_dispatch_service)
):
    """
    Accept a pending ride.

    Only one driver can win: if the ride was already claimed (or cancelled)
    the response is 409 and the ride is left untouched. The driver must be
    active, approved and online, as for matching.
    """
    driver = await store.get_driver_for_user(current_user["user_id"])
    if not driver or not driver.is_active or not driver.is_approved:
        raise DriverNotEligibleError()
    if driver.online_status != OnlineStatus.ONLINE:
        raise DriverNotEligibleError("Driver must be online to claim rides")

    await _get_ride_or_404(store, ride_id)

    result = await dispatcher.claim(ride_id, driver.id)
    if not result.success:
        await log_actor_event(
            db, AuditAction.RIDE_CLAIM_REJECTED, current_user,
            metadata={"ride_id": ride_id, "driver_id": driver.id}
        )
        raise RideAlreadyClaimedError(ride_id)

    await log_actor_event(
        db, AuditAction.RIDE_CLAIMED, current_user,
        metadata={"ride_id": ride_id, "driver_id": driver.id}
    )

    ride = await store.get_ride(ride_id)
    return ClaimResponse(success=True, ride=RideResponse.model_validate(ride))


@router.post("/{ride_id}/cancel", response_model=RideResponse)
async def cancel_ride(
    ride_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """Cancel a pending or accepted ride (its rider, its driver, or an admin)."""
    ride = await _get_ride_or_404(store, ride_id)
    await _ensure_can_view(store, ride, current_user)

    changed = await store.conditional_transition(
        ride_id,
        expected=[RideStatus.PENDING, RideStatus.ACCEPTED],
        new_status=RideStatus.CANCELLED,
    )
    if not changed:
        raise InvalidRideTransitionError(ride_id, "cancelled")

    await log_actor_event(
        db, AuditAction.RIDE_CANCELLED, current_user,
        target_user_id=ride.rider_id,
        metadata={"ride_id": ride_id, "previous_status": ride.status.value}
    )

    return RideResponse.model_validate(await store.get_ride(ride_id))


@router.post("/{ride_id}/complete", response_model=RideResponse)
async def complete_ride(
    ride_id: str,
    current_user: dict = Depends(require_driver),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """Finish an accepted ride (assigned driver only)."""
    ride = await _get_ride_or_404(store, ride_id)
    driver_id = await _driver_id_for(store, current_user)
    if not driver_id or ride.driver_id != driver_id:
        raise InsufficientPermissionsError("Only the assigned driver can complete this ride")

    changed = await store.conditional_transition(
        ride_id,
        expected=[RideStatus.ACCEPTED],
        new_status=RideStatus.COMPLETED,
        driver_id=driver_id,
    )
    if not changed:
        raise InvalidRideTransitionError(ride_id, "completed")

    await log_actor_event(
        db, AuditAction.RIDE_COMPLETED, current_user,
        target_user_id=ride.rider_id,
        metadata={"ride_id": ride_id, "fare": ride.estimated_fare}
    )

    return RideResponse.model_validate(await store.get_ride(ride_id))


@router.post("/{ride_id}/rate", response_model=RideResponse)
async def rate_ride(
    ride_id: str,
    payload: RateRideRequest,
    current_user: dict = Depends(require_rider),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """Rate a completed ride once (its rider only)."""
    ride = await _get_ride_or_404(store, ride_id)
    if ride.rider_id != current_user["user_id"]:
        raise InsufficientPermissionsError("Only the rider can rate this ride")

    if not await store.set_ride_rating(ride_id, ride.rider_id, payload.rating):
        raise InvalidRideTransitionError(ride_id, "rated")

    await log_actor_event(
        db, AuditAction.RIDE_RATED, current_user,
        metadata={"ride_id": ride_id, "rating": payload.rating, "driver_id": ride.driver_id}
    )

    return RideResponse.model_validate(await store.get_ride(ride_id))
