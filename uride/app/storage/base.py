"""
Ride store capability interface.

Backends satisfy `RideStore` structurally; none of them inherit from it.
Every ride status change is a conditional write: the store applies it only
if the ride is still in one of the expected statuses and reports whether it
did. Callers never read a ride and then write it back.
"""

from typing import Iterable, List, Optional, Protocol, runtime_checkable

from uride.app.domain.entities import Driver, NewRide, Ride, RideQuery
from uride.app.domain.geo import Coordinate
from uride.app.models.enums import DriverType, OnlineStatus, RideStatus


@runtime_checkable
class RideStore(Protocol):

    # Drivers

    async def get_eligible_drivers(self) -> List[Driver]:
        """Drivers that are active, approved, online and have a location."""
        ...

    async def get_driver(self, driver_id: str) -> Optional[Driver]:
        ...

    async def get_driver_for_user(self, user_id: int) -> Optional[Driver]:
        ...

    async def create_driver(
        self,
        user_id: int,
        display_name: str,
        driver_type: DriverType = DriverType.OWNER,
        vehicle_number: Optional[str] = None,
    ) -> Driver:
        """New drivers start unapproved and offline."""
        ...

    async def update_driver_location(self, driver_id: str, location: Coordinate) -> bool:
        ...

    async def set_driver_online_status(self, driver_id: str, status: OnlineStatus) -> bool:
        ...

    async def set_driver_approval(self, driver_id: str, approved: bool) -> bool:
        ...

    async def set_driver_active(self, driver_id: str, active: bool) -> bool:
        """Follows the owning user's block/unblock."""
        ...

    # Rides

    async def create_ride(self, ride: NewRide) -> Ride:
        ...

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        ...

    async def list_rides(self, query: RideQuery) -> List[Ride]:
        """Matching rides, newest first."""
        ...

    async def count_rides(self, query: RideQuery) -> int:
        ...

    async def conditional_claim(self, ride_id: str, driver_id: str) -> bool:
        """
        Atomically move a PENDING ride to ACCEPTED for `driver_id`.

        Returns False when the ride does not exist or is no longer PENDING.
        """
        ...

    async def conditional_transition(
        self,
        ride_id: str,
        expected: Iterable[RideStatus],
        new_status: RideStatus,
        driver_id: Optional[str] = None,
    ) -> bool:
        """
        Atomically set `new_status` if the ride's status is in `expected`
        (and, when given, the ride is assigned to `driver_id`).

        Completing a ride adds its fare and distance to the driver's totals.
        """
        ...

    async def set_ride_rating(self, ride_id: str, rider_id: int, rating: int) -> bool:
        """
        Rate a COMPLETED, not yet rated ride belonging to `rider_id`.

        The assigned driver's average rating is updated in the same write.
        """
        ...


# Column/field stamped with the current time when a ride enters each status
TRANSITION_TIMESTAMPS = {
    RideStatus.ACCEPTED: "accepted_at",
    RideStatus.COMPLETED: "completed_at",
    RideStatus.CANCELLED: "cancelled_at",
}
