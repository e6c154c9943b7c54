"""
In-memory ride store for local development and tests.

State lives in instance dicts, never module globals, so each store is
isolated. Conditional writes check and set inside one lock-held block with
no await in between, which makes them atomic on the event loop.
"""

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from uride.app.domain.entities import Driver, NewRide, Ride, RideQuery, running_average
from uride.app.domain.geo import Coordinate
from uride.app.models.enums import DriverType, OnlineStatus, RideStatus
from uride.app.storage.base import TRANSITION_TIMESTAMPS


class MemoryRideStore:

    def __init__(self):
        self._drivers: Dict[str, Driver] = {}
        self._rides: Dict[str, Ride] = {}
        self._lock = asyncio.Lock()

    # Drivers

    async def get_eligible_drivers(self) -> List[Driver]:
        return [d for d in self._drivers.values() if d.is_eligible]

    async def get_driver(self, driver_id: str) -> Optional[Driver]:
        return self._drivers.get(driver_id)

    async def get_driver_for_user(self, user_id: int) -> Optional[Driver]:
        for driver in self._drivers.values():
            if driver.user_id == user_id:
                return driver
        return None

    async def create_driver(
        self,
        user_id: int,
        display_name: str,
        driver_type: DriverType = DriverType.OWNER,
        vehicle_number: Optional[str] = None,
    ) -> Driver:
        driver = Driver(
            id=str(uuid.uuid4()),
            display_name=display_name,
            is_active=True,
            is_approved=False,
            online_status=OnlineStatus.OFFLINE,
            user_id=user_id,
            driver_type=driver_type,
            vehicle_number=vehicle_number,
        )
        self._drivers[driver.id] = driver
        return driver

    def add_driver(self, driver: Driver) -> None:
        """Insert a fully formed driver (seeding and tests)."""
        self._drivers[driver.id] = driver

    async def _update_driver(self, driver_id: str, **changes) -> bool:
        async with self._lock:
            driver = self._drivers.get(driver_id)
            if driver is None:
                return False
            self._drivers[driver_id] = replace(driver, **changes)
            return True

    async def update_driver_location(self, driver_id: str, location: Coordinate) -> bool:
        return await self._update_driver(
            driver_id,
            last_known_location=location,
            location_updated_at=datetime.now(timezone.utc),
        )

    async def set_driver_online_status(self, driver_id: str, status: OnlineStatus) -> bool:
        return await self._update_driver(driver_id, online_status=status)

    async def set_driver_approval(self, driver_id: str, approved: bool) -> bool:
        return await self._update_driver(driver_id, is_approved=approved)

    async def set_driver_active(self, driver_id: str, active: bool) -> bool:
        return await self._update_driver(driver_id, is_active=active)

    # Rides

    async def create_ride(self, ride: NewRide) -> Ride:
        created = Ride(
            id=str(uuid.uuid4()),
            rider_id=ride.rider_id,
            pickup=ride.pickup,
            destination=ride.destination,
            pickup_address=ride.pickup_address,
            destination_address=ride.destination_address,
            status=RideStatus.PENDING,
            purpose=ride.purpose,
            ride_type=ride.ride_type,
            distance_km=ride.distance_km,
            estimated_fare=ride.estimated_fare,
            requested_at=datetime.now(timezone.utc),
        )
        self._rides[created.id] = created
        return created

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        return self._rides.get(ride_id)

    def _matching(self, query: RideQuery) -> List[Ride]:
        rides = [
            r for r in self._rides.values()
            if (query.rider_id is None or r.rider_id == query.rider_id)
            and (query.driver_id is None or r.driver_id == query.driver_id)
            and (not query.statuses or r.status in query.statuses)
        ]
        rides.sort(key=lambda r: r.id)
        rides.sort(key=lambda r: r.requested_at, reverse=True)
        return rides

    async def list_rides(self, query: RideQuery) -> List[Ride]:
        return self._matching(query)[query.offset:query.offset + query.limit]

    async def count_rides(self, query: RideQuery) -> int:
        return len(self._matching(query))

    async def conditional_claim(self, ride_id: str, driver_id: str) -> bool:
        async with self._lock:
            ride = self._rides.get(ride_id)
            if ride is None or ride.status != RideStatus.PENDING:
                return False
            self._rides[ride_id] = replace(
                ride,
                status=RideStatus.ACCEPTED,
                driver_id=driver_id,
                accepted_at=datetime.now(timezone.utc),
            )
            return True

    async def conditional_transition(
        self,
        ride_id: str,
        expected: Iterable[RideStatus],
        new_status: RideStatus,
        driver_id: Optional[str] = None,
    ) -> bool:
        expected = set(expected)
        async with self._lock:
            ride = self._rides.get(ride_id)
            if ride is None or ride.status not in expected:
                return False
            if driver_id is not None and ride.driver_id != driver_id:
                return False

            changes = {"status": new_status}
            stamp = TRANSITION_TIMESTAMPS.get(new_status)
            if stamp:
                changes[stamp] = datetime.now(timezone.utc)
            self._rides[ride_id] = replace(ride, **changes)

            driver = self._drivers.get(ride.driver_id)
            if new_status == RideStatus.COMPLETED and driver is not None:
                self._drivers[driver.id] = replace(
                    driver,
                    total_rides=driver.total_rides + 1,
                    total_earnings=driver.total_earnings + ride.estimated_fare,
                    total_km=driver.total_km + ride.distance_km,
                )
            return True

    async def set_ride_rating(self, ride_id: str, rider_id: int, rating: int) -> bool:
        async with self._lock:
            ride = self._rides.get(ride_id)
            if (
                ride is None
                or ride.rider_id != rider_id
                or ride.status != RideStatus.COMPLETED
                or ride.rating is not None
            ):
                return False
            self._rides[ride_id] = replace(ride, rating=rating)

            driver = self._drivers.get(ride.driver_id)
            if driver is not None:
                self._drivers[driver.id] = replace(
                    driver,
                    rating=running_average(driver.rating, driver.rating_count, rating),
                    rating_count=driver.rating_count + 1,
                )
            return True
