"""
Storage-neutral domain objects.

Every ride store backend (SQL, Firestore, memory) reads and writes these,
so ids are strings regardless of how the backend generates them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from uride.app.domain.geo import Coordinate
from uride.app.models.enums import (
    OnlineStatus, DriverType, RideStatus, RidePurpose, RideType
)


@dataclass(frozen=True)
class Driver:
    id: str
    display_name: str
    is_active: bool
    is_approved: bool
    online_status: OnlineStatus
    last_known_location: Optional[Coordinate] = None
    user_id: Optional[int] = None
    driver_type: DriverType = DriverType.OWNER
    vehicle_number: Optional[str] = None
    rating: float = 5.0
    rating_count: int = 0
    total_rides: int = 0
    total_earnings: float = 0.0
    total_km: float = 0.0
    location_updated_at: Optional[datetime] = None

    @property
    def is_eligible(self) -> bool:
        """Active, approved, online and with a known location."""
        return (
            self.is_active
            and self.is_approved
            and self.online_status == OnlineStatus.ONLINE
            and self.last_known_location is not None
        )


def running_average(current: float, count: int, new_value: float) -> float:
    """Fold `new_value` into an average taken over `count` values.

    A driver starts at the default rating with no ratings counted, so the
    first real rating replaces it outright.
    """
    return (current * count + new_value) / (count + 1)


@dataclass(frozen=True)
class NewRide:
    """Everything a store needs to insert a ride; status starts PENDING."""
    rider_id: int
    pickup: Coordinate
    destination: Coordinate
    distance_km: float
    estimated_fare: float
    purpose: RidePurpose = RidePurpose.GENERAL
    ride_type: RideType = RideType.ECONOMY
    pickup_address: Optional[str] = None
    destination_address: Optional[str] = None


@dataclass(frozen=True)
class Ride:
    id: str
    rider_id: int
    pickup: Coordinate
    destination: Coordinate
    status: RideStatus
    purpose: RidePurpose
    ride_type: RideType
    distance_km: float
    estimated_fare: float
    requested_at: datetime
    driver_id: Optional[str] = None
    pickup_address: Optional[str] = None
    destination_address: Optional[str] = None
    rating: Optional[int] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


@dataclass(frozen=True)
class MatchResult:
    driver: Driver
    distance_km: float


@dataclass
class RideQuery:
    """Filters for listing rides; unset fields are not filtered on."""
    rider_id: Optional[int] = None
    driver_id: Optional[str] = None
    statuses: list[RideStatus] = field(default_factory=list)
    limit: int = 50
    offset: int = 0
