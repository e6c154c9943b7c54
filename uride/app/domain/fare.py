"""
Fare estimation.

Slab fare: a minimum fare covers the first few km, then a flat rate per km.
The ride type scales the base; night and emergency surcharges multiply on top.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from uride.app.core.config import settings
from uride.app.models.enums import RidePurpose, RideType

RIDE_TYPE_MULTIPLIERS = {
    RideType.ECONOMY: 1.0,
    RideType.PREMIUM: 1.5,
    RideType.SUV: 2.0,
    RideType.LUXURY: 3.3,
}

NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 5


@dataclass(frozen=True)
class FareEstimate:
    distance_km: float
    base_fare: int
    night_multiplier: float
    emergency_multiplier: float
    total: int

    @property
    def night_surcharge(self) -> bool:
        return self.night_multiplier > 1


def is_night(at: datetime) -> bool:
    return at.hour >= NIGHT_START_HOUR or at.hour < NIGHT_END_HOUR


def estimate_fare(
    distance_km: float,
    ride_type: RideType = RideType.ECONOMY,
    purpose: RidePurpose = RidePurpose.GENERAL,
    at: Optional[datetime] = None,
) -> FareEstimate:
    """
    Estimate the fare for a ride.

    Args:
        distance_km: Trip distance
        ride_type: Vehicle class
        purpose: Emergency rides carry a surcharge
        at: Local booking time (defaults to now)

    Returns:
        FareEstimate with whole-unit base fare and total
    """
    at = at or datetime.now()
    multiplier = RIDE_TYPE_MULTIPLIERS[ride_type]

    if distance_km <= settings.minimum_fare_km:
        base = settings.minimum_fare * multiplier
    else:
        extra_km = distance_km - settings.minimum_fare_km
        base = (settings.minimum_fare + extra_km * settings.rate_per_km) * multiplier

    night = settings.night_multiplier if is_night(at) else 1.0
    emergency = settings.emergency_multiplier if purpose == RidePurpose.EMERGENCY else 1.0

    return FareEstimate(
        distance_km=round(distance_km, 2),
        base_fare=round(base),
        night_multiplier=night,
        emergency_multiplier=emergency,
        total=round(base * night * emergency),
    )
