"""
Dispatch service.

Connects the ride store to the pure matcher. Fetches eligible drivers once
per request, ranks them under the configured DispatchPolicy, and hands rides
to drivers only through the store's conditional claim.

General rides are offered to the nearest `notify_top_n` drivers found in an
expanding search. Emergency rides are auto-assigned to the nearest driver.
Rides nobody is found for stay PENDING; there is no retry or timed re-offer.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends

from uride.app.domain.dispatch_policy import DispatchPolicy
from uride.app.domain.entities import MatchResult, Ride
from uride.app.domain.geo import Coordinate
from uride.app.domain.matching import find_nearby, search_expanding
from uride.app.models.enums import RidePurpose
from uride.app.storage.base import RideStore
from uride.app.storage.factory import get_store

logger = logging.getLogger("uride.dispatch")


@dataclass
class DispatchOutcome:
    candidates: List[MatchResult] = field(default_factory=list)
    search_radius_km: float = 0.0
    assigned_driver_id: Optional[str] = None

    @property
    def drivers_available(self) -> bool:
        return bool(self.candidates)


@dataclass(frozen=True)
class ClaimResult:
    success: bool
    ride_id: str
    driver_id: str


class DispatchService:

    def __init__(self, store: RideStore, policy: DispatchPolicy):
        self.store = store
        self.policy = policy

    async def find_nearby_drivers(
        self,
        pickup: Coordinate,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[MatchResult]:
        if radius_km is None:
            radius_km = self.policy.search_radius_km
        drivers = await self.store.get_eligible_drivers()
        return find_nearby(pickup, drivers, radius_km, limit=limit)

    async def dispatch(self, ride: Ride) -> DispatchOutcome:
        """
        Find drivers for a freshly created ride.

        Returns:
            DispatchOutcome; empty candidates means no driver was available
        """
        drivers = await self.store.get_eligible_drivers()

        if ride.purpose == RidePurpose.EMERGENCY:
            return await self._dispatch_emergency(ride, drivers)

        candidates, radius_km = search_expanding(
            ride.pickup,
            drivers,
            start_radius_km=self.policy.search_radius_km,
            max_radius_km=self.policy.max_search_radius_km,
            step_km=self.policy.radius_step_km,
            limit=self.policy.notify_top_n,
        )

        if candidates:
            logger.info(
                "Ride %s offered to %d driver(s) within %.1f km",
                ride.id, len(candidates), radius_km
            )
        else:
            logger.warning("No drivers within %.1f km for ride %s", radius_km, ride.id)

        return DispatchOutcome(candidates=candidates, search_radius_km=radius_km)

    async def _dispatch_emergency(self, ride: Ride, drivers) -> DispatchOutcome:
        radius_km = self.policy.emergency_radius_km
        candidates = find_nearby(ride.pickup, drivers, radius_km, limit=1)

        if not candidates:
            radius_km = self.policy.max_search_radius_km
            candidates = find_nearby(ride.pickup, drivers, radius_km, limit=1)

        outcome = DispatchOutcome(candidates=candidates, search_radius_km=radius_km)
        if not candidates:
            logger.warning("No drivers for emergency ride %s", ride.id)
            return outcome

        nearest = candidates[0].driver
        result = await self.claim(ride.id, nearest.id)
        if result.success:
            outcome.assigned_driver_id = nearest.id
        return outcome

    async def claim(self, ride_id: str, driver_id: str) -> ClaimResult:
        """
        Hand the ride to `driver_id` if it is still pending.

        Exactly one of several concurrent callers gets success=True.
        """
        success = await self.store.conditional_claim(ride_id, driver_id)
        if success:
            logger.info("Ride %s claimed by driver %s", ride_id, driver_id)
        return ClaimResult(success=success, ride_id=ride_id, driver_id=driver_id)


def get_dispatch_policy() -> DispatchPolicy:
    return DispatchPolicy.from_settings()


async def get_dispatch_service(
    store: RideStore = Depends(get_store),
    policy: DispatchPolicy = Depends(get_dispatch_policy),
) -> DispatchService:
    return DispatchService(store, policy)
