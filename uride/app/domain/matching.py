"""
Nearby-driver matching.

Pure functions over drivers that were already fetched; nothing here does I/O.
"""

from typing import Iterable, List, Optional

from uride.app.domain.entities import Driver, MatchResult
from uride.app.domain.geo import Coordinate, haversine_distance


def find_nearby(
    pickup: Coordinate,
    drivers: Iterable[Driver],
    radius_km: float,
    limit: Optional[int] = None,
) -> List[MatchResult]:
    """
    Rank eligible drivers within `radius_km` of the pickup, nearest first.

    Ineligible drivers and drivers without a location are skipped, not
    reported. Equal distances are ordered by driver id so repeated calls on
    the same input return the same order.

    Args:
        pickup: Pickup coordinate
        drivers: Candidate drivers, in any order
        radius_km: Inclusive search radius
        limit: Keep only the first N results (None keeps all)

    Returns:
        Possibly empty list of MatchResult
    """
    matches = []
    for driver in drivers:
        if not driver.is_eligible:
            continue

        distance_km = haversine_distance(pickup, driver.last_known_location)
        if distance_km > radius_km:
            continue

        matches.append(MatchResult(driver=driver, distance_km=distance_km))

    matches.sort(key=lambda m: (m.distance_km, m.driver.id))

    if limit is not None:
        return matches[:limit]
    return matches


def find_nearest(
    pickup: Coordinate,
    drivers: Iterable[Driver],
    radius_km: float,
) -> Optional[MatchResult]:
    matches = find_nearby(pickup, drivers, radius_km, limit=1)
    return matches[0] if matches else None


def search_expanding(
    pickup: Coordinate,
    drivers: Iterable[Driver],
    start_radius_km: float,
    max_radius_km: float,
    step_km: float,
    limit: Optional[int] = None,
) -> tuple[List[MatchResult], float]:
    """
    Widen the search circle until someone is found or the maximum is passed.

    Returns:
        (matches, radius_km) where radius_km is the radius that produced the
        matches, or the last radius tried when matches is empty
    """
    drivers = list(drivers)
    radius_km = start_radius_km

    while True:
        matches = find_nearby(pickup, drivers, radius_km, limit=limit)
        if matches or radius_km >= max_radius_km or step_km <= 0:
            return matches, radius_km
        radius_km = min(radius_km + step_km, max_radius_km)
