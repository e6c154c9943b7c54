"""
Rider statistics for the profile screen.
"""

from typing import Iterable

from uride.app.domain.entities import Ride, RideQuery
from uride.app.models.enums import RideStatus
from uride.app.models.user import User
from uride.app.schemas.admin import UserStatsResponse
from uride.app.storage.base import RideStore

# Upper bound on rides folded into the profile stats
STATS_RIDE_LIMIT = 1000


def summarize_rides(rides: Iterable[Ride]) -> tuple[int, float, float]:
    """
    Returns:
        (total_rides, total_spent, average_rating) over completed rides.
        Unrated rides count as 0 in the average.
    """
    completed = [r for r in rides if r.status == RideStatus.COMPLETED]
    total = len(completed)
    if total == 0:
        return 0, 0.0, 0.0

    spent = sum(r.estimated_fare for r in completed)
    ratings = sum(r.rating or 0 for r in completed)
    return total, round(spent, 2), round(ratings / total, 2)


async def get_user_stats(store: RideStore, user: User) -> UserStatsResponse:
    rides = await store.list_rides(
        RideQuery(
            rider_id=user.id,
            statuses=[RideStatus.COMPLETED],
            limit=STATS_RIDE_LIMIT,
        )
    )
    total, spent, average = summarize_rides(rides)

    return UserStatsResponse(
        total_rides=total,
        total_spent=spent,
        average_rating=average,
        member_level=user.member_level,
        join_date=user.created_at,
    )
