"""
Dispatch policy.

How far to look for drivers and how many of them a ride is offered to.
Passed explicitly to the dispatch service so the strategy is never a
hidden constant.
"""

from dataclasses import dataclass

from uride.app.core.config import Settings, settings as default_settings


@dataclass(frozen=True)
class DispatchPolicy:
    search_radius_km: float = 5.0
    max_search_radius_km: float = 15.0
    radius_step_km: float = 2.0
    notify_top_n: int = 3
    emergency_radius_km: float = 3.0

    def __post_init__(self):
        if self.search_radius_km < 0 or self.emergency_radius_km < 0:
            raise ValueError("Search radii must be non-negative")
        if self.max_search_radius_km < self.search_radius_km:
            raise ValueError("max_search_radius_km must be >= search_radius_km")
        if self.notify_top_n < 1:
            raise ValueError("notify_top_n must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "DispatchPolicy":
        return cls(
            search_radius_km=settings.search_radius_km,
            max_search_radius_km=settings.max_search_radius_km,
            radius_step_km=settings.radius_step_km,
            notify_top_n=settings.notify_top_n,
            emergency_radius_km=settings.emergency_radius_km,
        )
