"""
Driver presence schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from uride.app.models.enums import OnlineStatus, DriverType
from uride.app.schemas.ride import CoordinateSchema, NearbyDriverResponse


class LocationUpdate(CoordinateSchema):
    """Schema for a driver location ping."""
    pass


class StatusUpdate(BaseModel):
    online_status: OnlineStatus


class DriverResponse(BaseModel):
    id: str
    user_id: Optional[int] = None
    display_name: str
    is_active: bool
    is_approved: bool
    online_status: OnlineStatus
    last_known_location: Optional[CoordinateSchema] = None
    location_updated_at: Optional[datetime] = None
    driver_type: DriverType
    vehicle_number: Optional[str] = None
    rating: float
    rating_count: int
    total_rides: int
    total_earnings: float
    total_km: float
    is_eligible: bool

    class Config:
        from_attributes = True


class NearbyDriversResponse(BaseModel):
    latitude: float
    longitude: float
    radius_km: float
    drivers: List[NearbyDriverResponse]
    total: int


class DriverApprovalRequest(BaseModel):
    approved: bool = Field(default=True, description="False suspends the driver")
