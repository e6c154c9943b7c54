"""
Ride and booking schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from uride.app.models.enums import RideStatus, RidePurpose, RideType


class CoordinateSchema(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    class Config:
        from_attributes = True


class BookingLocation(CoordinateSchema):
    address: Optional[str] = Field(None, max_length=255)


class RideCreate(BaseModel):
    """Schema for booking a ride (POST /api/rides)."""
    pickup: BookingLocation
    destination: BookingLocation
    ride_type: RideType = RideType.ECONOMY
    purpose: RidePurpose = RidePurpose.GENERAL


class RideResponse(BaseModel):
    id: str
    rider_id: int
    driver_id: Optional[str] = None
    pickup: CoordinateSchema
    destination: CoordinateSchema
    pickup_address: Optional[str] = None
    destination_address: Optional[str] = None
    status: RideStatus
    purpose: RidePurpose
    ride_type: RideType
    distance_km: float
    estimated_fare: float
    rating: Optional[int] = None
    requested_at: datetime
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RideListResponse(BaseModel):
    rides: List[RideResponse]
    total: int


class FareResponse(BaseModel):
    distance_km: float
    base_fare: int
    night_multiplier: float
    emergency_multiplier: float
    night_surcharge: bool
    total: int

    class Config:
        from_attributes = True


class NearbyDriverResponse(BaseModel):
    """One matcher result: an eligible driver and their distance to the pickup."""
    driver_id: str
    display_name: str
    distance_km: float
    latitude: float
    longitude: float
    rating: float


class BookingResponse(BaseModel):
    """Response after booking a ride."""
    ride: RideResponse
    fare: FareResponse
    candidates: List[NearbyDriverResponse]
    drivers_available: bool
    search_radius_km: float
    assigned_driver_id: Optional[str] = None


class ClaimResponse(BaseModel):
    success: bool
    ride: RideResponse


class RateRideRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
