"""
Ride database model.

Backs the SQL ride store. Status changes are only ever made through
status-gated UPDATE statements (see `uride.app.storage.sql_store`).
"""

import uuid

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from uride.app.db.session import Base
from uride.app.models.enums import RideStatus, RidePurpose, RideType


class Ride(Base):
    """Ride request model, created once per booking attempt."""
    __tablename__ = "rides"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    rider_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    driver_id = Column(String(36), ForeignKey('drivers.id'), nullable=True, index=True)

    # Pickup / destination
    pickup_latitude = Column(Float, nullable=False)
    pickup_longitude = Column(Float, nullable=False)
    pickup_address = Column(String(255), nullable=True)
    destination_latitude = Column(Float, nullable=False)
    destination_longitude = Column(Float, nullable=False)
    destination_address = Column(String(255), nullable=True)

    status = Column(Enum(RideStatus), default=RideStatus.PENDING, nullable=False, index=True)
    purpose = Column(Enum(RidePurpose), default=RidePurpose.GENERAL, nullable=False)
    ride_type = Column(Enum(RideType), default=RideType.ECONOMY, nullable=False)

    distance_km = Column(Float, nullable=False)
    estimated_fare = Column(Float, nullable=False)
    rating = Column(Integer, nullable=True)

    requested_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Ride(id={self.id}, rider_id={self.rider_id}, status='{self.status.value}')>"
