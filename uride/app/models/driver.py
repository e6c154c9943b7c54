"""
Driver database model.

Backs the SQL ride store. A driver row is the operational profile of a
DRIVER user: status flags checked by matching and the last location ping.
"""

import uuid

from sqlalchemy import Column, Integer, String, Boolean, Float, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from uride.app.db.session import Base
from uride.app.models.enums import OnlineStatus, DriverType


def _new_id() -> str:
    return str(uuid.uuid4())


class Driver(Base):
    """
    Driver model.

    A driver is matchable only while active, approved, online and with a
    known location. Latitude and longitude are both NULL until the first ping.
    """
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Integer, ForeignKey('users.id'), unique=True, nullable=False, index=True)
    display_name = Column(String(150), nullable=False)

    # Eligibility flags
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False, index=True)
    online_status = Column(Enum(OnlineStatus), default=OnlineStatus.OFFLINE, nullable=False, index=True)

    # Last known location
    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Profile
    driver_type = Column(Enum(DriverType), default=DriverType.OWNER, nullable=False)
    vehicle_number = Column(String(30), nullable=True)
    rating = Column(Float, default=5.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    total_rides = Column(Integer, default=0, nullable=False)
    total_earnings = Column(Float, default=0.0, nullable=False)
    total_km = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.display_name}', status='{self.online_status.value}')>"
