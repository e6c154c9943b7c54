"""
Enumerations shared by models, domain objects and schemas.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Approves drivers, sees every user and ride
        RIDER: Books rides (default role)
        DRIVER: Goes online, receives and claims rides
    """
    ADMIN = "ADMIN"
    RIDER = "RIDER"
    DRIVER = "DRIVER"


class MemberLevel(str, enum.Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"


class OnlineStatus(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class DriverType(str, enum.Enum):
    """Vehicle owners earn commission; fleet drivers are paid per km."""
    OWNER = "owner"
    FLEET = "fleet"


class RideStatus(str, enum.Enum):
    """Ride status enumeration."""
    PENDING = "pending"  # Booked, waiting for a driver to claim it
    ACCEPTED = "accepted"  # Claimed by exactly one driver
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RidePurpose(str, enum.Enum):
    GENERAL = "general"  # Offered to the nearest drivers
    EMERGENCY = "emergency"  # Auto-assigned to the nearest driver


class RideType(str, enum.Enum):
    ECONOMY = "economy"
    PREMIUM = "premium"
    SUV = "suv"
    LUXURY = "luxury"
