"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional
from uride.app.models.enums import UserRole, MemberLevel, DriverType


class UserSignup(BaseModel):
    """
    Schema for self-service signup.

    Used by POST /api/auth/signup. Riders by default; drivers also get a
    driver profile that starts unapproved.
    """
    email: EmailStr = Field(..., description="User email address")
    name: str = Field(..., min_length=1, max_length=150, description="Full name")
    phone: Optional[str] = Field(None, max_length=30)
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    role: UserRole = Field(default=UserRole.RIDER, description="RIDER or DRIVER")
    driver_type: DriverType = Field(default=DriverType.OWNER, description="Drivers only")
    vehicle_number: Optional[str] = Field(None, max_length=30, description="Drivers only")


class UserLogin(BaseModel):
    """Schema for user login (POST /api/auth/login)."""
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    """
    Schema for JWT token response.

    Returned by successful login/signup operations.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str
    role: UserRole = Field(..., description="User role")
    driver_id: Optional[str] = Field(default=None, description="Driver profile ID (for Drivers)")


class UserResponse(BaseModel):
    """Schema for user information response."""
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    role: UserRole
    member_level: MemberLevel
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class LogoutResponse(BaseModel):
    revoked: bool
