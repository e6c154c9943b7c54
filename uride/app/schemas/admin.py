"""
Admin and user-management schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from uride.app.models.enums import UserRole, MemberLevel
from uride.app.schemas.auth import UserResponse


class UserCreate(BaseModel):
    """Admin-created account (POST /api/users); any role allowed."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.RIDER
    member_level: MemberLevel = MemberLevel.BRONZE


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserResponse]
    total: int
    page: int
    page_size: int


class BlockUserRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Reason (for audit log)")


class AdminActionResponse(BaseModel):
    """Schema for admin action response."""
    success: bool
    message: str
    action: str
    audit_log_id: int
    user_id: Optional[int] = None
    driver_id: Optional[str] = None


class UserStatsResponse(BaseModel):
    total_rides: int
    total_spent: float
    average_rating: float
    member_level: MemberLevel
    join_date: datetime


class UserDataResponse(BaseModel):
    """Profile plus ride statistics (GET /api/user/{id}/data)."""
    user: UserResponse
    stats: UserStatsResponse


class AuditLogResponse(BaseModel):
    id: int
    actor_id: Optional[int]
    actor_email: Optional[str]
    action: str
    target_user_id: Optional[int]
    meta_data: Optional[dict]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
