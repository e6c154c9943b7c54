"""
Admin API Endpoints.

Provides admin-only user management, ride monitoring and driver approval
endpoints with audit logging.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from uride.app.db.session import get_db
from uride.app.models.user import User
from uride.app.models.enums import RideStatus, UserRole
from uride.app.domain.entities import RideQuery
from uride.app.schemas.auth import UserResponse
from uride.app.schemas.admin import (
    UserListResponse, BlockUserRequest, AdminActionResponse,
    AuditTrailResponse, AuditLogResponse
)
from uride.app.schemas.driver import DriverApprovalRequest
from uride.app.schemas.ride import RideResponse, RideListResponse
from uride.app.core.guards import require_admin
from uride.app.core.exceptions import ResourceNotFoundError
from uride.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from uride.app.services.audit import log_actor_event, AuditAction, get_audit_trail
from uride.app.storage.base import RideStore
from uride.app.storage.factory import get_store

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


async def _set_driver_active(store: RideStore, user: User, active: bool) -> None:
    """A blocked driver drops out of matching until unblocked."""
    if user.role != UserRole.DRIVER:
        return
    driver = await store.get_driver_for_user(user.id)
    if driver:
        await store.set_driver_active(driver.id, active)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users in the system (admin-only).

    Returns paginated user list with role and status information.
    """
    total = (await db.execute(select(func.count(User.id)))).scalar()

    offset = (page - 1) * page_size
    query = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(query)

    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/rides", response_model=RideListResponse)
async def list_all_rides(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    status_filter: RideStatus = Query(None, alias="status"),
    admin: dict = Depends(require_admin),
    store: RideStore = Depends(get_store)
):
    """All rides, newest first (admin read-only)."""
    query = RideQuery(limit=page_size, offset=(page - 1) * page_size)
    if status_filter:
        query.statuses = [status_filter]

    rides = await store.list_rides(query)
    return RideListResponse(
        rides=[RideResponse.model_validate(r) for r in rides],
        total=await store.count_rides(query)
    )


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    request: BlockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """
    Block a user and revoke all their active tokens (admin-only).

    This immediately terminates all user sessions.
    """
    target_user = await _get_user_or_404(db, user_id)

    if target_user.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot block another admin user"
        )

    if not target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already blocked"
        )

    target_user.is_active = False
    await db.commit()

    await revoke_all_user_tokens(user_id)
    await _set_driver_active(store, target_user, False)

    audit_log = await log_actor_event(
        db, AuditAction.USER_BLOCKED, admin,
        target_user_id=target_user.id,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.email}' has been blocked",
        user_id=user_id,
        action=AuditAction.USER_BLOCKED,
        audit_log_id=audit_log.id
    )


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    request: BlockUserRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """Unblock a user and clear token revocations (admin-only)."""
    target_user = await _get_user_or_404(db, user_id)

    if target_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already active"
        )

    target_user.is_active = True
    await db.commit()

    await clear_user_token_revocation(user_id)
    await _set_driver_active(store, target_user, True)

    audit_log = await log_actor_event(
        db, AuditAction.USER_UNBLOCKED, admin,
        target_user_id=target_user.id,
        metadata={"reason": request.reason} if request.reason else None
    )

    return AdminActionResponse(
        success=True,
        message=f"User '{target_user.email}' has been unblocked",
        user_id=user_id,
        action=AuditAction.USER_UNBLOCKED,
        audit_log_id=audit_log.id
    )


@router.post("/drivers/{driver_id}/approve", response_model=AdminActionResponse)
async def approve_driver(
    driver_id: str,
    request: DriverApprovalRequest,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """
    Approve a driver for matching, or suspend one with approved=false.

    Unapproved drivers never appear in nearby searches and cannot claim rides.
    """
    driver = await store.get_driver(driver_id)
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)

    await store.set_driver_approval(driver_id, request.approved)

    action = AuditAction.DRIVER_APPROVED if request.approved else AuditAction.DRIVER_SUSPENDED
    audit_log = await log_actor_event(
        db, action, admin,
        target_user_id=driver.user_id,
        metadata={"driver_id": driver_id}
    )

    verb = "approved" if request.approved else "suspended"
    return AdminActionResponse(
        success=True,
        message=f"Driver '{driver.display_name}' has been {verb}",
        driver_id=driver_id,
        user_id=driver.user_id,
        action=action,
        audit_log_id=audit_log.id
    )


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: int = Query(None, description="Filter by target user ID"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get audit trail with optional filtering (admin-only)."""
    logs = await get_audit_trail(
        db=db,
        target_user_id=user_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
