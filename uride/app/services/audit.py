"""
Audit logging service for authentication events, ride hand-offs and admin actions.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from uride.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    USER_SIGNED_UP = "USER_SIGNED_UP"
    USER_CREATED = "USER_CREATED"
    USER_BLOCKED = "USER_BLOCKED"
    USER_UNBLOCKED = "USER_UNBLOCKED"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    RIDE_REQUESTED = "RIDE_REQUESTED"
    RIDE_AUTO_ASSIGNED = "RIDE_AUTO_ASSIGNED"
    RIDE_CLAIMED = "RIDE_CLAIMED"
    RIDE_CLAIM_REJECTED = "RIDE_CLAIM_REJECTED"
    RIDE_CANCELLED = "RIDE_CANCELLED"
    RIDE_COMPLETED = "RIDE_COMPLETED"
    RIDE_RATED = "RIDE_RATED"

    DRIVER_APPROVED = "DRIVER_APPROVED"
    DRIVER_SUSPENDED = "DRIVER_SUSPENDED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_email: Optional[str] = None,
    target_user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_email: Email of actor
        target_user_id: ID of user being acted upon (if applicable)
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_email=actor_email,
        action=action,
        target_user_id=target_user_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_actor_event(
    db: AsyncSession,
    action: str,
    current_user: dict,
    metadata: Optional[Dict[str, Any]] = None,
    target_user_id: Optional[int] = None,
) -> AuditLog:
    """Log an event performed by the authenticated user in `current_user`."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_email=current_user.get("sub"),
        target_user_id=target_user_id,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    target_user_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_user_id:
        query = query.where(AuditLog.target_user_id == target_user_id)

    if action:
        query = query.where(AuditLog.action == action)

    result = await db.execute(query.limit(limit))
    return result.scalars().all()
