"""
Authentication API endpoints.

Provides signup, login, logout and current-user endpoints for the rider and
driver apps.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uride.app.db.session import get_db
from uride.app.models.user import User
from uride.app.models.enums import UserRole
from uride.app.schemas.auth import UserSignup, UserLogin, TokenResponse, UserResponse, LogoutResponse
from uride.app.core.security import get_password_hash, verify_password
from uride.app.core.jwt import create_access_token, remaining_lifetime_seconds
from uride.app.core.dependencies import get_current_user
from uride.app.core.token_revocation import revoke_token
from uride.app.services.audit import log_event, log_actor_event, AuditAction
from uride.app.storage.base import RideStore
from uride.app.storage.factory import get_store

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_for(user: User, driver_id: str = None) -> TokenResponse:
    jwt_payload = {
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value,
    }

    return TokenResponse(
        access_token=create_access_token(data=jwt_payload),
        token_type="bearer",
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        driver_id=driver_id
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserSignup,
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """
    Register a new rider or driver.

    - ADMIN accounts cannot be created here.
    - DRIVER signups get a driver profile that needs admin approval
      before it is ever matched.
    """
    if user_data.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin users cannot be registered via API"
        )

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        email=user_data.email,
        name=user_data.name,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=True
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    driver_id = None
    if new_user.role == UserRole.DRIVER:
        driver = await store.create_driver(
            user_id=new_user.id,
            display_name=new_user.name,
            driver_type=user_data.driver_type,
            vehicle_number=user_data.vehicle_number,
        )
        driver_id = driver.id

    await log_event(
        db=db,
        action=AuditAction.USER_SIGNED_UP,
        actor_id=new_user.id,
        actor_email=new_user.email,
        metadata={"role": new_user.role.value, "driver_id": driver_id}
    )

    return _token_for(new_user, driver_id)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """
    Login user and return JWT token.

    Logs successful and failed login attempts for security monitoring.
    """
    ip_address = request.client.host if request.client else None

    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id if user else None,
            actor_email=credentials.email,
            ip_address=ip_address,
            metadata={"reason": "Invalid password" if user else "User not found"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_id=user.id,
            actor_email=user.email,
            ip_address=ip_address,
            metadata={"reason": "Account is inactive/blocked"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    driver_id = None
    if user.role == UserRole.DRIVER:
        driver = await store.get_driver_for_user(user.id)
        driver_id = driver.id if driver else None

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_email=user.email,
        ip_address=ip_address
    )

    return _token_for(user, driver_id)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get current authenticated user information."""
    result = await db.execute(select(User).where(User.id == current_user["user_id"]))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented bearer token until it would have expired."""
    revoked = await revoke_token(
        current_user["token"],
        current_user["user_id"],
        ttl_seconds=remaining_lifetime_seconds(current_user)
    )

    await log_actor_event(db, AuditAction.TOKEN_REVOKED, current_user)

    return LogoutResponse(revoked=revoked)
