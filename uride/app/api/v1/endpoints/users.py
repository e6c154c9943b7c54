"""
User API Endpoints.

/users is account management (admin); /user/{id} is a user's own profile,
statistics and ride history.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from uride.app.db.session import get_db
from uride.app.models.user import User
from uride.app.models.enums import UserRole
from uride.app.domain.entities import RideQuery
from uride.app.schemas.auth import UserResponse
from uride.app.schemas.admin import UserCreate, UserListResponse, UserDataResponse
from uride.app.schemas.ride import RideResponse, RideListResponse
from uride.app.core.guards import require_admin, ensure_self_or_admin
from uride.app.core.dependencies import get_current_user
from uride.app.core.security import get_password_hash
from uride.app.services.audit import log_actor_event, AuditAction
from uride.app.services.rider_stats import get_user_stats
from uride.app.storage.base import RideStore
from uride.app.storage.factory import get_store

router = APIRouter(prefix="/users", tags=["Users"])
profile_router = APIRouter(prefix="/user", tags=["User Profile"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    role: UserRole = Query(None, description="Filter by role"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List users, newest first (admin-only)."""
    count_query = select(func.count(User.id))
    query = select(User)
    if role:
        count_query = count_query.where(User.role == role)
        query = query.where(User.role == role)

    total = (await db.execute(count_query)).scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(page_size)
    )

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """
    Create an account of any role (admin-only).

    Driver accounts get an unapproved driver profile, as with signup.
    """
    existing = await db.execute(select(User).where(User.email == user_data.email))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=user_data.email,
        name=user_data.name,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        member_level=user_data.member_level,
        is_active=True
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    if user.role == UserRole.DRIVER:
        await store.create_driver(user_id=user.id, display_name=user.name)

    await log_actor_event(
        db, AuditAction.USER_CREATED, admin,
        target_user_id=user.id,
        metadata={"role": user.role.value}
    )

    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    ensure_self_or_admin(user_id, current_user, "user")
    return UserResponse.model_validate(await _get_user_or_404(db, user_id))


@profile_router.get("/{user_id}/data", response_model=UserDataResponse)
async def get_user_data(
    user_id: int = Path(..., description="User ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """Profile plus ride statistics (self or admin)."""
    ensure_self_or_admin(user_id, current_user, "user")
    user = await _get_user_or_404(db, user_id)

    return UserDataResponse(
        user=UserResponse.model_validate(user),
        stats=await get_user_stats(store, user)
    )


@profile_router.get("/{user_id}/rides", response_model=RideListResponse)
async def get_user_rides(
    user_id: int = Path(..., description="User ID"),
    limit: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: RideStore = Depends(get_store)
):
    """A rider's rides, newest first (self or admin)."""
    ensure_self_or_admin(user_id, current_user, "user")
    await _get_user_or_404(db, user_id)

    query = RideQuery(rider_id=user_id, limit=limit)
    rides = await store.list_rides(query)

    return RideListResponse(
        rides=[RideResponse.model_validate(r) for r in rides],
        total=await store.count_rides(query)
    )
