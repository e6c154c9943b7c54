"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from uride.app.api.v1.endpoints import auth, users, rides, drivers, admin, maps

router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
router.include_router(users.profile_router)
router.include_router(rides.router)
router.include_router(drivers.router)
router.include_router(admin.router)
router.include_router(maps.router)
