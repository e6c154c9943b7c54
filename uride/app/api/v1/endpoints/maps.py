"""
Maps configuration for the rider and driver apps.
"""

from fastapi import APIRouter

from uride.app.core.config import settings
from uride.app.schemas.maps import MapsConfigResponse

router = APIRouter(prefix="/maps", tags=["Maps"])


@router.get("/config", response_model=MapsConfigResponse)
async def get_maps_config():
    return MapsConfigResponse(
        api_key=settings.maps_api_key,
        tile_url=settings.map_tile_url,
        geocoder_url=settings.geocoder_url
    )
