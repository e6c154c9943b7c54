"""
Maps configuration schema.
"""

from pydantic import BaseModel


class MapsConfigResponse(BaseModel):
    success: bool = True
    api_key: str
    tile_url: str
    geocoder_url: str
