# routers/map.py
"""
Map Router - overview of every saved location
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from models.auth_schema import User
from models.location_schema import Notice
from models.map_schema import LatLng, MapData
from services.location_service import LocationRepository, StorageError, get_location_repository
from services.map_service import OverviewMap
from utils.logger import logger
from utils.session_manager import require_user

router = APIRouter(prefix="/map", tags=["Map"])


@router.get(
    "",
    response_model=MapData,
    summary="Overview map",
    description="Markers for my locations; `selected` opens a popup, `lat`/`lng` recenter on the device position"
)
def overview_map(
    q: Optional[str] = Query(None, description="Filter markers by name or address"),
    selected: Optional[str] = Query(None, description="Location id whose popup is open"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Device latitude (locate me)"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="Device longitude (locate me)"),
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
) -> MapData:
    notice = None
    try:
        locations = repo.list(user.id)
    except StorageError as e:
        logger.error(f"❌ Map failed to load locations: {e}", exc_info=True)
        locations = []
        notice = Notice(title="Error", description="Failed to load locations.", variant="destructive")

    overview = OverviewMap(locations)
    overview.search(q)
    if lat is not None and lng is not None:
        overview.locate_me(LatLng(lat=lat, lng=lng))
    if selected:
        overview.select(selected)

    data = overview.to_map_data()
    data.notice = notice
    return data
