# models/map_schema.py
"""Map view schemas"""

from typing import List, Optional

from pydantic import BaseModel, Field

from models.location_schema import Notice


class LatLng(BaseModel):
    lat: float
    lng: float


class MapMarker(BaseModel):
    """One marker per saved location"""
    location_id: str
    name: str                         # marker title
    lat: float
    lng: float


class InfoPopup(BaseModel):
    """Popup bound to the selected marker"""
    location_id: str
    name: str
    address: str
    position: LatLng
    detail_url: str


class MapData(BaseModel):
    """Overview map payload"""
    center: LatLng = Field(..., description="Map center")
    zoom: int = 13
    markers: List[MapMarker] = Field(default_factory=list)
    popup: Optional[InfoPopup] = None
    query: str = ""
    notice: Optional[Notice] = None
