# services/map_service.py

"""
Map Service

- MapBinding: keeps a marker and a form's coordinate pair in sync
- OverviewMap: markers for a user's saved locations, the info popup and
  "locate me" recentering
"""

from typing import List, Optional, Protocol

from models.location_schema import Location
from models.map_schema import InfoPopup, LatLng, MapData, MapMarker
from services.location_service import filter_locations
from utils.config import get_settings
from utils.logger import logger


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


def default_center() -> LatLng:
    settings = get_settings()
    return LatLng(lat=settings.DEFAULT_CENTER_LAT, lng=settings.DEFAULT_CENTER_LNG)


class MapBinding:
    """
    Binds the draggable marker to `target.latitude` / `target.longitude`.

    Clicks and drag ends write straight through; any point is accepted.
    """

    def __init__(self, target: HasCoordinates):
        self.target = target

    @property
    def marker(self) -> LatLng:
        return LatLng(lat=self.target.latitude, lng=self.target.longitude)

    def _move(self, lat: float, lng: float) -> LatLng:
        self.target.latitude = lat
        self.target.longitude = lng
        return self.marker

    def on_map_click(self, lat: float, lng: float) -> LatLng:
        return self._move(lat, lng)

    def on_marker_drag_end(self, lat: float, lng: float) -> LatLng:
        return self._move(lat, lng)


class OverviewMap:
    """State behind the /map view"""

    def __init__(self, locations: List[Location], center: Optional[LatLng] = None):
        self.locations = locations
        self.center = center or default_center()
        self.query = ""
        self.selected: Optional[Location] = None

    def visible_locations(self) -> List[Location]:
        # The map search box matches name and address only
        return filter_locations(self.locations, self.query, include_tags=False)

    def search(self, query: Optional[str]) -> None:
        self.query = (query or "").strip()

    def select(self, location_id: str) -> Optional[InfoPopup]:
        """
        Open the popup for one marker

        Args:
            location_id: id of the clicked marker

        Returns:
            InfoPopup, or None when the id is unknown (popup closed)
        """
        self.selected = next((loc for loc in self.locations if loc.id == location_id), None)
        if self.selected is None:
            logger.debug(f"🗺️ No marker for {location_id}")
        return self.popup

    @property
    def popup(self) -> Optional[InfoPopup]:
        if self.selected is None:
            return None
        location = self.selected
        return InfoPopup(
            location_id=location.id,
            name=location.name,
            address=location.address,
            position=LatLng(lat=location.latitude, lng=location.longitude),
            detail_url=f"/locations/{location.id}",
        )

    def locate_me(self, position: Optional[LatLng]) -> LatLng:
        """
        Recenter on the device position

        Args:
            position: device position, or None when unavailable or denied

        Returns:
            The center after the call
        """
        if position is None:
            logger.info("🧭 Device position unavailable; keeping current center")
            return self.center
        self.center = position
        return self.center

    def to_map_data(self) -> MapData:
        markers = [
            MapMarker(location_id=loc.id, name=loc.name, lat=loc.latitude, lng=loc.longitude)
            for loc in self.visible_locations()
        ]
        logger.info(
            f"🗺️ Map data built: {len(markers)} markers, "
            f"center({self.center.lat:.4f}, {self.center.lng:.4f})"
        )
        return MapData(center=self.center, markers=markers, popup=self.popup, query=self.query)
