# services/places_service.py

"""
Places Service

Google Places web-service adapter (Autocomplete + Place Details).
Provider payloads are translated into PredictionCandidate / PlaceDetails here
and nowhere else.
"""

import asyncio
from typing import Any, Dict, List, Optional

import requests

from models.map_schema import LatLng
from models.place_schema import PlaceDetails, PredictionCandidate
from utils.config import get_settings
from utils.logger import logger

DETAIL_FIELDS = [
    "name",
    "formatted_address",
    "geometry",
    "place_id",
    "types",
    "rating",
    "international_phone_number",
    "website",
]

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


class PlacesError(Exception):
    """The places provider could not answer"""


def parse_predictions(payload: Dict[str, Any]) -> List[PredictionCandidate]:
    candidates = []
    for prediction in payload.get("predictions") or []:
        place_id = prediction.get("place_id")
        if not place_id:
            continue
        formatting = prediction.get("structured_formatting") or {}
        candidates.append(
            PredictionCandidate(
                place_id=place_id,
                primary_text=formatting.get("main_text") or prediction.get("description", ""),
                secondary_text=formatting.get("secondary_text") or "",
            )
        )
    return candidates


def parse_place_details(place_id: str, payload: Dict[str, Any]) -> PlaceDetails:
    result = payload.get("result") or {}
    location = (result.get("geometry") or {}).get("location") or {}
    return PlaceDetails(
        place_id=result.get("place_id") or place_id,
        name=result.get("name"),
        formatted_address=result.get("formatted_address"),
        latitude=location.get("lat"),
        longitude=location.get("lng"),
        types=result.get("types") or [],
        rating=result.get("rating"),
        phone=result.get("international_phone_number"),
        website=result.get("website"),
    )


class GooglePlacesClient:
    """Blocking HTTP calls run in a worker thread so the event loop stays free"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
        self.base_url = (base_url or settings.PLACES_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise PlacesError("GOOGLE_MAPS_API_KEY is not configured")

        url = f"{self.base_url}/{endpoint}/json"
        try:
            response = requests.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise PlacesError(f"{endpoint} timed out") from e
        except requests.exceptions.RequestException as e:
            raise PlacesError(f"{endpoint} request failed: {e}") from e
        except ValueError as e:
            raise PlacesError(f"{endpoint} returned invalid JSON") from e

        status = data.get("status")
        if status not in _OK_STATUSES:
            raise PlacesError(f"{endpoint} status {status}: {data.get('error_message', '')}")
        return data

    def fetch_predictions(
        self, text: str, center: LatLng, radius_m: int, types: List[str]
    ) -> List[PredictionCandidate]:
        """
        Autocomplete predictions biased to a circle around `center`

        Args:
            text: what the user typed
            center: bias point, normally the form coordinates
            radius_m: bias radius in meters
            types: place type filter, e.g. ["establishment"]

        Returns:
            Candidates in provider order (empty on ZERO_RESULTS)

        Raises:
            PlacesError: transport failure or a non-OK status
        """
        params = {
            "input": text,
            "location": f"{center.lat},{center.lng}",
            "radius": radius_m,
        }
        if types:
            params["types"] = "|".join(types)
        data = self._get("autocomplete", params)
        candidates = parse_predictions(data)
        logger.debug(f"🗺️ autocomplete '{text}': {len(candidates)} predictions")
        return candidates

    def fetch_details(self, place_id: str) -> PlaceDetails:
        """
        Full record for one place

        Args:
            place_id: id from a PredictionCandidate

        Returns:
            PlaceDetails; fields the provider omitted stay None

        Raises:
            PlacesError: transport failure or a non-OK status
        """
        data = self._get("details", {"place_id": place_id, "fields": ",".join(DETAIL_FIELDS)})
        return parse_place_details(place_id, data)

    async def autocomplete(
        self, text: str, center: LatLng, radius_m: int, types: List[str]
    ) -> List[PredictionCandidate]:
        return await asyncio.to_thread(self.fetch_predictions, text, center, radius_m, types)

    async def details(self, place_id: str) -> PlaceDetails:
        return await asyncio.to_thread(self.fetch_details, place_id)


_places_client: Optional[GooglePlacesClient] = None


def get_places_client() -> GooglePlacesClient:
    """Return the shared GooglePlacesClient"""
    global _places_client
    if _places_client is None:
        _places_client = GooglePlacesClient()
    return _places_client
