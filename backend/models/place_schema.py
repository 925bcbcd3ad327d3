# models/place_schema.py
"""
Place-search data shapes

Provider objects never leave the places adapter: the controller only sees
these minimal transfer types.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.location_schema import LocationInput


class PredictionCandidate(BaseModel):
    """One autocomplete suggestion"""
    place_id: str
    primary_text: str
    secondary_text: str = ""


class PlaceDetails(BaseModel):
    """Full place record resolved from a candidate"""
    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    types: List[str] = Field(default_factory=list)
    rating: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None


class PanelState(str, Enum):
    HIDDEN = "hidden"
    LOADING = "loading"
    RESULTS = "results"
    EMPTY = "empty"


class SearchSnapshot(BaseModel):
    """What the add-flow client renders after each event"""
    form: LocationInput
    panel: PanelState
    candidates: List[PredictionCandidate] = Field(default_factory=list)
