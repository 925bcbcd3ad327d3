# models/location_schema.py
"""Pydantic schemas for saved locations"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Tag vocabulary (grouped the way the add form shows it)
# ============================================================

TAG_GROUPS: Dict[str, List[str]] = {
    "Drink Types": [
        "Coffee", "Tea", "Beer", "Wine", "Cocktails",
        "Craft Beer", "Local Brews", "Import Beer", "Draft Beer",
    ],
    "Food": ["Breakfast", "Lunch", "Dinner", "Brunch", "Bar Food", "Pub Grub", "Snacks"],
    "Establishment Type": [
        "Cafe", "Restaurant", "Bakery", "Brewery", "Brewpub",
        "Sports Bar", "Wine Bar", "Gastropub", "Beer Garden", "Taproom",
    ],
    "Food Types": ["Dessert", "Pizza", "Burgers", "Wings", "BBQ"],
    "Dietary": ["Vegan", "Vegetarian", "Gluten-free"],
    "Amenities": [
        "Pet-friendly", "Wi-Fi", "Outdoor seating", "Live Music", "Sports TV",
        "Pool Table", "Darts", "Board Games", "Trivia Night", "Happy Hour",
    ],
    "Atmosphere": ["Casual", "Upscale", "Dive Bar", "Family-friendly", "Quiet", "Lively"],
}

COMMON_TAGS: List[str] = [tag for group in TAG_GROUPS.values() for tag in group]

MIN_RATING = 1
MAX_RATING = 5


def _unique(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class VisitHistory(BaseModel):
    """One visit to a location"""
    date: str = Field(..., description="ISO timestamp of the visit")
    notes: str = Field("", description="Free-text visit notes")


class LocationInput(BaseModel):
    """
    Mutable fields of a location, as submitted by the add and edit forms.

    Parsing is lenient on purpose: semantic checks happen in
    `validation_errors()` so the caller can report every field at once.
    """
    name: str = ""
    address: str = ""
    latitude: float
    longitude: float
    rating: int = 5
    notes: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: List[str]) -> List[str]:
        return _unique(value)

    @classmethod
    def blank(cls, latitude: float, longitude: float) -> "LocationInput":
        """Empty add form centered on the given point"""
        return cls(latitude=latitude, longitude=longitude)

    @classmethod
    def from_location(cls, location: "Location") -> "LocationInput":
        return cls(
            name=location.name,
            address=location.address,
            latitude=location.latitude,
            longitude=location.longitude,
            rating=location.rating,
            notes=location.notes,
            tags=list(location.tags),
        )

    def validation_errors(self) -> Dict[str, str]:
        """Field name -> message for every rule this record breaks"""
        errors: Dict[str, str] = {}
        if not self.name.strip():
            errors["name"] = "Name is required."
        if not self.address.strip():
            errors["address"] = "Address is required."
        if not MIN_RATING <= self.rating <= MAX_RATING:
            errors["rating"] = f"Rating must be between {MIN_RATING} and {MAX_RATING}."
        if not -90.0 <= self.latitude <= 90.0:
            errors["latitude"] = "Latitude must be between -90 and 90."
        if not -180.0 <= self.longitude <= 180.0:
            errors["longitude"] = "Longitude must be between -180 and 180."
        return errors


class Location(BaseModel):
    """A saved place owned by one user"""
    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    tags: List[str] = Field(default_factory=list)
    rating: int
    notes: str = ""
    photos: List[str] = Field(default_factory=list)
    visit_history: List[VisitHistory] = Field(default_factory=list)
    user_id: str
    created_at: Optional[str] = None


class Notice(BaseModel):
    """Transient, dismissible message shown to the user (toast)"""
    title: str
    description: str = ""
    variant: str = Field("default", description="default | destructive")


class LocationListResponse(BaseModel):
    locations: List[Location]
    total: int
    query: str = ""
    notice: Optional[Notice] = None


class LocationResponse(BaseModel):
    location: Optional[Location] = None
    notice: Optional[Notice] = None


class LocationFormResponse(BaseModel):
    """Defaults and vocabulary for rendering the add/edit form"""
    form: LocationInput
    tag_groups: Dict[str, List[str]] = TAG_GROUPS
    location_id: Optional[str] = None


class ValidationFailure(BaseModel):
    errors: Dict[str, str]
    notice: Notice
