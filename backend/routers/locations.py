# routers/locations.py
"""
Locations Router - list, detail, add, edit, delete

Storage failures come back as a notice, a missing (or foreign) record
redirects to the list with a notice, and invalid input is rejected before any
storage call.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse

from models.auth_schema import User
from models.location_schema import (
    LocationFormResponse,
    LocationInput,
    LocationListResponse,
    LocationResponse,
    Notice,
    ValidationFailure,
)
from services.location_service import (
    LocationNotFoundError,
    LocationRepository,
    LocationValidationError,
    StorageError,
    filter_locations,
    get_location_repository,
)
from services.map_service import default_center
from utils.logger import logger
from utils.session_manager import require_user

router = APIRouter(tags=["Locations"])

NOT_FOUND_NOTICE = "Location not found"


def error_notice(description: str) -> Notice:
    return Notice(title="Error", description=description, variant="destructive")


def notice_response(status_code: int, description: str) -> JSONResponse:
    body = LocationResponse(notice=error_notice(description))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def validation_response(errors: dict) -> JSONResponse:
    body = ValidationFailure(
        errors=errors,
        notice=Notice(
            title="Missing information",
            description="Please fill in all required fields.",
            variant="destructive",
        ),
    )
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


def redirect_not_found(location_id: str) -> RedirectResponse:
    logger.info(f"🧭 Location {location_id} not found, redirecting to list")
    return RedirectResponse(f"/list?notice={quote(NOT_FOUND_NOTICE)}", status_code=303)


# ============================================================
# /list
# ============================================================

@router.get("/list", response_model=LocationListResponse, summary="List my locations")
def list_locations(
    q: Optional[str] = Query(None, description="Filter by name, address or tag"),
    notice: Optional[str] = Query(None, description="Notice carried over a redirect"),
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
):
    carried = Notice(title=notice) if notice else None
    try:
        locations = repo.list(user.id)
    except StorageError as e:
        logger.error(f"❌ Failed to load locations: {e}", exc_info=True)
        return LocationListResponse(
            locations=[], total=0, query=q or "", notice=error_notice("Failed to load locations.")
        )

    visible = filter_locations(locations, q)
    return LocationListResponse(locations=visible, total=len(visible), query=q or "", notice=carried)


# ============================================================
# /add
# ============================================================

@router.get("/add", response_model=LocationFormResponse, summary="Blank add form")
def add_form(user: User = Depends(require_user)) -> LocationFormResponse:
    center = default_center()
    return LocationFormResponse(form=LocationInput.blank(center.lat, center.lng))


@router.post("/add", status_code=201, response_model=LocationResponse, summary="Add a location")
def add_location(
    record: LocationInput,
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
):
    try:
        location = repo.create(record, user.id)
    except LocationValidationError as e:
        return validation_response(e.errors)
    except StorageError as e:
        logger.error(f"❌ Error adding location: {e}", exc_info=True)
        return notice_response(503, "There was an error saving your location. Please try again.")

    return LocationResponse(
        location=location,
        notice=Notice(title="Location added successfully!", description="Your new location has been saved."),
    )


# ============================================================
# /locations/{id}
# ============================================================

@router.get("/locations/{location_id}", response_model=LocationResponse, summary="Location detail")
def location_detail(
    location_id: str,
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
):
    try:
        location = repo.get(location_id, user.id)
    except LocationNotFoundError:
        return redirect_not_found(location_id)
    except StorageError as e:
        logger.error(f"❌ Failed to load location {location_id}: {e}", exc_info=True)
        return notice_response(503, "Failed to load location details.")
    return LocationResponse(location=location)


@router.get("/locations/{location_id}/edit", response_model=LocationFormResponse, summary="Edit form")
def edit_form(
    location_id: str,
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
):
    try:
        location = repo.get(location_id, user.id)
    except LocationNotFoundError:
        return redirect_not_found(location_id)
    except StorageError as e:
        logger.error(f"❌ Failed to load location {location_id}: {e}", exc_info=True)
        return notice_response(503, "Failed to load location details.")
    return LocationFormResponse(form=LocationInput.from_location(location), location_id=location.id)


@router.post("/locations/{location_id}/edit", response_model=LocationResponse, summary="Save edits")
def edit_location(
    location_id: str,
    patch: LocationInput,
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
):
    try:
        location = repo.update(location_id, user.id, patch)
    except LocationValidationError as e:
        return validation_response(e.errors)
    except LocationNotFoundError:
        return redirect_not_found(location_id)
    except StorageError as e:
        logger.error(f"❌ Error updating location {location_id}: {e}", exc_info=True)
        return notice_response(503, "Failed to update location.")

    return LocationResponse(
        location=location,
        notice=Notice(title="Location updated", description="Your changes have been saved successfully."),
    )


@router.post("/locations/{location_id}/delete", summary="Delete a location")
def delete_location(
    location_id: str,
    user: User = Depends(require_user),
    repo: LocationRepository = Depends(get_location_repository),
):
    try:
        repo.delete(location_id, user.id)
    except LocationNotFoundError:
        return redirect_not_found(location_id)
    except StorageError as e:
        logger.error(f"❌ Error deleting location {location_id}: {e}", exc_info=True)
        return notice_response(503, "Failed to delete location.")

    return RedirectResponse(f"/list?notice={quote('Location deleted')}", status_code=303)
