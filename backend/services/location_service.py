# services/location_service.py

"""
Location Service

CRUD over the `locations` table. Every statement is scoped by the owning
user's id, so a record owned by someone else is reported exactly like a
missing one.
"""

import json
import uuid
from typing import Any, Dict, List, Optional, Sequence

import duckdb

from models.location_schema import Location, LocationInput, VisitHistory, utc_now_iso
from utils.database import get_database
from utils.logger import logger

INITIAL_VISIT_NOTES = "Initial visit"

_COLUMNS = (
    "id, user_id, name, address, latitude, longitude, rating, "
    "notes, tags, photos, visit_history, created_at"
)


class LocationError(Exception):
    """Base class for location record failures"""


class LocationNotFoundError(LocationError):
    def __init__(self, location_id: str):
        super().__init__(f"Location {location_id} not found")
        self.location_id = location_id


class LocationValidationError(LocationError):
    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))
        self.errors = errors


class StorageError(LocationError):
    """The storage backend failed; distinct from not-found"""


def _row_to_location(row: Sequence[Any]) -> Location:
    (location_id, user_id, name, address, latitude, longitude,
     rating, notes, tags, photos, visit_history, created_at) = row
    visits = json.loads(visit_history) if visit_history else []
    return Location(
        id=location_id,
        user_id=user_id,
        name=name,
        address=address,
        latitude=latitude,
        longitude=longitude,
        rating=rating,
        notes=notes or "",
        tags=list(tags or []),
        photos=list(photos or []),
        visit_history=[VisitHistory(**visit) for visit in visits],
        created_at=created_at,
    )


class LocationRepository:
    """One-shot CRUD calls; no retries, no pagination"""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self._conn = conn

    def _fetch(self, sql: str, params: List[Any]) -> List[Sequence[Any]]:
        try:
            with self._conn.cursor() as cur:
                return cur.execute(sql, params).fetchall()
        except duckdb.Error as e:
            logger.error(f"❌ Storage error: {e}")
            raise StorageError(str(e)) from e

    def list(self, user_id: str) -> List[Location]:
        """
        All records owned by one user, newest first

        Args:
            user_id: owner id from the session

        Returns:
            Location list (empty when the user has none)

        Raises:
            StorageError: the query failed
        """
        rows = self._fetch(
            f"select {_COLUMNS} from locations where user_id = ? order by created_at desc",
            [user_id],
        )
        logger.debug(f"📦 list: user={user_id} rows={len(rows)}")
        return [_row_to_location(row) for row in rows]

    def get(self, location_id: str, user_id: str) -> Location:
        """
        One owned record

        Args:
            location_id: record id
            user_id: owner id from the session

        Returns:
            The Location

        Raises:
            LocationNotFoundError: missing, or owned by someone else
            StorageError: the query failed
        """
        rows = self._fetch(
            f"select {_COLUMNS} from locations where id = ? and user_id = ?",
            [location_id, user_id],
        )
        if not rows:
            raise LocationNotFoundError(location_id)
        return _row_to_location(rows[0])

    def create(self, record: LocationInput, user_id: str) -> Location:
        """
        Insert a new record owned by `user_id`

        Validation runs first; nothing reaches storage for an invalid record.
        The record is seeded with one "Initial visit" entry dated now.

        Args:
            record: submitted form values
            user_id: owner id from the session

        Returns:
            The stored Location with its generated id

        Raises:
            LocationValidationError: one entry per broken field
            StorageError: the insert failed
        """
        errors = record.validation_errors()
        if errors:
            raise LocationValidationError(errors)

        now = utc_now_iso()
        visits = [VisitHistory(date=now, notes=INITIAL_VISIT_NOTES).model_dump()]
        rows = self._fetch(
            f"""
            insert into locations ({_COLUMNS})
            values (?, ?, ?, ?, ?, ?, ?, ?, ?::varchar[], ?::varchar[], ?, ?)
            returning {_COLUMNS}
            """,
            [
                str(uuid.uuid4()),
                user_id,
                record.name.strip(),
                record.address.strip(),
                record.latitude,
                record.longitude,
                record.rating,
                record.notes,
                record.tags,
                [],
                json.dumps(visits),
                now,
            ],
        )
        location = _row_to_location(rows[0])
        logger.info(f"📦 Location created: {location.id} ({location.name})")
        return location

    def update(self, location_id: str, user_id: str, patch: LocationInput) -> Location:
        """
        Overwrite the mutable fields of an owned record

        Args:
            location_id: record id
            user_id: owner id from the session
            patch: new values for name, address, rating, notes, coordinates, tags

        Returns:
            The updated Location

        Raises:
            LocationValidationError: one entry per broken field
            LocationNotFoundError: missing, or owned by someone else
            StorageError: the update failed
        """
        errors = patch.validation_errors()
        if errors:
            raise LocationValidationError(errors)

        rows = self._fetch(
            f"""
            update locations
            set name = ?, address = ?, rating = ?, notes = ?,
                latitude = ?, longitude = ?, tags = ?::varchar[]
            where id = ? and user_id = ?
            returning {_COLUMNS}
            """,
            [
                patch.name.strip(),
                patch.address.strip(),
                patch.rating,
                patch.notes,
                patch.latitude,
                patch.longitude,
                patch.tags,
                location_id,
                user_id,
            ],
        )
        if not rows:
            raise LocationNotFoundError(location_id)
        logger.info(f"📦 Location updated: {location_id}")
        return _row_to_location(rows[0])

    def delete(self, location_id: str, user_id: str) -> None:
        """
        Remove an owned record

        Args:
            location_id: record id
            user_id: owner id from the session

        Raises:
            LocationNotFoundError: missing, or owned by someone else
            StorageError: the delete failed
        """
        rows = self._fetch(
            "delete from locations where id = ? and user_id = ? returning id",
            [location_id, user_id],
        )
        if not rows:
            raise LocationNotFoundError(location_id)
        logger.info(f"🗑️  Location deleted: {location_id}")


def filter_locations(
    locations: List[Location], query: Optional[str], include_tags: bool = True
) -> List[Location]:
    """
    Case-insensitive substring search

    Args:
        locations: records to filter
        query: search text; blank keeps everything
        include_tags: also match tags (list view) or not (map view)

    Returns:
        Matching records in their original order
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(locations)

    def matches(location: Location) -> bool:
        if needle in location.name.lower() or needle in location.address.lower():
            return True
        return include_tags and any(needle in tag.lower() for tag in location.tags)

    return [location for location in locations if matches(location)]


def get_location_repository() -> LocationRepository:
    """FastAPI dependency: repository over the shared DuckDB connection"""
    return LocationRepository(get_database())
