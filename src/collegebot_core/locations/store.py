"""Per-student store of geolocated colleges and scholarships.

SQLite-backed. A location is identified during merge by its
``(name, type)`` pair within a student; the opaque ``id`` assigned on
first write never changes afterwards.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Any, Optional

from collegebot_core.errors import GeocodingError
from collegebot_core.locations.geocoding import Geocoder
from collegebot_core.locations.models import (
    LocationInput,
    LocationType,
    MapLocation,
    merge_metadata,
    slugify,
    union_chats,
)
from collegebot_core.sqlite import SQLiteStore, dumps, from_iso, loads, to_iso, utcnow

logger = logging.getLogger(__name__)


class LocationStore(SQLiteStore):
    """Map location store backed by SQLite."""

    SCHEMA = (
        """
        CREATE TABLE IF NOT EXISTS map_locations (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            latitude REAL NOT NULL,
            longitude REAL NOT NULL,
            source_chats TEXT DEFAULT '[]',
            metadata TEXT DEFAULT '{}',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (student_id, name, type)
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_map_locations_student
        ON map_locations(student_id)
        """,
    )

    def upsert_location(
        self,
        student_id: str,
        location: LocationInput | dict[str, Any],
        geocoder: Optional[Geocoder] = None,
        source_chat: Optional[str] = None,
    ) -> MapLocation:
        """Create or merge a location keyed by (name, type).

        Missing coordinates are resolved from ``metadata.address`` through
        the geocoder before anything is written. An existing record keeps
        its id, has its metadata merged one level deep and its source chats
        unioned.

        Args:
            student_id: Owning student.
            location: Write payload.
            geocoder: Gateway used when coordinates are missing.
            source_chat: Chat id that produced this write.

        Returns:
            The stored MapLocation.

        Raises:
            pydantic.ValidationError: If the payload is malformed.
            LocationValidationError: If neither coordinates nor an address
                are available.
            GeocodingError: If geocoding was needed and failed.
        """
        payload = (
            location
            if isinstance(location, LocationInput)
            else LocationInput.model_validate(location)
        )
        incoming_chats = union_chats(
            payload.source_chats, [source_chat] if source_chat else []
        )

        existing = self.find_location(student_id, payload.name, payload.type)
        latitude, longitude = payload.latitude, payload.longitude
        if not payload.has_coordinates:
            if existing is not None and (
                payload.address is None
                or payload.address == existing.metadata.get("address")
            ):
                latitude, longitude = existing.latitude, existing.longitude
            else:
                payload.require_position()
                if geocoder is None:
                    raise GeocodingError(
                        f"No geocoder configured to resolve '{payload.address}'"
                    )
                result = geocoder.geocode(payload.address, payload.name)
                latitude, longitude = result.latitude, result.longitude
                logger.info(
                    "Geocoded %s to %.5f,%.5f", payload.name, latitude, longitude
                )

        now = utcnow()
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM map_locations WHERE student_id = ? AND name = ? AND type = ?",
                (student_id, payload.name, payload.type.value),
            ).fetchone()

            if row is None:
                stored = MapLocation(
                    id=f"{payload.type.value}-{slugify(payload.name)}-{uuid.uuid4().hex[:8]}",
                    student_id=student_id,
                    name=payload.name,
                    type=payload.type,
                    latitude=latitude,
                    longitude=longitude,
                    source_chats=incoming_chats,
                    metadata=dict(payload.metadata),
                    created_at=now,
                    updated_at=now,
                )
                conn.execute(
                    """
                    INSERT INTO map_locations (id, student_id, name, type, latitude,
                        longitude, source_chats, metadata, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        stored.id,
                        student_id,
                        stored.name,
                        stored.type.value,
                        stored.latitude,
                        stored.longitude,
                        dumps(stored.source_chats),
                        dumps(stored.metadata),
                        to_iso(stored.created_at),
                        to_iso(stored.updated_at),
                    ),
                )
                logger.info("Created map location %s (%s)", stored.name, stored.id)
                return stored

            current = self._row_to_location(row)
            stored = current.model_copy(
                update={
                    "latitude": latitude,
                    "longitude": longitude,
                    "source_chats": union_chats(current.source_chats, incoming_chats),
                    "metadata": merge_metadata(current.metadata, payload.metadata),
                    "updated_at": now,
                }
            )
            conn.execute(
                """
                UPDATE map_locations
                SET latitude = ?, longitude = ?, source_chats = ?, metadata = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    stored.latitude,
                    stored.longitude,
                    dumps(stored.source_chats),
                    dumps(stored.metadata),
                    to_iso(stored.updated_at),
                    stored.id,
                ),
            )
            logger.info("Merged map location %s (%s)", stored.name, stored.id)
            return stored

    def list_locations(self, student_id: str) -> list[MapLocation]:
        """All locations for a student, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM map_locations WHERE student_id = ? ORDER BY created_at, name",
                (student_id,),
            ).fetchall()
            return [self._row_to_location(row) for row in rows]

    def list_location_names(self, student_id: str) -> list[tuple[str, LocationType]]:
        """Lightweight (name, type) listing for duplicate checks."""
        return [(loc.name, loc.type) for loc in self.list_locations(student_id)]

    def get_location(self, student_id: str, location_id: str) -> Optional[MapLocation]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM map_locations WHERE student_id = ? AND id = ?",
                (student_id, location_id),
            ).fetchone()
            return self._row_to_location(row) if row else None

    def find_location(
        self, student_id: str, name: str, location_type: LocationType | str
    ) -> Optional[MapLocation]:
        """Look a location up by its merge identity."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM map_locations WHERE student_id = ? AND name = ? AND type = ?",
                (student_id, name.strip(), LocationType(location_type).value),
            ).fetchone()
            return self._row_to_location(row) if row else None

    def delete_location(self, student_id: str, location_id: str) -> bool:
        """Delete one location.

        Returns:
            True if the location was found and deleted.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM map_locations WHERE student_id = ? AND id = ?",
                (student_id, location_id),
            )
            return cursor.rowcount > 0

    def clear_locations(self, student_id: str) -> int:
        """Delete every location for a student.

        Returns:
            Number of locations deleted.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM map_locations WHERE student_id = ?", (student_id,)
            )
            logger.info("Cleared %d map locations for %s", cursor.rowcount, student_id)
            return cursor.rowcount

    def _row_to_location(self, row: sqlite3.Row) -> MapLocation:
        """Convert a database row to a MapLocation."""
        return MapLocation(
            id=row["id"],
            student_id=row["student_id"],
            name=row["name"],
            type=LocationType(row["type"]),
            latitude=row["latitude"],
            longitude=row["longitude"],
            source_chats=loads(row["source_chats"], []),
            metadata=loads(row["metadata"], {}),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
