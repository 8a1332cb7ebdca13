"""Data models for geolocated colleges and scholarships."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from collegebot_core.errors import LocationValidationError


class LocationType(str, Enum):
    COLLEGE = "college"
    SCHOLARSHIP = "scholarship"


class ReferenceLink(BaseModel):
    """A source link attached to a location's metadata."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    url: str
    title: str = ""
    category: str = "other"
    source: str = "unofficial"
    platform: str = ""
    notes: str | None = None
    date_found: str | None = Field(None, alias="dateFound")


class LocationInput(BaseModel):
    """Write payload for a map location upsert.

    Coordinates may be omitted when ``metadata.address`` is present; the
    store then geocodes the address before writing.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: LocationType
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    metadata: dict[str, Any] = Field(default_factory=dict)
    source_chats: list[str] = Field(default_factory=list, alias="sourceChats")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("metadata")
    @classmethod
    def _validate_links(cls, value: dict[str, Any]) -> dict[str, Any]:
        links = value.get("referenceLinks")
        if links is None:
            return value
        if not isinstance(links, list):
            raise ValueError("referenceLinks must be a list")
        checked = [
            ReferenceLink.model_validate(link).model_dump(by_alias=True, exclude_none=True)
            for link in links
        ]
        return {**value, "referenceLinks": checked}

    @model_validator(mode="after")
    def _coordinates_paired(self) -> "LocationInput":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be supplied together")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def address(self) -> str | None:
        address = self.metadata.get("address")
        if isinstance(address, str) and address.strip():
            return address.strip()
        return None

    def require_position(self) -> None:
        """Reject a write that has neither coordinates nor an address.

        Raises:
            LocationValidationError: Naming the missing field.
        """
        if not self.has_coordinates and self.address is None:
            raise LocationValidationError(
                "latitude/longitude or metadata.address",
                f"Location '{self.name}' needs latitude/longitude "
                "or a geocodable metadata.address",
            )


class MapLocation(BaseModel):
    """A stored, geolocated record. Identity during merge is (name, type)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    student_id: str = Field(..., alias="studentId")
    name: str
    type: LocationType
    latitude: float
    longitude: float
    source_chats: list[str] = Field(default_factory=list, alias="sourceChats")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="updatedAt"
    )


def merge_metadata(old: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    """Merge location metadata one level deep.

    Top-level keys from ``new`` win. When both sides hold a dict under the
    same key, the two dicts are merged with ``new`` winning inside. Keys
    present on only one side pass through. Inputs are not mutated.

    Args:
        old: Stored metadata.
        new: Incoming metadata.

    Returns:
        The merged metadata dict.
    """
    merged = dict(old)
    for key, value in new.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


def union_chats(existing: list[str], incoming: list[str]) -> list[str]:
    """Order-preserving union of source chat ids."""
    merged = list(existing)
    for chat_id in incoming:
        if chat_id and chat_id not in merged:
            merged.append(chat_id)
    return merged


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:48] or "location"
