"""Geolocated college and scholarship records per student."""

from collegebot_core.locations.geocoding import GeocodeResult, Geocoder, GeocodingClient
from collegebot_core.locations.models import (
    LocationInput,
    LocationType,
    MapLocation,
    ReferenceLink,
    merge_metadata,
)
from collegebot_core.locations.store import LocationStore

__all__ = [
    "GeocodeResult",
    "Geocoder",
    "GeocodingClient",
    "LocationInput",
    "LocationStore",
    "LocationType",
    "MapLocation",
    "ReferenceLink",
    "merge_metadata",
]
