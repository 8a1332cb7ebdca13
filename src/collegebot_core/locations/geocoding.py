"""Geocoding gateway: address in, coordinates out.

Talks to the Google Geocoding API over HTTP. Anything that exposes a
matching ``geocode(address, name)`` method can stand in for the client.
"""

import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

from collegebot_core.errors import GeocodingError

logger = logging.getLogger(__name__)


class GeocodeResult(BaseModel):
    """Resolved position for an address."""

    name: str
    latitude: float
    longitude: float
    formatted_address: str


@runtime_checkable
class Geocoder(Protocol):
    def geocode(self, address: str, name: str) -> GeocodeResult:
        """Resolve an address to coordinates or raise GeocodingError."""
        ...


class GeocodingClient:
    """HTTP client for the Google Geocoding API.

    Args:
        api_key: API key. Requests fail with GeocodingError when missing.
        base_url: Geocoding endpoint URL.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.client = httpx.Client(timeout=timeout)

    def geocode(self, address: str, name: str) -> GeocodeResult:
        """Resolve an address.

        Args:
            address: Free-form postal address.
            name: Display name of the place, echoed back in the result.

        Returns:
            GeocodeResult for the best match.

        Raises:
            GeocodingError: If the key is missing, the request fails, or
                the API returns no usable result.
        """
        if not address or not name:
            raise GeocodingError("Address and name are required")
        if not self.api_key:
            raise GeocodingError("Geocoding API key not configured")

        try:
            resp = self.client.get(
                self.base_url, params={"address": address, "key": self.api_key}
            )
            resp.raise_for_status()
            data: dict[str, Any] = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeocodingError(f"Failed to geocode address: {e}") from e

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            raise GeocodingError(f"Geocoding failed: {status}")

        best = results[0]
        try:
            location = best["geometry"]["location"]
            lat, lng = location["lat"], location["lng"]
        except (KeyError, TypeError) as e:
            raise GeocodingError(f"Malformed geocoding result: missing {e}") from e

        logger.debug("Geocoded %r to %s,%s", address, lat, lng)
        return GeocodeResult(
            name=name,
            latitude=lat,
            longitude=lng,
            formatted_address=best.get("formatted_address", address),
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "GeocodingClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
