"""Tests for the Google geocoding client."""

import httpx
import pytest

from collegebot_core.errors import GeocodingError
from collegebot_core.locations.geocoding import Geocoder, GeocodingClient


def _client(handler, api_key: str | None = "test-key") -> GeocodingClient:
    client = GeocodingClient(api_key=api_key, base_url="https://geo.test/json")
    client.client = httpx.Client(transport=httpx.MockTransport(handler))
    return client


def _ok(lat: float = 37.4, lng: float = -122.1) -> dict:
    return {
        "status": "OK",
        "results": [
            {
                "formatted_address": "450 Serra Mall, Stanford, CA",
                "geometry": {"location": {"lat": lat, "lng": lng}},
            }
        ],
    }


class TestGeocodingClient:
    def test_resolves_address(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=_ok())

        result = _client(handler).geocode("450 Serra Mall", "Stanford")
        assert result.name == "Stanford"
        assert (result.latitude, result.longitude) == (37.4, -122.1)
        assert result.formatted_address == "450 Serra Mall, Stanford, CA"
        assert seen["params"] == {"address": "450 Serra Mall", "key": "test-key"}

    def test_zero_results(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))
        with pytest.raises(GeocodingError, match="ZERO_RESULTS"):
            client.geocode("nowhere", "X")

    def test_http_error(self) -> None:
        client = _client(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(GeocodingError, match="Failed to geocode"):
            client.geocode("addr", "X")

    def test_malformed_result(self) -> None:
        client = _client(
            lambda r: httpx.Response(200, json={"status": "OK", "results": [{"geometry": {}}]})
        )
        with pytest.raises(GeocodingError, match="Malformed"):
            client.geocode("addr", "X")

    def test_missing_key(self) -> None:
        client = _client(lambda r: httpx.Response(200, json=_ok()), api_key=None)
        with pytest.raises(GeocodingError, match="not configured"):
            client.geocode("addr", "X")

    def test_requires_address_and_name(self) -> None:
        client = _client(lambda r: httpx.Response(200, json=_ok()))
        with pytest.raises(GeocodingError, match="required"):
            client.geocode("", "X")

    def test_satisfies_protocol(self) -> None:
        with GeocodingClient(api_key="k") as client:
            assert isinstance(client, Geocoder)
