"""Tests for map location models and merge helpers."""

import pytest
from pydantic import ValidationError

from collegebot_core.errors import LocationValidationError
from collegebot_core.locations.models import (
    LocationInput,
    LocationType,
    merge_metadata,
    slugify,
    union_chats,
)


class TestLocationInput:
    def test_accepts_agent_payload(self) -> None:
        loc = LocationInput.model_validate(
            {
                "name": " Stanford University ",
                "type": "college",
                "latitude": 37.43,
                "longitude": -122.17,
                "sourceChats": ["chat-1"],
            }
        )
        assert loc.name == "Stanford University"
        assert loc.type is LocationType.COLLEGE
        assert loc.source_chats == ["chat-1"]
        assert loc.has_coordinates

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LocationInput(name="X", type="museum")

    def test_coordinates_must_be_paired(self) -> None:
        with pytest.raises(ValidationError, match="together"):
            LocationInput(name="X", type="college", latitude=10.0)

    def test_latitude_range_checked(self) -> None:
        with pytest.raises(ValidationError):
            LocationInput(name="X", type="college", latitude=91.0, longitude=0.0)

    def test_address_from_metadata(self) -> None:
        loc = LocationInput(name="X", type="college", metadata={"address": "  1 Main St "})
        assert loc.address == "1 Main St"

    def test_require_position_without_address(self) -> None:
        loc = LocationInput(name="X", type="scholarship")
        with pytest.raises(LocationValidationError) as exc_info:
            loc.require_position()
        assert "metadata.address" in exc_info.value.field

    def test_reference_links_validated(self) -> None:
        loc = LocationInput(
            name="X",
            type="college",
            metadata={"referenceLinks": [{"url": "https://x.edu", "dateFound": "2024-09-01"}]},
        )
        link = loc.metadata["referenceLinks"][0]
        assert link["url"] == "https://x.edu"
        assert link["dateFound"] == "2024-09-01"

    def test_reference_link_without_url_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LocationInput(name="X", type="college", metadata={"referenceLinks": [{"title": "t"}]})


class TestMergeMetadata:
    def test_one_level_deep(self) -> None:
        old = {"website": "a", "stats": {"rate": 4, "size": 17000}, "address": "1 Main"}
        new = {"stats": {"rate": 5}, "deadline": "Jan 5"}
        merged = merge_metadata(old, new)
        assert merged == {
            "website": "a",
            "stats": {"rate": 5, "size": 17000},
            "address": "1 Main",
            "deadline": "Jan 5",
        }

    def test_nested_levels_replaced(self) -> None:
        old = {"aid": {"need": {"full": True, "loans": False}}}
        new = {"aid": {"need": {"full": False}}}
        assert merge_metadata(old, new) == {"aid": {"need": {"full": False}}}

    def test_scalar_last_writer_wins(self) -> None:
        assert merge_metadata({"website": "a"}, {"website": "b"}) == {"website": "b"}

    def test_inputs_not_mutated(self) -> None:
        old = {"stats": {"rate": 4}}
        merge_metadata(old, {"stats": {"size": 1}})
        assert old == {"stats": {"rate": 4}}


class TestHelpers:
    def test_union_chats_preserves_order(self) -> None:
        assert union_chats(["a", "b"], ["b", "c", ""]) == ["a", "b", "c"]

    def test_slugify(self) -> None:
        assert slugify("University of California, Berkeley") == (
            "university-of-california-berkeley"
        )
        assert slugify("!!!") == "location"
