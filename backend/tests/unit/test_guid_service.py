"""
Unit tests for GuidService.

Tests cover:
- Generation for attendee and event prefixes
- Encoding and decoding of UUIDs
- Validation and prefix enforcement
"""

import uuid

import pytest

from backend.src.services.guid import GuidService


class TestGuidService:

    @pytest.mark.parametrize("prefix", ["att", "evt"])
    def test_generate_guid(self, prefix):
        guid = GuidService.generate_guid(prefix)

        assert guid.startswith(f"{prefix}_")
        assert len(guid) == 30
        assert GuidService.validate_guid(guid, prefix)

    def test_generated_uuids_are_time_ordered(self):
        first = GuidService.generate_uuid()
        second = GuidService.generate_uuid()

        assert first.version == 7
        assert first.bytes[:6] <= second.bytes[:6]

    def test_decode_reverses_encode(self):
        value = uuid.UUID("01890a5d-ac96-774b-bcce-b302099a8057")
        guid = GuidService.encode_uuid(value, "evt")

        assert GuidService.decode_guid(guid) == ("evt", value)
        assert GuidService.decode_guid(guid.upper()) == ("evt", value)

    def test_invalid_prefix(self):
        with pytest.raises(ValueError):
            GuidService.encode_uuid(uuid.uuid4(), "xyz")

    @pytest.mark.parametrize("guid", ["", "evt_short", "usr_" + "0" * 26, "evt-" + "0" * 26])
    def test_invalid_guids(self, guid):
        assert not GuidService.validate_guid(guid)

    def test_parse_guid_enforces_prefix(self):
        guid = GuidService.generate_guid("att")

        with pytest.raises(ValueError, match="Expected 'evt'"):
            GuidService.parse_guid(guid, "evt")

    def test_entity_type(self):
        assert GuidService.get_entity_type("att_" + "0" * 26) == "Attendee"
        assert GuidService.get_entity_type("evt_" + "0" * 26) == "Event"
        assert GuidService.get_entity_type("zz") is None
