"""
Public identifiers for attendees and events.

A GUID is "{prefix}_{26 Crockford Base32 chars}" where the payload is the
row's UUIDv7. GUIDs are what staff screens, the display and the change feed
see; integer ids stay in the database layer.

    att_01hgw2bbg0000000000000000   attendee
    evt_01hgw2bbg0000000000000001   event
"""

import re
import uuid

import base32_crockford
from uuid_extensions import uuid7

ENTITY_PREFIXES = {
    "att": "Attendee",
    "evt": "Event",
}

ENCODED_LENGTH = 26

# Crockford alphabet excludes I, L, O and U
GUID_PATTERN = re.compile(
    rf"^({'|'.join(ENTITY_PREFIXES)})_[0-9A-HJKMNP-TV-Z]{{{ENCODED_LENGTH}}}$",
    re.IGNORECASE,
)


class GuidService:
    """Stateless helpers for generating and parsing GUIDs."""

    @staticmethod
    def generate_uuid() -> uuid.UUID:
        return uuid7()

    @staticmethod
    def encode_uuid(uuid_value, prefix: str) -> str:
        """
        Encode a UUID (or its 16 raw bytes) under an entity prefix.

        Raises:
            ValueError: If prefix is not a known entity prefix
        """
        if prefix not in ENTITY_PREFIXES:
            known = ", ".join(ENTITY_PREFIXES)
            raise ValueError(f"Invalid prefix '{prefix}'. Valid prefixes: {known}")

        raw = uuid_value if isinstance(uuid_value, bytes) else uuid_value.bytes
        payload = base32_crockford.encode(int.from_bytes(raw, "big"))
        return f"{prefix}_{payload.zfill(ENCODED_LENGTH).lower()}"

    @classmethod
    def generate_guid(cls, prefix: str) -> str:
        return cls.encode_uuid(cls.generate_uuid(), prefix)

    @staticmethod
    def decode_guid(guid: str) -> tuple[str, uuid.UUID]:
        """
        Split a GUID into (prefix, UUID). Case-insensitive.

        Raises:
            ValueError: If the string is empty, malformed or not decodable
        """
        if not guid:
            raise ValueError("GUID cannot be empty")
        if not GUID_PATTERN.match(guid):
            raise ValueError(f"Invalid GUID format: {guid}")

        prefix, payload = guid.split("_", 1)
        try:
            value = base32_crockford.decode(payload.upper())
            return prefix.lower(), uuid.UUID(bytes=value.to_bytes(16, "big"))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid GUID encoding: {e}")

    @staticmethod
    def validate_guid(guid: str, expected_prefix: str = None) -> bool:
        if not guid or not GUID_PATTERN.match(guid):
            return False
        return expected_prefix is None or guid[:3].lower() == expected_prefix.lower()

    @classmethod
    def parse_guid(cls, guid: str, expected_prefix: str) -> uuid.UUID:
        """
        Decode a GUID that must belong to one entity type.

        Raises:
            ValueError: If malformed or carrying another entity's prefix
        """
        prefix, value = cls.decode_guid(guid)
        if prefix != expected_prefix.lower():
            raise ValueError(f"Invalid prefix. Expected '{expected_prefix}', got '{prefix}'")
        return value

    @staticmethod
    def get_entity_type(guid: str) -> str | None:
        """Entity name for a GUID's prefix, or None."""
        if not guid:
            return None
        return ENTITY_PREFIXES.get(guid[:3].lower())
