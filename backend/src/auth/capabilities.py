"""
Capabilities granted by each staff area.

Screens differ only in what they are allowed to do, so access is expressed
as capability sets instead of one view per role. Anonymous visitors get the
check-in desk capabilities; unlocking an area with its password adds that
area's set.
"""

import enum
import secrets
from typing import Dict, FrozenSet, Iterable

from backend.src.config.settings import get_settings


class Capability(str, enum.Enum):
    """Actions a session may perform."""
    VIEW = "view"
    ADD = "add"
    IMPORT = "import"
    EXPORT = "export"
    SCAN = "scan"
    CHECK_IN = "check_in"
    DELETE = "delete"
    MANAGE_EVENTS = "manage_events"
    MANAGE_SETTINGS = "manage_settings"


ANONYMOUS_CAPABILITIES: FrozenSet[Capability] = frozenset({
    Capability.VIEW,
    Capability.SCAN,
    Capability.CHECK_IN,
})

ROLE_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    "registration": ANONYMOUS_CAPABILITIES | {Capability.ADD, Capability.DELETE},
    "event": frozenset({Capability.VIEW, Capability.MANAGE_EVENTS}),
    "admin": frozenset(Capability),
}


def capabilities_for(areas: Iterable[str]) -> FrozenSet[Capability]:
    """Union of the anonymous set and the sets of every unlocked area."""
    granted = set(ANONYMOUS_CAPABILITIES)
    for area in areas:
        granted |= ROLE_CAPABILITIES.get(area, frozenset())
    return frozenset(granted)


def verify_area_password(area: str, password: str) -> bool:
    """
    Check a staff area password against the configured value.

    Returns:
        False for unknown areas or wrong passwords
    """
    expected = get_settings().area_passwords.get(area)
    if expected is None or password is None:
        return False
    return secrets.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))
