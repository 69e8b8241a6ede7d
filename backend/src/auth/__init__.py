"""
Access control for the staff screens.

Components:
- capabilities: Capability enum, per-area capability sets, password check
"""

from backend.src.auth.capabilities import (
    Capability,
    ANONYMOUS_CAPABILITIES,
    ROLE_CAPABILITIES,
    capabilities_for,
    verify_area_password,
)

__all__ = [
    "Capability",
    "ANONYMOUS_CAPABILITIES",
    "ROLE_CAPABILITIES",
    "capabilities_for",
    "verify_area_password",
]
