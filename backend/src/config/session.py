"""
Staff session cookie settings and the per-browser session context.

The cookie is signed by Starlette's SessionMiddleware. AppSession records
which staff areas are unlocked and the cached display name, and works over
any mutable mapping: the cookie session in production, a dict in tests.
"""

import secrets
from functools import lru_cache
from typing import Iterable, Literal, MutableMapping, Optional, Set

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class SessionSettings(BaseSettings):
    """
    SESSION_SECRET_KEY, SESSION_MAX_AGE (seconds, default 12 hours),
    SESSION_COOKIE_NAME, SESSION_SAME_SITE and SESSION_HTTPS_ONLY.
    """

    session_secret_key: str = Field(
        default="",
        validation_alias="SESSION_SECRET_KEY",
        description="Empty means a random key per process",
    )

    # One event day by default
    session_max_age: int = Field(
        default=12 * 60 * 60,
        validation_alias="SESSION_MAX_AGE",
        ge=60,
        le=30 * 24 * 60 * 60,
    )

    session_cookie_name: str = Field(
        default="eventflow_session",
        validation_alias="SESSION_COOKIE_NAME"
    )

    session_same_site: Literal["lax", "strict", "none"] = Field(
        default="lax",
        validation_alias="SESSION_SAME_SITE"
    )

    session_https_only: bool = Field(
        default=False,
        validation_alias="SESSION_HTTPS_ONLY"
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("session_secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v and len(v) < 32:
            raise ValueError("SESSION_SECRET_KEY must be at least 32 characters")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.session_secret_key)


@lru_cache()
def get_session_settings() -> SessionSettings:
    return SessionSettings()


def generate_secret_key() -> str:
    """Random URL-safe key for processes started without SESSION_SECRET_KEY."""
    return secrets.token_urlsafe(32)


STAFF_AREAS = ("registration", "event", "admin")

_AREAS_KEY = "authenticated_areas"
_DISPLAY_NAME_KEY = "display_name"


class AppSession:
    """
    Session context for one browser.

    Holds the staff areas unlocked by password and the cached display name.
    Use load() to build it from a key-value store and save() to persist
    changes back; nothing is written until save() is called.

    Usage:
        >>> store = {}
        >>> session = AppSession.load(store)
        >>> session.login("registration")
        >>> session.save()
        >>> AppSession.load(store).is_authenticated("registration")
        True
    """

    def __init__(
        self,
        store: MutableMapping,
        areas: Optional[Iterable[str]] = None,
        display_name: Optional[str] = None,
    ):
        self._store = store
        self._areas: Set[str] = {a for a in (areas or []) if a in STAFF_AREAS}
        self.display_name = display_name

    @classmethod
    def load(cls, store: MutableMapping) -> "AppSession":
        """Build a session context from a key-value store."""
        return cls(
            store,
            areas=store.get(_AREAS_KEY) or [],
            display_name=store.get(_DISPLAY_NAME_KEY),
        )

    def save(self) -> None:
        """Write the session context back to its key-value store."""
        self._store[_AREAS_KEY] = sorted(self._areas)
        if self.display_name is None:
            self._store.pop(_DISPLAY_NAME_KEY, None)
        else:
            self._store[_DISPLAY_NAME_KEY] = self.display_name

    @property
    def areas(self) -> Set[str]:
        return set(self._areas)

    def is_authenticated(self, area: str) -> bool:
        return area in self._areas

    def login(self, area: str) -> None:
        if area not in STAFF_AREAS:
            raise ValueError(f"Unknown area: {area}")
        self._areas.add(area)

    def logout(self, area: Optional[str] = None) -> None:
        """Lock one area, or every area when none is given."""
        if area is None:
            self._areas.clear()
        else:
            self._areas.discard(area)
