"""
Application settings configuration for EventFlow.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        EVENTFLOW_ADMIN_PASSWORD: Password for the admin area (default: "admin123")
        EVENTFLOW_REGISTRATION_PASSWORD: Password for the registration desk (default: "registration123")
        EVENTFLOW_EVENT_PASSWORD: Password for event management (default: "event123")
        EVENTFLOW_LIFECYCLE_ENABLED: Run the background lifecycle ticker (default: True)
        EVENTFLOW_LIFECYCLE_TICK_SECONDS: Seconds between lifecycle evaluations (default: 1.0)
        EVENTFLOW_DISPLAY_LOOKAHEAD_MINUTES: Look-ahead window for upcoming events (default: 15)
        EVENTFLOW_DISPLAY_ROTATION_SECONDS: Carousel period per location (default: 10)
        EVENTFLOW_DISPLAY_POLL_SECONDS: Fallback re-fetch period for the display (default: 5)
        EVENTFLOW_DEFAULT_FORUM_NAME: Display name used until one is saved (default: "EventFlow.io")
        EVENTFLOW_CORS_ORIGINS: Comma-separated browser origins (default: localhost:3000)

    The area passwords are a placeholder gate for the staff screens, not a
    security boundary.
    """

    # Area passwords
    admin_password: str = Field(
        default="admin123",
        validation_alias="EVENTFLOW_ADMIN_PASSWORD",
    )

    registration_password: str = Field(
        default="registration123",
        validation_alias="EVENTFLOW_REGISTRATION_PASSWORD",
    )

    event_password: str = Field(
        default="event123",
        validation_alias="EVENTFLOW_EVENT_PASSWORD",
    )

    # Lifecycle engine
    lifecycle_enabled: bool = Field(
        default=True,
        validation_alias="EVENTFLOW_LIFECYCLE_ENABLED",
    )

    lifecycle_tick_seconds: float = Field(
        default=1.0,
        validation_alias="EVENTFLOW_LIFECYCLE_TICK_SECONDS",
        gt=0,
        le=60,
    )

    # Public display
    display_lookahead_minutes: int = Field(
        default=15,
        validation_alias="EVENTFLOW_DISPLAY_LOOKAHEAD_MINUTES",
        ge=0,
    )

    display_rotation_seconds: int = Field(
        default=10,
        validation_alias="EVENTFLOW_DISPLAY_ROTATION_SECONDS",
        ge=1,
    )

    display_poll_seconds: int = Field(
        default=5,
        validation_alias="EVENTFLOW_DISPLAY_POLL_SECONDS",
        ge=1,
    )

    default_forum_name: str = Field(
        default="EventFlow.io",
        validation_alias="EVENTFLOW_DEFAULT_FORUM_NAME",
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="EVENTFLOW_CORS_ORIGINS",
        description="Comma-separated origins allowed to call the API from a browser",
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def area_passwords(self) -> Dict[str, str]:
        """Map of staff area name to its password."""
        return {
            "admin": self.admin_password,
            "registration": self.registration_password,
            "event": self.event_password,
        }

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
