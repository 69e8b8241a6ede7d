"""
Setting service for runtime key/value settings.

Only a small set of keys is recognised; currently the forum name shown in
the public display header.
"""

from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.config.settings import get_settings
from backend.src.models import Setting, FORUM_NAME_KEY
from backend.src.services.exceptions import NotFoundError, StoreError, ValidationError
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

MAX_VALUE_LENGTH = 200


def setting_defaults() -> Dict[str, str]:
    """Known setting keys and their values when unset."""
    return {FORUM_NAME_KEY: get_settings().default_forum_name}


class SettingService:
    """
    Service for reading and writing runtime settings.

    Usage:
        >>> service = SettingService(db_session)
        >>> service.set("forum_name", "Spring Forum 2026")
        >>> service.get("forum_name")
        'Spring Forum 2026'
    """

    def __init__(self, db: Session):
        self.db = db

    def _require_known(self, key: str) -> None:
        if key not in setting_defaults():
            raise NotFoundError("Setting", key)

    def get(self, key: str) -> str:
        """
        Get a setting value, falling back to its default.

        Raises:
            NotFoundError: If the key is not a known setting
        """
        self._require_known(key)
        setting = self.db.query(Setting).filter(Setting.key == key).first()
        if setting is None:
            return setting_defaults()[key]
        return setting.value

    def set(self, key: str, value: Optional[str]) -> str:
        """
        Store a setting value.

        Raises:
            NotFoundError: If the key is not a known setting
            ValidationError: If the value is empty or too long
        """
        self._require_known(key)
        value = (value or "").strip()
        if not value:
            raise ValidationError("Value is required", field="value")
        if len(value) > MAX_VALUE_LENGTH:
            raise ValidationError(
                f"Value must be at most {MAX_VALUE_LENGTH} characters", field="value"
            )

        setting = self.db.query(Setting).filter(Setting.key == key).first()
        if setting is None:
            setting = Setting(key=key, value=value)
            self.db.add(setting)
        else:
            setting.value = value

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save setting {key}: {e}")
            raise StoreError("update", Setting.__tablename__, e) from e

        logger.info(f"Updated setting {key}")
        return value

    def get_forum_name(self) -> str:
        return self.get(FORUM_NAME_KEY)
