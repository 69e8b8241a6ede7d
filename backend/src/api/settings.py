"""
Settings API endpoints.

Provides:
- GET /settings/{key} - Read a setting (public; the display reads forum_name)
- PUT /settings/{key} - Change a setting (admin)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.src.auth.capabilities import Capability
from backend.src.db.database import get_db
from backend.src.middleware.auth import SessionContext, require_capability
from backend.src.schemas.setting import SettingResponse, SettingUpdate
from backend.src.services.exceptions import NotFoundError, StoreError, ValidationError
from backend.src.services.setting_service import SettingService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(prefix="/settings", tags=["Settings"])


def get_setting_service(db: Session = Depends(get_db)) -> SettingService:
    """Create SettingService instance with database session."""
    return SettingService(db=db)


@router.get(
    "/{key}",
    response_model=SettingResponse,
    summary="Get setting",
)
async def get_setting(
    key: str,
    setting_service: SettingService = Depends(get_setting_service),
) -> SettingResponse:
    """
    Get a setting value (default when never set).

    Raises:
        404 Not Found: If the key is not a known setting
    """
    try:
        return SettingResponse(key=key, value=setting_service.get(key))

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Setting not found: {key}",
        )

    except Exception as e:
        logger.error(f"Error getting setting {key}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred",
        )


@router.put(
    "/{key}",
    response_model=SettingResponse,
    summary="Update setting",
)
async def update_setting(
    key: str,
    setting_update: SettingUpdate,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_SETTINGS)),
    setting_service: SettingService = Depends(get_setting_service),
) -> SettingResponse:
    """
    Change a setting.

    Raises:
        404 Not Found: If the key is not a known setting
        400 Bad Request: If the value is blank
        503 Service Unavailable: If the value could not be saved

    Example:
        PUT /api/settings/forum_name
        {"value": "Spring Forum 2026"}
    """
    try:
        value = setting_service.set(key, setting_update.value)
        return SettingResponse(key=key, value=value)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Setting not found: {key}",
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except StoreError as e:
        logger.error(f"Setting {key} could not be saved: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not save setting, please retry",
        )

    except Exception as e:
        logger.error(f"Error updating setting {key}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred",
        )
