"""
Staff area authentication API endpoints.

Provides password login for the staff areas:
- POST /auth/login - Unlock an area (registration, event, admin)
- POST /auth/logout - Lock one area, or all of them
- GET /auth/session - Current areas, capabilities and display name

Unlocked areas live in the signed session cookie, so they last for the
browser session and are shared across tabs.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from backend.src.auth.capabilities import capabilities_for, verify_area_password
from backend.src.config.session import AppSession
from backend.src.middleware.auth import get_app_session
from backend.src.schemas.auth import LoginRequest, LogoutRequest, SessionResponse
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _session_response(session: AppSession) -> SessionResponse:
    return SessionResponse(
        areas=sorted(session.areas),
        capabilities=sorted(c.value for c in capabilities_for(session.areas)),
        display_name=session.display_name,
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Unlock a staff area",
)
async def login(
    login_request: LoginRequest,
    request: Request,
) -> SessionResponse:
    """
    Unlock a staff area with its password.

    Raises:
        401 Unauthorized: If the password is wrong

    Example:
        POST /api/auth/login
        {"area": "registration", "password": "registration123"}
    """
    if not verify_area_password(login_request.area, login_request.password):
        logger.warning(f"Failed login for area '{login_request.area}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )

    session = get_app_session(request)
    session.login(login_request.area)
    if login_request.display_name and login_request.display_name.strip():
        session.display_name = login_request.display_name.strip()
    session.save()

    logger.info(f"Unlocked area '{login_request.area}'")
    return _session_response(session)


@router.post(
    "/logout",
    response_model=SessionResponse,
    summary="Lock staff areas",
)
async def logout(
    logout_request: LogoutRequest,
    request: Request,
) -> SessionResponse:
    """Lock the given area, or every area when none is given."""
    session = get_app_session(request)
    session.logout(logout_request.area)
    session.save()
    logger.info(f"Locked area '{logout_request.area or 'all'}'")
    return _session_response(session)


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Get session context",
)
async def get_session(
    session: AppSession = Depends(get_app_session),
) -> SessionResponse:
    """Unlocked areas and granted capabilities for this browser."""
    return _session_response(session)
