"""
Session context dependencies for API routes.

Provides:
- SessionContext: unlocked areas and granted capabilities for the request
- get_app_session: the AppSession backed by the signed session cookie
- get_session_context: FastAPI dependency building the SessionContext
- require_capability: dependency factory that rejects requests lacking a capability
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import Depends, HTTPException, Request, status

from backend.src.auth.capabilities import Capability, capabilities_for
from backend.src.config.session import AppSession
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")


@dataclass(frozen=True)
class SessionContext:
    """
    Access context for the current request.

    Attributes:
        areas: Staff areas unlocked in this browser session
        capabilities: Everything the session may do
        display_name: Cached display name, if any

    Usage:
        @router.post("/attendees")
        async def create_attendee(
            ctx: SessionContext = Depends(require_capability(Capability.ADD))
        ):
            ...
    """

    areas: FrozenSet[str]
    capabilities: FrozenSet[Capability]
    display_name: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return bool(self.areas)

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities


def get_app_session(request: Request) -> AppSession:
    """AppSession over the request's signed cookie session."""
    return AppSession.load(request.session)


async def get_session_context(request: Request) -> SessionContext:
    """
    FastAPI dependency extracting the session context.

    Anonymous requests get the anonymous capability set.
    """
    session = get_app_session(request)
    return SessionContext(
        areas=frozenset(session.areas),
        capabilities=capabilities_for(session.areas),
        display_name=session.display_name,
    )


def require_capability(capability: Capability):
    """
    Build a dependency that requires a capability.

    Raises (from the dependency):
        HTTPException 401: Anonymous session lacking the capability
        HTTPException 403: Staff session lacking the capability
    """

    async def dependency(
        ctx: SessionContext = Depends(get_session_context),
    ) -> SessionContext:
        if ctx.can(capability):
            return ctx
        if not ctx.is_staff:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
            )
        logger.info(f"Denied '{capability.value}' for areas {sorted(ctx.areas)}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permission: {capability.value}",
        )

    return dependency
