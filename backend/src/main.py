"""
EventFlow FastAPI application.

Startup wires three background loops into the process: the change relay
(committed row changes to the changes WebSocket), the display hub (composed
public display, rotation and pushes) and the lifecycle runner (auto-start,
auto-complete and lane cascades).

Environment Variables:
    EVENTFLOW_DB_URL: Database URL (default: sqlite:///./eventflow.db)
    EVENTFLOW_ENV: production switches logging to rotating JSON files
    EVENTFLOW_LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL (default: INFO)
    SESSION_SECRET_KEY: Secret for signing session cookies (random per process if unset)
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from backend.src.api.display import display_message
from backend.src.config.session import generate_secret_key, get_session_settings
from backend.src.config.settings import get_settings
from backend.src.db.database import DATABASE_URL, init_db
from backend.src.models import Event
from backend.src.services.change_feed import ChangeRelay, get_change_feed
from backend.src.services.display_service import DisplayHub, DisplayStateLoader
from backend.src.services.lifecycle_service import LifecycleEngine, LifecycleRunner
from backend.src.services.store import TableStore
from backend.src.utils.logging_config import init_logging, get_logger
from backend.src.utils.websocket import get_connection_manager

API_VERSION = "1.0.0"


def create_display_hub(session_factory=None) -> DisplayHub:
    """
    Build the display hub, broadcasting to the display WebSocket channel.

    Args:
        session_factory: Session factory for reads (default: SessionLocal)
    """
    settings = get_settings()
    manager = get_connection_manager()
    loader = DisplayStateLoader(session_factory) if session_factory else DisplayStateLoader()

    async def broadcast_display(snapshot: Dict[str, Any]) -> None:
        if manager.get_connection_count(manager.DISPLAY_CHANNEL):
            await manager.broadcast(manager.DISPLAY_CHANNEL, display_message(snapshot))

    return DisplayHub(
        loader,
        broadcast_display,
        lookahead=timedelta(minutes=settings.display_lookahead_minutes),
        rotation_seconds=settings.display_rotation_seconds,
        poll_seconds=settings.display_poll_seconds,
        default_forum_name=settings.default_forum_name,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Start the change relay, display hub and lifecycle runner; stop them in
    reverse order on shutdown. SQLite tables are created if missing.
    """
    logger = get_logger("api")
    settings = get_settings()
    logger.info("Starting EventFlow backend application")

    if DATABASE_URL.startswith("sqlite"):
        logger.info("Creating SQLite tables if missing")
        init_db()

    manager = get_connection_manager()
    feed = get_change_feed()

    relay = ChangeRelay(
        feed,
        lambda message: manager.broadcast(manager.CHANGES_CHANNEL, message),
    )
    relay.start()

    hub = create_display_hub()
    unsubscribe_hub = feed.subscribe_threadsafe(
        asyncio.get_running_loop(), hub.notify, tables={"events", "settings"}
    )
    hub.start()

    engine = LifecycleEngine(TableStore(Event))
    runner = LifecycleRunner(engine, tick_seconds=settings.lifecycle_tick_seconds)
    if settings.lifecycle_enabled:
        runner.start()
    else:
        logger.warning("Lifecycle runner disabled; events will only change status manually")

    app.state.websocket_manager = manager
    app.state.display_hub = hub
    app.state.lifecycle_engine = engine
    logger.info("EventFlow backend started successfully")

    yield

    logger.info("Shutting down EventFlow backend application")
    await runner.stop()
    unsubscribe_hub()
    await hub.stop()
    await relay.stop()


init_logging()

app = FastAPI(
    title="EventFlow API",
    description="Attendee registration and check-in, an agenda that starts and "
                "completes itself, and a live public display.",
    version=API_VERSION,
    lifespan=lifespan,
)

# Staff area unlocks live in a signed cookie session
_session_settings = get_session_settings()
if not _session_settings.is_configured:
    get_logger("api").warning(
        "SESSION_SECRET_KEY is not set; staff logins will not survive a restart"
    )
app.add_middleware(
    SessionMiddleware,
    secret_key=_session_settings.session_secret_key or generate_secret_key(),
    session_cookie=_session_settings.session_cookie_name,
    max_age=_session_settings.session_max_age,
    same_site=_session_settings.session_same_site,
    https_only=_session_settings.session_https_only,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_fields(request: Request, **fields: Any) -> Dict[str, Any]:
    return {"extra_fields": {"path": request.url.path, "method": request.method, **fields}}


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Pydantic errors raised outside request parsing (e.g. response models)."""
    get_logger("api").warning("Validation error", extra=_request_fields(request, errors=exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": "Request validation failed",
            "details": exc.errors(include_url=False, include_context=False),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    get_logger("db").error("Database error", extra=_request_fields(request, error=str(exc)))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Database Error",
            "message": "The database could not be reached. Please try again.",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    get_logger("api").error(
        "Unhandled exception",
        extra=_request_fields(request, error_type=type(exc).__name__, error=str(exc)),
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    return {"status": "healthy", "service": "eventflow-backend", "version": API_VERSION}


@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    return {"message": "EventFlow API", "version": API_VERSION, "docs": "/docs"}


from backend.src.api import attendees, auth, changes, display, events  # noqa: E402
from backend.src.api import settings as settings_api  # noqa: E402

for _router in (auth, attendees, events, display, settings_api, changes):
    app.include_router(_router.router, prefix="/api")
