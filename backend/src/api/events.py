"""
Events API endpoints for managing the agenda.

Provides:
- List events in running order with search, status and location filters
- Event statistics and distinct locations
- Create, read, update and delete events
- Manual lifecycle transitions (start, complete, cancel)
- Move up/down and explicit reorder of the running order
- CSV import, export and template

Design:
- Uses dependency injection for services
- Status changes go through the lifecycle engine on app.state so manual
  and automatic transitions share one set of rules
- All endpoints use GUID format (evt_xxx) for identifiers
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from backend.src.auth.capabilities import Capability
from backend.src.db.database import get_db
from backend.src.middleware.auth import SessionContext, require_capability
from backend.src.schemas.csv_import import ImportResultResponse
from backend.src.schemas.event import (
    EventCreate,
    EventListResponse,
    EventMoveRequest,
    EventReorderRequest,
    EventResponse,
    EventStatsResponse,
    EventTransitionResponse,
    EventUpdate,
    LocationListResponse,
)
from backend.src.services.event_service import EventService
from backend.src.services.exceptions import (
    CsvFormatError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from backend.src.services.lifecycle_service import LifecycleEngine, TransitionResult
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/events",
    tags=["Events"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService(db=db)


def get_lifecycle_engine(request: Request) -> LifecycleEngine:
    """Get the lifecycle engine from application state."""
    return request.app.state.lifecycle_engine


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An internal error occurred",
    )


def _not_found(guid: str) -> HTTPException:
    logger.warning(f"Event not found: {guid}")
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Event not found: {guid}",
    )


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Collection Endpoints
# ============================================================================


@router.get(
    "",
    response_model=EventListResponse,
    summary="List events",
    description="List events in running order (cue_order)",
)
async def list_events(
    search: Optional[str] = Query(None, description="Search title, description or presenter"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    location: Optional[str] = Query(None, description="Filter by location"),
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    event_service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    List events.

    Query Parameters:
        search: Case-insensitive substring of title, description or presenter
        status: scheduled, in_progress, completed or cancelled
        location: Exact location

    Raises:
        400 Bad Request: If status is not recognised
    """
    try:
        events = event_service.list(search=search, status=status_filter, location=location)
        return EventListResponse(
            items=[EventResponse.model_validate(e) for e in events],
            total=len(events),
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("listing events", e)


@router.get(
    "/stats",
    response_model=EventStatsResponse,
    summary="Get event statistics",
)
async def get_event_stats(
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    event_service: EventService = Depends(get_event_service),
) -> EventStatsResponse:
    """
    Get event counts by status.

    Example:
        GET /api/events/stats

        Response:
        {
          "total": 12,
          "scheduled": 8,
          "in_progress": 2,
          "completed": 2,
          "cancelled": 0
        }
    """
    try:
        return EventStatsResponse(**event_service.get_stats())
    except Exception as e:
        raise _internal_error("getting event stats", e)


@router.get(
    "/locations",
    response_model=LocationListResponse,
    summary="List event locations",
)
async def list_event_locations(
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    event_service: EventService = Depends(get_event_service),
) -> LocationListResponse:
    """Distinct non-empty locations, for filters and the location picker."""
    try:
        return LocationListResponse(locations=event_service.get_locations())
    except Exception as e:
        raise _internal_error("listing locations", e)


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
async def create_event(
    event: EventCreate,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Create an event at the end of the running order.

    Raises:
        400 Bad Request: If the times are inconsistent

    Example:
        POST /api/events
        {
          "title": "Welcome Keynote",
          "location": "Main Hall",
          "start_time": "2026-01-20T09:00:00Z",
          "duration": 60
        }
    """
    try:
        created = event_service.create(**event.model_dump())
        return EventResponse.model_validate(created)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("creating event", e)


@router.put(
    "/reorder",
    response_model=EventListResponse,
    summary="Reorder events",
    description="Set the running order explicitly; cue_order is renumbered 1..n",
)
async def reorder_events(
    reorder_request: EventReorderRequest,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    event_service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    Reorder events.

    Raises:
        404 Not Found: If any GUID is unknown
        400 Bad Request: If a GUID is repeated
    """
    try:
        events = event_service.reorder(reorder_request.guids)
        return EventListResponse(
            items=[EventResponse.model_validate(e) for e in events],
            total=len(events),
        )

    except NotFoundError as e:
        raise _not_found(str(e.identifier))

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("reordering events", e)


# ============================================================================
# CSV Endpoints
# ============================================================================


@router.post(
    "/import",
    response_model=ImportResultResponse,
    summary="Import events from CSV",
)
async def import_events(
    file: UploadFile = File(..., description="CSV with title, start_time and end_time columns"),
    ctx: SessionContext = Depends(require_capability(Capability.IMPORT)),
    event_service: EventService = Depends(get_event_service),
) -> ImportResultResponse:
    """
    Import events from CSV, appended to the running order in file order.

    Raises:
        400 Bad Request: If the header lacks a required column
    """
    try:
        content = await file.read()
        result = event_service.import_csv(content)
        logger.info(f"Event import from {file.filename}: {result['imported']} imported")
        return ImportResultResponse(**result)

    except CsvFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("importing events", e)


@router.get(
    "/export",
    summary="Export events as CSV",
    response_class=Response,
)
async def export_events(
    ctx: SessionContext = Depends(require_capability(Capability.EXPORT)),
    event_service: EventService = Depends(get_event_service),
) -> Response:
    """Export all events in running order."""
    try:
        content = event_service.export_csv()
    except Exception as e:
        raise _internal_error("exporting events", e)
    return _csv_response(content, f"events_{date.today().isoformat()}.csv")


@router.get(
    "/template",
    summary="Download event CSV template",
    response_class=Response,
)
async def event_template(
    ctx: SessionContext = Depends(require_capability(Capability.IMPORT)),
) -> Response:
    """Sample CSV accepted by the import endpoint."""
    return _csv_response(EventService.template_csv(), "events_template.csv")


# ============================================================================
# Single Event Endpoints
# ============================================================================


@router.get(
    "/{guid}",
    response_model=EventResponse,
    summary="Get event",
)
async def get_event(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Get event by GUID.

    Raises:
        404 Not Found: If event doesn't exist
    """
    try:
        return EventResponse.model_validate(event_service.get_by_guid(guid))

    except NotFoundError:
        raise _not_found(guid)

    except Exception as e:
        raise _internal_error("getting event", e)


@router.put(
    "/{guid}",
    response_model=EventResponse,
    summary="Update event",
)
async def update_event(
    guid: str,
    event_update: EventUpdate,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Update event fields. Only fields present in the body are changed.

    Raises:
        404 Not Found: If event doesn't exist
        400 Bad Request: If the times are inconsistent
    """
    try:
        updated = event_service.update(guid, **event_update.model_dump(exclude_unset=True))
        return EventResponse.model_validate(updated)

    except NotFoundError:
        raise _not_found(guid)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("updating event", e)


@router.delete(
    "/{guid}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
)
async def delete_event(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    event_service: EventService = Depends(get_event_service),
) -> None:
    """
    Delete event by GUID.

    Raises:
        404 Not Found: If event doesn't exist
    """
    try:
        event_service.delete(guid)

    except NotFoundError:
        raise _not_found(guid)

    except Exception as e:
        raise _internal_error("deleting event", e)


@router.post(
    "/{guid}/move",
    response_model=EventListResponse,
    summary="Move event up or down",
)
async def move_event(
    guid: str,
    move_request: EventMoveRequest,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    event_service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    Swap an event with its neighbour in the running order.

    Raises:
        404 Not Found: If event doesn't exist
    """
    try:
        events = event_service.move(guid, move_request.direction)
        return EventListResponse(
            items=[EventResponse.model_validate(e) for e in events],
            total=len(events),
        )

    except NotFoundError:
        raise _not_found(guid)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("moving event", e)


# ============================================================================
# Lifecycle Endpoints
# ============================================================================


def _transition_response(result: TransitionResult) -> EventTransitionResponse:
    return EventTransitionResponse(
        event=EventResponse.model_validate(result.event),
        cascaded=EventResponse.model_validate(result.cascaded) if result.cascaded else None,
    )


def _run_transition(guid: str, action) -> EventTransitionResponse:
    try:
        return _transition_response(action())

    except NotFoundError:
        raise _not_found(guid)

    except InvalidTransitionError as e:
        logger.warning(f"Rejected transition: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    except StoreError as e:
        logger.error(f"Transition of {guid} could not be saved: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not save status change, please retry",
        )

    except Exception as e:
        raise _internal_error("changing event status", e)


@router.post(
    "/{guid}/start",
    response_model=EventTransitionResponse,
    summary="Start event",
)
async def start_event(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> EventTransitionResponse:
    """
    Start a scheduled event now; end_time becomes now + duration.

    Raises:
        404 Not Found: If event doesn't exist
        409 Conflict: If the event is not scheduled
    """
    return _run_transition(guid, lambda: engine.start(guid))


@router.post(
    "/{guid}/complete",
    response_model=EventTransitionResponse,
    summary="Complete event",
)
async def complete_event(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> EventTransitionResponse:
    """
    Complete an in-progress event and start the next one in its location.

    Raises:
        404 Not Found: If event doesn't exist
        409 Conflict: If the event is not in progress
    """
    return _run_transition(guid, lambda: engine.complete(guid))


@router.post(
    "/{guid}/cancel",
    response_model=EventTransitionResponse,
    summary="Cancel event",
)
async def cancel_event(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.MANAGE_EVENTS)),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> EventTransitionResponse:
    """
    Cancel a scheduled or in-progress event. Cancelled events are final.

    Raises:
        404 Not Found: If event doesn't exist
        409 Conflict: If the event already completed or was cancelled
    """
    return _run_transition(guid, lambda: engine.cancel(guid))
