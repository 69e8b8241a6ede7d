"""
Attendees API endpoints for registration and check-in.

Provides:
- List attendees with search and check-in filter
- Attendance statistics
- Register and delete attendees (with duplicate detection)
- Check-in, undo and toggle, and check-in by QR scan
- QR code image per attendee
- CSV import, export and template

Design:
- Uses dependency injection for services
- Access is gated by session capabilities (see middleware.auth)
- All endpoints use GUID format (att_xxx) for identifiers
- A duplicate registration is a 409 with its own message and the existing record
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from backend.src.auth.capabilities import Capability
from backend.src.db.database import get_db
from backend.src.middleware.auth import SessionContext, require_capability
from backend.src.schemas.attendee import (
    AttendeeCreate,
    AttendeeListResponse,
    AttendeeResponse,
    AttendeeStatsResponse,
    ScanRequest,
)
from backend.src.schemas.csv_import import ImportResultResponse
from backend.src.services.attendee_service import AttendeeService
from backend.src.services.exceptions import (
    ConflictError,
    CsvFormatError,
    DuplicateAttendeeError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/attendees",
    tags=["Attendees"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_attendee_service(db: Session = Depends(get_db)) -> AttendeeService:
    """Create AttendeeService instance with database session."""
    return AttendeeService(db=db)


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An internal error occurred",
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
    response_model=AttendeeListResponse,
    summary="List attendees",
    description="List attendees, newest first, with optional search and check-in filter",
)
async def list_attendees(
    search: Optional[str] = Query(None, description="Search name, email or company"),
    filter: str = Query("all", description="all, checked-in or not-checked-in"),
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeListResponse:
    """
    List attendees.

    Query Parameters:
        search: Case-insensitive substring of name, email or company
        filter: all (default), checked-in, not-checked-in

    Raises:
        400 Bad Request: If filter is not recognised
    """
    try:
        attendees = attendee_service.list(search=search, check_in_filter=filter)
        return AttendeeListResponse(
            items=[AttendeeResponse.model_validate(a) for a in attendees],
            total=len(attendees),
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("listing attendees", e)


@router.get(
    "/stats",
    response_model=AttendeeStatsResponse,
    summary="Get attendance statistics",
)
async def get_attendee_stats(
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeStatsResponse:
    """
    Get attendance statistics.

    Example:
        GET /api/attendees/stats

        Response:
        {
          "total": 120,
          "checked_in": 87,
          "not_checked_in": 33
        }
    """
    try:
        return AttendeeStatsResponse(**attendee_service.get_stats())
    except Exception as e:
        raise _internal_error("getting attendee stats", e)


@router.post(
    "",
    response_model=AttendeeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register attendee",
)
async def create_attendee(
    attendee: AttendeeCreate,
    ctx: SessionContext = Depends(require_capability(Capability.ADD)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeResponse:
    """
    Register a new attendee.

    Raises:
        400 Bad Request: If validation fails
        409 Conflict: If the attendee already exists; the body carries the
            message and the existing record

    Example:
        POST /api/attendees
        {
          "name": "Ann Lee",
          "email": "ann@example.com",
          "company": "Example Inc."
        }
    """
    try:
        created = attendee_service.create(
            name=attendee.name,
            email=attendee.email,
            company=attendee.company,
        )
        return AttendeeResponse.model_validate(created)

    except DuplicateAttendeeError as e:
        logger.info(f"Duplicate attendee: {attendee.name}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": e.message, "existing": e.existing},
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("creating attendee", e)


@router.post(
    "/scan",
    response_model=AttendeeResponse,
    summary="Check in by QR scan",
    description="Check in the attendee whose email is the scanned QR payload",
)
async def scan_check_in(
    scan: ScanRequest,
    ctx: SessionContext = Depends(require_capability(Capability.SCAN)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeResponse:
    """
    Check in by QR scan.

    Raises:
        400 Bad Request: If the payload is empty
        404 Not Found: If no attendee has that email
    """
    try:
        attendee = attendee_service.check_in_by_scan(scan.payload)
        return AttendeeResponse.model_validate(attendee)

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendee not found")

    except Exception as e:
        raise _internal_error("checking in by scan", e)


# ============================================================================
# CSV Endpoints
# ============================================================================


@router.post(
    "/import",
    response_model=ImportResultResponse,
    summary="Import attendees from CSV",
)
async def import_attendees(
    file: UploadFile = File(..., description="CSV with name and email columns"),
    ctx: SessionContext = Depends(require_capability(Capability.IMPORT)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> ImportResultResponse:
    """
    Import attendees from CSV.

    Duplicates of existing attendees, and of earlier rows in the same file,
    are skipped.

    Raises:
        400 Bad Request: If the header lacks name or email
        409 Conflict: If a row collided with a concurrent registration
    """
    try:
        content = await file.read()
        result = attendee_service.import_csv(content)
        logger.info(f"Attendee import from {file.filename}: {result['imported']} imported")
        return ImportResultResponse(**result)

    except CsvFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    except Exception as e:
        raise _internal_error("importing attendees", e)


@router.get(
    "/export",
    summary="Export attendees as CSV",
    response_class=Response,
)
async def export_attendees(
    ctx: SessionContext = Depends(require_capability(Capability.EXPORT)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> Response:
    """Export all attendees: Name, Email, Company, Status, Check-in Time."""
    try:
        content = attendee_service.export_csv()
    except Exception as e:
        raise _internal_error("exporting attendees", e)
    return _csv_response(content, f"attendees_{date.today().isoformat()}.csv")


@router.get(
    "/template",
    summary="Download attendee CSV template",
    response_class=Response,
)
async def attendee_template(
    ctx: SessionContext = Depends(require_capability(Capability.IMPORT)),
) -> Response:
    """Sample CSV accepted by the import endpoint."""
    return _csv_response(AttendeeService.template_csv(), "attendees_template.csv")


# ============================================================================
# Single Attendee Endpoints
# ============================================================================


@router.get(
    "/{guid}",
    response_model=AttendeeResponse,
    summary="Get attendee",
)
async def get_attendee(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeResponse:
    """
    Get attendee by GUID.

    Raises:
        404 Not Found: If attendee doesn't exist
    """
    try:
        return AttendeeResponse.model_validate(attendee_service.get_by_guid(guid))

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendee not found: {guid}",
        )

    except Exception as e:
        raise _internal_error("getting attendee", e)


@router.delete(
    "/{guid}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete attendee",
)
async def delete_attendee(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.DELETE)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> None:
    """
    Delete attendee by GUID.

    Raises:
        404 Not Found: If attendee doesn't exist
    """
    try:
        attendee_service.delete(guid)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendee not found: {guid}",
        )

    except Exception as e:
        raise _internal_error("deleting attendee", e)


async def _change_check_in(guid: str, action) -> AttendeeResponse:
    try:
        return AttendeeResponse.model_validate(action())

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendee not found: {guid}",
        )

    except StoreError as e:
        logger.error(f"Check-in update failed for {guid}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not save check-in, please retry",
        )

    except Exception as e:
        raise _internal_error("updating check-in", e)


@router.post(
    "/{guid}/check-in",
    response_model=AttendeeResponse,
    summary="Check in attendee",
)
async def check_in_attendee(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.CHECK_IN)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeResponse:
    """Mark attendee as checked in and stamp the check-in time."""
    return await _change_check_in(
        guid, lambda: attendee_service.set_checked_in(guid, True)
    )


@router.post(
    "/{guid}/undo-check-in",
    response_model=AttendeeResponse,
    summary="Undo check-in",
)
async def undo_check_in_attendee(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.CHECK_IN)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeResponse:
    """Mark attendee as not checked in and clear the check-in time."""
    return await _change_check_in(
        guid, lambda: attendee_service.set_checked_in(guid, False)
    )


@router.post(
    "/{guid}/toggle-check-in",
    response_model=AttendeeResponse,
    summary="Toggle check-in",
)
async def toggle_check_in_attendee(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.CHECK_IN)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> AttendeeResponse:
    """Flip the attendee's check-in state."""
    return await _change_check_in(
        guid, lambda: attendee_service.toggle_check_in(guid)
    )


@router.get(
    "/{guid}/qr",
    summary="Attendee QR code",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def attendee_qr(
    guid: str,
    ctx: SessionContext = Depends(require_capability(Capability.VIEW)),
    attendee_service: AttendeeService = Depends(get_attendee_service),
) -> Response:
    """
    PNG QR code whose payload is the attendee's email.

    Raises:
        404 Not Found: If attendee doesn't exist
        400 Bad Request: If the attendee has no email
    """
    try:
        png = attendee_service.qr_png(guid)

    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendee not found: {guid}",
        )

    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    except Exception as e:
        raise _internal_error("rendering QR code", e)

    return Response(content=png, media_type="image/png")
