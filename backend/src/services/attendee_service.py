"""
Attendee service for registration and check-in.

Provides business logic for registering attendees, checking them in (by
toggle or by QR scan), and bulk CSV import/export.

Design:
- Every insert goes through the duplicate reconciler first; a duplicate is
  reported with its own message, not as a generic failure
- CSV import checks each row against the existing attendees and every row
  accepted earlier in the same file
- The QR code payload is the attendee's email; scanning looks it up
  case-insensitively
"""

import csv
import io
from datetime import datetime
from typing import Any, Dict, List, Optional

import qrcode
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.models import Attendee
from backend.src.services.duplicate_reconciler import find_duplicate
from backend.src.services.exceptions import (
    ConflictError,
    CsvFormatError,
    DuplicateAttendeeError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from backend.src.services.guid import GuidService
from backend.src.utils.formatting import format_timestamp
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

CHECK_IN_FILTERS = ("all", "checked-in", "not-checked-in")

ATTENDEE_TEMPLATE_CSV = (
    "Name,Email,Company\n"
    "John Doe,john@example.com,Company Inc.\n"
    "Jane Smith,jane@example.com,Another Company"
)

EXPORT_HEADERS = ["Name", "Email", "Company", "Status", "Check-in Time"]

REQUIRED_IMPORT_COLUMNS = ("name", "email")


def normalize_header(header: Optional[str]) -> str:
    """'Start Time ' -> 'start_time'"""
    return "_".join((header or "").strip().lower().split())


def read_csv_rows(content: bytes, required: tuple) -> List[Dict[str, str]]:
    """
    Decode an uploaded CSV into rows keyed by normalized header.

    Raises:
        CsvFormatError: If the file is not UTF-8 text or lacks required columns
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise CsvFormatError("CSV file must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise CsvFormatError("CSV file is empty", missing_columns=list(required))

    headers = [normalize_header(h) for h in reader.fieldnames]
    missing = [column for column in required if column not in headers]
    if missing:
        quoted = ", ".join(f'"{column}"' for column in required)
        raise CsvFormatError(f"CSV must contain {quoted} columns", missing_columns=missing)

    rows = []
    for raw in reader:
        rows.append({
            normalize_header(key): (value or "").strip()
            for key, value in raw.items()
            if key is not None and not isinstance(value, list)
        })
    return rows


class AttendeeService:
    """
    Service for attendee registration and check-in.

    Usage:
        >>> service = AttendeeService(db_session)
        >>> attendee = service.create(name="Ann Lee", email="ann@x.io")
        >>> service.set_checked_in(attendee.guid, True)
    """

    def __init__(self, db: Session):
        """
        Initialize attendee service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # ========================================================================
    # Queries
    # ========================================================================

    def get_by_guid(self, guid: str) -> Attendee:
        """
        Get an attendee by GUID.

        Raises:
            NotFoundError: If no attendee has this GUID
        """
        if not GuidService.validate_guid(guid, "att"):
            raise NotFoundError("Attendee", guid)
        uuid_value = Attendee.parse_guid(guid)

        attendee = self.db.query(Attendee).filter(Attendee.uuid == uuid_value).first()
        if not attendee:
            raise NotFoundError("Attendee", guid)
        return attendee

    def list(self, search: Optional[str] = None, check_in_filter: str = "all") -> List[Attendee]:
        """
        List attendees, newest first.

        Args:
            search: Case-insensitive substring of name, email or company
            check_in_filter: all, checked-in or not-checked-in

        Raises:
            ValidationError: If check_in_filter is not recognised
        """
        if check_in_filter not in CHECK_IN_FILTERS:
            raise ValidationError(
                f"Invalid filter '{check_in_filter}'. Must be one of: {', '.join(CHECK_IN_FILTERS)}",
                field="filter",
            )

        query = self.db.query(Attendee)

        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Attendee.name).like(pattern),
                    func.lower(Attendee.email).like(pattern),
                    func.lower(Attendee.company).like(pattern),
                )
            )

        if check_in_filter == "checked-in":
            query = query.filter(Attendee.checked_in == True)  # noqa: E712
        elif check_in_filter == "not-checked-in":
            query = query.filter(Attendee.checked_in == False)  # noqa: E712

        return query.order_by(Attendee.created_at.desc(), Attendee.id.desc()).all()

    def get_stats(self) -> Dict[str, int]:
        """
        Get attendance statistics.

        Returns:
            Dictionary with total, checked_in, not_checked_in
        """
        total = self.db.query(func.count(Attendee.id)).scalar() or 0
        checked_in = (
            self.db.query(func.count(Attendee.id))
            .filter(Attendee.checked_in == True)  # noqa: E712
            .scalar() or 0
        )
        return {
            "total": total,
            "checked_in": checked_in,
            "not_checked_in": total - checked_in,
        }

    def _existing_identities(self) -> List[Dict[str, Any]]:
        rows = self.db.query(Attendee.name, Attendee.email, Attendee.company).all()
        return [{"name": r.name, "email": r.email, "company": r.company} for r in rows]

    # ========================================================================
    # Registration
    # ========================================================================

    def create(self, name: str, email: Optional[str] = None, company: Optional[str] = None) -> Attendee:
        """
        Register a new attendee.

        Args:
            name: Full name (required)
            email: Email address, also the QR payload
            company: Company or organisation

        Returns:
            Created Attendee instance

        Raises:
            ValidationError: If name is empty
            DuplicateAttendeeError: If the attendee is already registered
        """
        name = (name or "").strip()
        email = (email or "").strip() or None
        company = (company or "").strip() or None

        if not name:
            raise ValidationError("Name is required", field="name")

        candidate = {"name": name, "email": email, "company": company}
        duplicate = find_duplicate(candidate, self._existing_identities())
        if duplicate:
            logger.info(f"Rejected duplicate attendee: {name} <{email}>")
            raise DuplicateAttendeeError(duplicate)

        try:
            attendee = Attendee(name=name, email=email, company=company)
            self.db.add(attendee)
            self.db.commit()
            self.db.refresh(attendee)

            logger.info(f"Registered attendee: {attendee.name} ({attendee.guid})")
            return attendee

        except IntegrityError as e:
            # Unique email raced with another registration
            self.db.rollback()
            logger.warning(f"Duplicate attendee on insert '{email}': {e}")
            raise DuplicateAttendeeError(candidate)

    def delete(self, guid: str) -> None:
        """
        Delete an attendee.

        Raises:
            NotFoundError: If attendee not found
        """
        attendee = self.get_by_guid(guid)
        try:
            self.db.delete(attendee)
            self.db.commit()
            logger.info(f"Deleted attendee: {attendee.name} ({guid})")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete attendee {guid}: {e}")
            raise StoreError("delete", Attendee.__tablename__, e) from e

    # ========================================================================
    # Check-in
    # ========================================================================

    def set_checked_in(self, guid: str, checked_in: bool, now: Optional[datetime] = None) -> Attendee:
        """
        Check an attendee in or undo their check-in.

        Checking in stamps check_in_time; undoing clears it. Setting the
        value the attendee already has writes nothing.

        Raises:
            NotFoundError: If attendee not found
            StoreError: If the write fails
        """
        attendee = self.get_by_guid(guid)
        return self._apply_check_in(attendee, checked_in, now)

    def toggle_check_in(self, guid: str, now: Optional[datetime] = None) -> Attendee:
        """Flip an attendee's check-in state."""
        attendee = self.get_by_guid(guid)
        return self._apply_check_in(attendee, not attendee.checked_in, now)

    def check_in_by_scan(self, payload: str, now: Optional[datetime] = None) -> Attendee:
        """
        Check in the attendee whose email is the scanned QR payload.

        Args:
            payload: Decoded QR text (trimmed, matched case-insensitively)

        Raises:
            ValidationError: If the payload is empty
            NotFoundError: If no attendee has that email
        """
        email = (payload or "").strip()
        if not email:
            raise ValidationError("Scan payload is empty", field="payload")

        attendee = (
            self.db.query(Attendee)
            .filter(func.lower(Attendee.email) == email.lower())
            .first()
        )
        if not attendee:
            logger.info(f"Scan did not match any attendee: {email}")
            raise NotFoundError("Attendee", email)

        return self._apply_check_in(attendee, True, now)

    def _apply_check_in(self, attendee: Attendee, checked_in: bool, now: Optional[datetime]) -> Attendee:
        if not attendee.set_checked_in(checked_in, now):
            return attendee
        try:
            self.db.commit()
            self.db.refresh(attendee)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update check-in for {attendee.guid}: {e}")
            raise StoreError("update", Attendee.__tablename__, e) from e

        action = "Checked in" if checked_in else "Undid check-in for"
        logger.info(f"{action} attendee: {attendee.name} ({attendee.guid})")
        return attendee

    # ========================================================================
    # QR code
    # ========================================================================

    def qr_png(self, guid: str) -> bytes:
        """
        Render the attendee's check-in QR code as PNG.

        Raises:
            NotFoundError: If attendee not found
            ValidationError: If the attendee has no email to encode
        """
        attendee = self.get_by_guid(guid)
        if not attendee.email:
            raise ValidationError("Attendee has no email to encode", field="email")

        img = qrcode.make(attendee.email)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    # ========================================================================
    # CSV
    # ========================================================================

    def import_csv(self, content: bytes) -> Dict[str, Any]:
        """
        Bulk import attendees from CSV.

        The header must contain name and email (any case); company is
        optional and other columns are ignored. Rows missing a required value
        are reported under errors; duplicates (of existing attendees or of
        earlier rows in the file) are skipped.

        Returns:
            Dictionary with imported, skipped, skipped_names, errors

        Raises:
            CsvFormatError: If the header is unusable (nothing is written)
            ConflictError: If the insert collides with a concurrent registration
        """
        rows = read_csv_rows(content, REQUIRED_IMPORT_COLUMNS)

        known = self._existing_identities()
        accepted: List[Dict[str, Any]] = []
        skipped_names: List[str] = []
        errors: List[Dict[str, Any]] = []

        # Row numbers count the header as row 1
        for row_number, row in enumerate(rows, start=2):
            name = row.get("name", "")
            email = row.get("email", "")
            if not name or not email:
                missing = "name" if not name else "email"
                errors.append({"row": row_number, "message": f"Missing {missing}"})
                continue

            candidate = {"name": name, "email": email, "company": row.get("company") or None}
            if find_duplicate(candidate, known):
                skipped_names.append(name)
                continue

            accepted.append(candidate)
            known.append(candidate)

        if accepted:
            try:
                self.db.add_all([Attendee(**record) for record in accepted])
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                logger.error(f"Attendee import failed: {e}")
                raise ConflictError("Import failed: an attendee in the file was registered concurrently")

        logger.info(
            f"Imported {len(accepted)} attendees "
            f"(skipped {len(skipped_names)}, errors {len(errors)})"
        )
        return {
            "imported": len(accepted),
            "skipped": len(skipped_names),
            "skipped_names": skipped_names,
            "errors": errors,
        }

    def export_csv(self) -> str:
        """
        Export all attendees as CSV.

        Values are quoted; timestamps use yyyy-MM-dd HH:mm:ss.
        """
        buf = io.StringIO()
        buf.write(",".join(EXPORT_HEADERS) + "\n")
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for attendee in self.list():
            writer.writerow([
                attendee.name,
                attendee.email or "",
                attendee.company or "",
                "Checked In" if attendee.checked_in else "Not Checked In",
                format_timestamp(attendee.check_in_time),
            ])
        return buf.getvalue()

    @staticmethod
    def template_csv() -> str:
        """Sample CSV for import."""
        return ATTENDEE_TEMPLATE_CSV
