"""
Pydantic schemas for CSV import results.
"""

from typing import List

from pydantic import BaseModel, Field


class ImportRowError(BaseModel):
    """A CSV row that could not be imported (row 1 is the header)."""

    row: int = Field(..., ge=2)
    message: str


class ImportResultResponse(BaseModel):
    """
    Outcome of a CSV import.

    Fields:
        imported: Rows written
        skipped: Rows not written
        skipped_names: Names/titles of skipped rows, in file order
        errors: Rows rejected for missing or invalid values
    """

    imported: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    skipped_names: List[str] = Field(default_factory=list)
    errors: List[ImportRowError] = Field(default_factory=list)
