"""
Term payload validation. Every problem is collected and reported together so a
client can show the full list in one round trip.
"""

import re
from datetime import date
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel

from coursetrack.core.config import settings
from coursetrack.core.enums import AcademicSector
from coursetrack.core.exceptions import ValidationError


DATE_FIELDS = (
    "term_start_date",
    "term_end_date",
    "midterm_start_date",
    "midterm_end_date",
    "final_start_date",
    "final_end_date",
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class NormalizedTerm(BaseModel):
    academic_year: int
    academic_sector: int
    term_start_date: date
    term_end_date: date
    midterm_start_date: date
    midterm_end_date: date
    final_start_date: date
    final_end_date: date


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r"\s*[+-]?\d+\s*", value):
        return int(value)
    return None


def _check_academic_year(value: Any, errors: List[str]) -> Optional[int]:
    if value is None or value == "":
        errors.append("Academic year is required")
        return None
    year = _parse_int(value)
    if year is None:
        errors.append("Academic year must be a number")
        return None
    if year < settings.academic_year_min or year > settings.academic_year_max:
        errors.append(
            f"Academic year must be between {settings.academic_year_min} and {settings.academic_year_max}"
        )
        return None
    return year


def _check_academic_sector(value: Any, errors: List[str]) -> Optional[int]:
    if value is None or value == "":
        errors.append("Academic sector is required")
        return None
    sector = _parse_int(value)
    if sector is None:
        errors.append("Academic sector must be a number")
        return None
    if sector not in {s.value for s in AcademicSector}:
        errors.append("Academic sector must be 1, 2, or 3")
        return None
    return sector


def parse_date(value: Any, field: str, errors: List[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD value, appending a message to errors on failure."""
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(f"{field} is required")
        return None
    text = str(value).strip()
    if not _DATE_RE.match(text):
        errors.append(f"{field} must be in YYYY-MM-DD format")
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        errors.append(f"{field} is not a valid date")
        return None


def _check_within(day: date, start: date, end: date, label: str, errors: List[str]) -> None:
    if day < start or day > end:
        errors.append(f"{label} must be within term dates ({start.isoformat()} to {end.isoformat()})")


def validate_term_data(data: Mapping[str, Any]) -> NormalizedTerm:
    """Validate and normalize a raw term payload. Raises ValidationError listing every violation."""
    errors: List[str] = []

    year = _check_academic_year(data.get("academic_year"), errors)
    sector = _check_academic_sector(data.get("academic_sector"), errors)
    dates = {field: parse_date(data.get(field), field, errors) for field in DATE_FIELDS}

    # Chronology checks are meaningless until every field parses
    if errors:
        raise ValidationError(errors)

    term_start, term_end = dates["term_start_date"], dates["term_end_date"]
    mid_start, mid_end = dates["midterm_start_date"], dates["midterm_end_date"]
    final_start, final_end = dates["final_start_date"], dates["final_end_date"]

    if term_end < term_start:
        errors.append("Term dates: End date must not be before start date")
    if mid_end < mid_start:
        errors.append("Midterm dates: End date must not be before start date")
    if final_end < final_start:
        errors.append("Final exam dates: End date must not be before start date")

    _check_within(mid_start, term_start, term_end, "Midterm start date", errors)
    _check_within(mid_end, term_start, term_end, "Midterm end date", errors)
    _check_within(final_start, term_start, term_end, "Final exam start date", errors)
    _check_within(final_end, term_start, term_end, "Final exam end date", errors)

    if mid_start <= final_end and final_start <= mid_end:
        errors.append("Midterm and Final exam dates cannot overlap")

    if errors:
        raise ValidationError(errors)

    return NormalizedTerm(academic_year=year, academic_sector=sector, **dates)
