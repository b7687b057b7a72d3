"""
Work item input checks. Each problem is reported as {field, code, message}; codes
are stable so clients can map them to their own wording.
"""

import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from coursetrack.core.config import settings
from coursetrack.core.exceptions import ValidationError

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 5000

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _error(errors: List[Dict[str, str]], field: str, code: str, message: str) -> None:
    errors.append({"field": field, "code": code, "message": message})


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _check_title(value: Any, errors: List[Dict[str, str]], required: bool) -> Optional[str]:
    if value is None:
        if required:
            _error(errors, "work_title", "WORK_TITLE_REQUIRED", "work_title is required")
        return None
    if not isinstance(value, str):
        _error(errors, "work_title", "WORK_TITLE_INVALID_TYPE", "work_title must be a string")
        return None
    if not value.strip():
        code = "WORK_TITLE_REQUIRED" if required else "WORK_TITLE_EMPTY"
        _error(errors, "work_title", code, "work_title cannot be empty")
        return None
    if len(value) > TITLE_MAX_LENGTH:
        _error(
            errors, "work_title", "WORK_TITLE_TOO_LONG",
            f"work_title must not exceed {TITLE_MAX_LENGTH} characters",
        )
        return None
    return value.strip()


def _check_description(value: Any, errors: List[Dict[str, str]]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        _error(errors, "description", "DESCRIPTION_INVALID_TYPE", "description must be a string")
        return None
    if len(value) > DESCRIPTION_MAX_LENGTH:
        _error(
            errors, "description", "DESCRIPTION_TOO_LONG",
            f"description must not exceed {DESCRIPTION_MAX_LENGTH} characters",
        )
        return None
    return value


def _check_date(value: Any, field: str, errors: List[Dict[str, str]], required: bool) -> Optional[date]:
    prefix = field.split("_")[0].upper()
    if value is None or value == "":
        if required:
            _error(errors, field, f"{prefix}_DATE_REQUIRED", f"{field} is required")
        return None
    parsed = _parse_date(value)
    if parsed is None:
        _error(errors, field, f"{prefix}_DATE_INVALID_FORMAT", f"{field} must be a valid date in YYYY-MM-DD format")
    return parsed


def _check_hours(value: Any, errors: List[Dict[str, str]], required: bool) -> Optional[int]:
    field = "hours_per_week"
    if value is None:
        if required:
            _error(errors, field, "HOURS_PER_WEEK_REQUIRED", "hours_per_week is required")
        return None
    if isinstance(value, bool):
        _error(errors, field, "HOURS_PER_WEEK_INVALID_TYPE", "hours_per_week must be a number")
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        _error(errors, field, "HOURS_PER_WEEK_INVALID_TYPE", "hours_per_week must be a number")
        return None
    if not number.is_integer():
        _error(errors, field, "HOURS_PER_WEEK_NOT_INTEGER", "hours_per_week must be an integer")
        return None
    hours = int(number)
    if hours <= 0:
        _error(errors, field, "HOURS_PER_WEEK_NOT_POSITIVE", "hours_per_week must be greater than 0")
        return None
    if hours > settings.max_hours_per_week:
        _error(
            errors, field, "HOURS_PER_WEEK_TOO_HIGH",
            f"hours_per_week must not exceed {settings.max_hours_per_week}",
        )
        return None
    return hours


def validate_work_input(
    raw: Mapping[str, Any],
    partial: bool = False,
    current: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Validate a work item payload and return the normalized fields.

    With partial=True only keys present in raw are checked and returned. current
    holds the stored start_date/end_date so ordering is checked on the merged result.
    """
    errors: List[Dict[str, str]] = []
    required = not partial
    cleaned: Dict[str, Any] = {}

    if required or "work_title" in raw:
        cleaned["work_title"] = _check_title(raw.get("work_title"), errors, required=True)
    if "description" in raw:
        cleaned["description"] = _check_description(raw.get("description"), errors)
    if required or "start_date" in raw:
        cleaned["start_date"] = _check_date(raw.get("start_date"), "start_date", errors, required=True)
    if required or "end_date" in raw:
        cleaned["end_date"] = _check_date(raw.get("end_date"), "end_date", errors, required=True)
    if required or "hours_per_week" in raw:
        cleaned["hours_per_week"] = _check_hours(raw.get("hours_per_week"), errors, required=True)

    current = current or {}
    start = cleaned.get("start_date") if "start_date" in cleaned else current.get("start_date")
    end = cleaned.get("end_date") if "end_date" in cleaned else current.get("end_date")
    if start is not None and end is not None and end < start:
        _error(
            errors, "end_date", "END_DATE_BEFORE_START_DATE",
            "end_date must be on or after start_date",
        )

    if errors:
        raise ValidationError(errors)
    return cleaned
