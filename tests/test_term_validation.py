from datetime import date

import pytest

from coursetrack.api.v1.terms.service import compute_term_status
from coursetrack.api.v1.terms.validation import validate_term_data
from coursetrack.core.exceptions import ValidationError

from conftest import TERM_PAYLOAD


def _errors(data: dict) -> list:
    with pytest.raises(ValidationError) as exc:
        validate_term_data(data)
    return exc.value.errors


def test_valid_payload_is_normalized():
    term = validate_term_data({**TERM_PAYLOAD, "academic_year": "2568", "academic_sector": "1"})
    assert term.academic_year == 2568
    assert term.academic_sector == 1
    assert term.term_start_date == date(2025, 6, 2)
    assert term.final_end_date == date(2025, 9, 26)


def test_empty_payload_reports_every_missing_field():
    errors = _errors({})
    assert "Academic year is required" in errors
    assert "Academic sector is required" in errors
    for field in ("term_start_date", "term_end_date", "midterm_start_date",
                  "midterm_end_date", "final_start_date", "final_end_date"):
        assert f"{field} is required" in errors
    assert len(errors) == 8


def test_year_out_of_range():
    assert _errors({**TERM_PAYLOAD, "academic_year": 1999}) == [
        "Academic year must be between 2000 and 3000"
    ]


def test_year_must_be_a_number():
    assert _errors({**TERM_PAYLOAD, "academic_year": "twenty"}) == ["Academic year must be a number"]
    assert _errors({**TERM_PAYLOAD, "academic_year": True}) == ["Academic year must be a number"]


def test_sector_outside_allowed_values():
    assert _errors({**TERM_PAYLOAD, "academic_sector": 4}) == ["Academic sector must be 1, 2, or 3"]


def test_bad_date_format_and_impossible_date():
    errors = _errors({**TERM_PAYLOAD, "term_start_date": "2025/06/02", "term_end_date": "2025-02-30"})
    assert "term_start_date must be in YYYY-MM-DD format" in errors
    assert "term_end_date is not a valid date" in errors


def test_basic_errors_skip_chronology_checks():
    errors = _errors({
        **TERM_PAYLOAD,
        "academic_year": 5000,
        "midterm_start_date": "2025-09-16",
        "midterm_end_date": "2025-09-20",
    })
    assert errors == ["Academic year must be between 2000 and 3000"]


def test_window_end_before_start():
    errors = _errors({**TERM_PAYLOAD, "midterm_start_date": "2025-07-27", "midterm_end_date": "2025-07-21"})
    assert "Midterm dates: End date must not be before start date" in errors


def test_single_day_windows_are_allowed():
    term = validate_term_data({
        **TERM_PAYLOAD,
        "midterm_start_date": "2025-07-21",
        "midterm_end_date": "2025-07-21",
    })
    assert term.midterm_start_date == term.midterm_end_date


def test_exam_outside_term_window():
    errors = _errors({**TERM_PAYLOAD, "final_end_date": "2025-09-30"})
    assert "Final exam end date must be within term dates (2025-06-02 to 2025-09-26)" in errors


def test_midterm_and_final_overlap():
    errors = _errors({
        **TERM_PAYLOAD,
        "midterm_start_date": "2025-09-10",
        "midterm_end_date": "2025-09-15",
    })
    assert errors == ["Midterm and Final exam dates cannot overlap"]


def test_term_status_is_derived_from_end_date():
    end = date(2025, 9, 26)
    assert compute_term_status(end, today=date(2025, 9, 26)) == "ongoing"
    assert compute_term_status(end, today=date(2025, 9, 27)) == "ended"
