from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class WorkCreate(BaseModel):
    """Fields are accepted as sent; validate_work_input reports every problem with a field code."""

    work_title: Any = Field(None, description="Required, at most 255 characters")
    description: Any = Field(None, description="Optional, at most 5000 characters")
    start_date: Any = Field(None, description="YYYY-MM-DD")
    end_date: Any = Field(None, description="YYYY-MM-DD, on or after start_date")
    hours_per_week: Any = Field(None, description="Integer 1-168")


class WorkUpdate(WorkCreate):
    """Partial update; only fields present in the body are changed."""


class WorkResponse(BaseModel):
    id: int
    term_subject_id: int
    term_id: Optional[int] = None
    subject_id: Optional[int] = None
    work_title: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    hours_per_week: int
    created_at: datetime
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None

    class Config:
        from_attributes = True
