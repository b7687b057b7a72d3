from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class TermCreate(BaseModel):
    """
    Create a term, optionally attaching subjects in the same transaction.
    Year, sector and dates are accepted loosely so every problem can be reported at once.
    """

    academic_year: Optional[Union[int, str]] = Field(None, description="Institution calendar year, e.g. 2569")
    academic_sector: Optional[Union[int, str]] = Field(None, description="1, 2 or 3")
    term_start_date: Optional[Union[date, str]] = None
    term_end_date: Optional[Union[date, str]] = None
    midterm_start_date: Optional[Union[date, str]] = None
    midterm_end_date: Optional[Union[date, str]] = None
    final_start_date: Optional[Union[date, str]] = None
    final_end_date: Optional[Union[date, str]] = None
    is_active: bool = Field(False, description="Mark as the current term; clears the flag on every other term")
    subject_ids: Optional[List[int]] = Field(None, description="Subjects to attach; duplicates collapse")


class TermUpdate(TermCreate):
    """Full update. When subject_ids is present the term's subject list is replaced, not merged."""

    is_active: Optional[bool] = None


class TermSubjectsReplace(BaseModel):
    subject_ids: List[int] = Field(default_factory=list)


class TermResponse(BaseModel):
    id: int
    academic_year: int
    academic_sector: int
    term_name: str
    term_start_date: date
    term_end_date: date
    midterm_start_date: date
    midterm_end_date: date
    final_start_date: date
    final_end_date: date
    is_active: bool
    status: str
    subject_count: int = 0
    created_at: datetime
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None

    class Config:
        from_attributes = True
