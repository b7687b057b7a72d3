from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LecturerAssign(BaseModel):
    user_id: int
    is_responsible: bool = False
    notes: Optional[str] = Field(None, max_length=2000)


class ResponsibleChange(BaseModel):
    user_id: int


class LecturerNotesUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class LecturerResponse(BaseModel):
    id: int
    term_subject_id: int
    user_id: int
    email: Optional[str] = None
    first_name_th: Optional[str] = None
    last_name_th: Optional[str] = None
    first_name_en: Optional[str] = None
    last_name_en: Optional[str] = None
    is_responsible: bool
    notes: Optional[str] = None
    created_at: datetime
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None

    class Config:
        from_attributes = True
