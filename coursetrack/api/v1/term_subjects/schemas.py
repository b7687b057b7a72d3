from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from coursetrack.core.enums import DocumentApproval, WorkloadApproval


class TermSubjectCreate(BaseModel):
    """Attach one subject to a term. The (term_id, subject_id) pair must be new."""

    term_id: int
    subject_id: int
    is_active: bool = True


class TermSubjectBulkCreate(BaseModel):
    """Attach many subjects to a term. Pairs already present are skipped, not rejected."""

    term_id: int
    subject_ids: List[int] = Field(default_factory=list)


class TermSubjectUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""

    is_active: Optional[bool] = None
    outline_status: Optional[bool] = None
    outline_approved: Optional[DocumentApproval] = None
    workload_status: Optional[bool] = None
    report_status: Optional[bool] = None
    report_approved: Optional[DocumentApproval] = None


class WorkloadReject(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000, description="Audit note only; not stored on the term subject")


class WorkloadOverride(BaseModel):
    workload_approved: WorkloadApproval
    remarks: Optional[str] = Field(None, max_length=2000)


class LecturerBrief(BaseModel):
    user_id: int
    email: Optional[str] = None
    first_name_th: Optional[str] = None
    last_name_th: Optional[str] = None
    first_name_en: Optional[str] = None
    last_name_en: Optional[str] = None
    is_responsible: bool = False


class TermSubjectResponse(BaseModel):
    id: int
    term_id: int
    subject_id: int
    code_th: Optional[str] = None
    code_eng: Optional[str] = None
    name_th: Optional[str] = None
    name_eng: Optional[str] = None
    credit: Optional[str] = None
    is_active: bool
    outline_status: bool
    outline_approved: str
    workload_status: bool
    workload_approved: str
    report_status: bool
    report_approved: str
    created_at: datetime
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None

    class Config:
        from_attributes = True


class TermSubjectStatusResponse(TermSubjectResponse):
    """Term subject row as shown on the course status board."""

    lecturers: List[LecturerBrief] = Field(default_factory=list)
    responsible_lecturer_id: Optional[int] = None
    allowed_workload_actions: List[str] = Field(default_factory=list)


class ActiveTermInfo(BaseModel):
    id: int
    academic_year: int
    academic_sector: int
    term_name: str
    status: str


class ActiveTermSubjectsResponse(BaseModel):
    term: ActiveTermInfo
    subjects: List[TermSubjectStatusResponse]


class AuditEntryResponse(BaseModel):
    id: int
    term_subject_id: int
    action: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    performed_by: Optional[int] = None
    remarks: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True
