from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.auth.dependencies import get_current_user
from coursetrack.auth.rbac import capabilities_of, require_capability
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core.exceptions import ServiceError
from coursetrack.db.session import get_db

from .schemas import (
    AuditEntryResponse,
    TermSubjectBulkCreate,
    TermSubjectCreate,
    TermSubjectResponse,
    TermSubjectStatusResponse,
    TermSubjectUpdate,
    WorkloadOverride,
    WorkloadReject,
)
from . import service

router = APIRouter(prefix="/api/v1/term-subjects", tags=["term-subjects"])


@router.post(
    "",
    response_model=TermSubjectResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def add_subject_to_term(
    payload: TermSubjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    try:
        return await service.add_subject_to_term(db, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/bulk",
    response_model=List[TermSubjectResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def bulk_add_subjects(
    payload: TermSubjectBulkCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermSubjectResponse]:
    """Attach several subjects at once. Subjects already in the term are skipped; only new rows are returned."""
    try:
        return await service.bulk_add_subjects(db, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/my-subjects", response_model=List[TermSubjectStatusResponse])
async def list_my_subjects(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermSubjectStatusResponse]:
    """Subjects the current user teaches, across all terms."""
    return await service.list_my_subjects(db, current_user.id)


@router.get("/term/{term_id}", response_model=List[TermSubjectResponse])
async def list_term_subjects(
    term_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermSubjectResponse]:
    try:
        return await service.list_term_subjects(db, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{term_subject_id}", response_model=TermSubjectResponse)
async def get_term_subject(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    try:
        return await service.get_term_subject(db, term_subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{term_subject_id}/detail", response_model=TermSubjectStatusResponse)
async def get_term_subject_detail(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectStatusResponse:
    """Term subject with lecturers. Instructors may only open subjects they are assigned to."""
    try:
        return await service.get_term_subject_detail(
            db, term_subject_id, current_user, capabilities_of(current_user)
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.patch(
    "/{term_subject_id}",
    response_model=TermSubjectResponse,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def update_term_subject(
    term_subject_id: int,
    payload: TermSubjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    """Update filed flags, outline/report approval or is_active. Omitted fields are left alone."""
    try:
        return await service.update_term_subject(db, term_subject_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete(
    "/{term_subject_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def remove_term_subject(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.remove_term_subject(db, term_subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{term_subject_id}/submit-workload",
    response_model=TermSubjectResponse,
    dependencies=[Depends(require_capability("can_submit_workload"))],
)
async def submit_workload(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    """Submit the workload for review. Caller must be a lecturer of the subject."""
    try:
        return await service.submit_workload(db, term_subject_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{term_subject_id}/approve-workload",
    response_model=TermSubjectResponse,
    dependencies=[Depends(require_capability("can_review_workload"))],
)
async def approve_workload(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    try:
        return await service.approve_workload(db, term_subject_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{term_subject_id}/reject-workload",
    response_model=TermSubjectResponse,
    dependencies=[Depends(require_capability("can_review_workload"))],
)
async def reject_workload(
    term_subject_id: int,
    payload: Optional[WorkloadReject] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    """Send a submitted workload back to pending. The reason is recorded in the audit trail."""
    try:
        return await service.reject_workload(db, term_subject_id, current_user.id, payload.reason if payload else None)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put(
    "/{term_subject_id}/workload-approval",
    response_model=TermSubjectResponse,
    dependencies=[Depends(require_capability("can_review_workload"))],
)
async def override_workload_approval(
    term_subject_id: int,
    payload: WorkloadOverride,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermSubjectResponse:
    """Set the workload state directly, bypassing the submit/approve/reject rules."""
    try:
        return await service.override_workload_approval(
            db, term_subject_id, payload.workload_approved, current_user.id, payload.remarks
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get(
    "/{term_subject_id}/workload-history",
    response_model=List[AuditEntryResponse],
    dependencies=[Depends(require_capability("can_view_all"))],
)
async def list_workload_history(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AuditEntryResponse]:
    try:
        return await service.list_workload_history(db, term_subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
