from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.auth.dependencies import get_current_user
from coursetrack.auth.rbac import capabilities_of, require_capability
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core.exceptions import ServiceError
from coursetrack.db.session import get_db
from coursetrack.api.v1.term_subjects import service as term_subject_service
from coursetrack.api.v1.term_subjects.schemas import (
    ActiveTermSubjectsResponse,
    TermSubjectResponse,
    TermSubjectStatusResponse,
)

from .schemas import TermCreate, TermResponse, TermSubjectsReplace, TermUpdate
from . import service

router = APIRouter(prefix="/api/v1/terms", tags=["terms"])


@router.post(
    "",
    response_model=TermResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def create_term(
    payload: TermCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermResponse:
    """Create a term. subject_ids, when given, are attached in the same transaction."""
    try:
        return await service.create_term(db, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("", response_model=List[TermResponse])
async def list_terms(
    academic_year: Optional[int] = Query(None),
    academic_sector: Optional[int] = Query(None, ge=1, le=3),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermResponse]:
    return await service.list_terms(db, academic_year, academic_sector)


@router.get("/active", response_model=List[TermResponse])
async def list_active_terms(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermResponse]:
    """Terms whose end date has not passed."""
    return await service.list_active_terms(db)


@router.get("/ended", response_model=List[TermResponse])
async def list_ended_terms(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermResponse]:
    return await service.list_ended_terms(db)


@router.get("/current", response_model=TermResponse)
async def get_current_term(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermResponse:
    """The term views default to: flagged active, else running today, else the latest."""
    try:
        return await service.get_current_term(db)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/active/subjects/status", response_model=ActiveTermSubjectsResponse)
async def active_term_subjects_status(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ActiveTermSubjectsResponse:
    """Status board of the current term. Instructors only see the subjects they teach."""
    try:
        return await term_subject_service.active_term_subjects_status(
            db, current_user, capabilities_of(current_user)
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{term_id}", response_model=TermResponse)
async def get_term(
    term_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermResponse:
    try:
        return await service.get_term(db, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put(
    "/{term_id}",
    response_model=TermResponse,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def update_term(
    term_id: int,
    payload: TermUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermResponse:
    """Update a term. Sending subject_ids replaces the subject list and drops lecturers and work items of removed rows."""
    try:
        return await service.update_term(db, term_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete(
    "/{term_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def delete_term(
    term_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_term(db, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "/{term_id}/activate",
    response_model=TermResponse,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def activate_term(
    term_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TermResponse:
    try:
        return await service.set_active_term(db, term_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{term_id}/subjects", response_model=List[TermSubjectResponse])
async def list_term_subjects(
    term_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermSubjectResponse]:
    try:
        return await term_subject_service.list_term_subjects(db, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put(
    "/{term_id}/subjects",
    response_model=List[TermSubjectResponse],
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def replace_term_subjects(
    term_id: int,
    payload: TermSubjectsReplace,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermSubjectResponse]:
    """Replace the full subject list. Previous rows are deleted with their lecturers and work items."""
    try:
        return await term_subject_service.replace_term_subjects(
            db, term_id, payload.subject_ids, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{term_id}/subjects/status", response_model=List[TermSubjectStatusResponse])
async def list_term_subjects_status(
    term_id: int,
    program_id: Optional[int] = Query(None),
    student_year_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TermSubjectStatusResponse]:
    try:
        return await term_subject_service.list_term_subjects_status(
            db,
            term_id,
            current_user,
            capabilities_of(current_user),
            program_id=program_id,
            student_year_id=student_year_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
