from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.auth.dependencies import get_current_user
from coursetrack.auth.rbac import require_capability
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core.exceptions import ServiceError
from coursetrack.db.session import get_db

from .schemas import LecturerAssign, LecturerNotesUpdate, LecturerResponse, ResponsibleChange
from . import service

router = APIRouter(prefix="/api/v1/term-subjects/{term_subject_id}/lecturers", tags=["lecturers"])


@router.get("", response_model=List[LecturerResponse])
async def list_lecturers(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[LecturerResponse]:
    try:
        return await service.list_lecturers(db, term_subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post(
    "",
    response_model=LecturerResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def assign_lecturer(
    term_subject_id: int,
    payload: LecturerAssign,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LecturerResponse:
    """Assign a lecturer. Re-assigning an existing lecturer returns the current assignment."""
    try:
        return await service.assign_lecturer(db, term_subject_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/responsible", response_model=Optional[LecturerResponse])
async def get_responsible(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Optional[LecturerResponse]:
    try:
        return await service.get_responsible(db, term_subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put(
    "/responsible",
    response_model=LecturerResponse,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def change_responsible(
    term_subject_id: int,
    payload: ResponsibleChange,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LecturerResponse:
    """Move responsibility to another lecturer already assigned to the subject."""
    try:
        return await service.change_responsible(db, term_subject_id, payload.user_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.patch(
    "/{user_id}",
    response_model=LecturerResponse,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def update_lecturer_notes(
    term_subject_id: int,
    user_id: int,
    payload: LecturerNotesUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> LecturerResponse:
    try:
        return await service.update_notes(db, term_subject_id, user_id, payload.notes, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def remove_lecturer(
    term_subject_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.remove_lecturer(db, term_subject_id, user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
