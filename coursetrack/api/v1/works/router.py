from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.auth.dependencies import get_current_user
from coursetrack.auth.rbac import capabilities_of, require_capability
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core.exceptions import ServiceError
from coursetrack.db.session import get_db

from .schemas import WorkCreate, WorkResponse, WorkUpdate
from . import service

router = APIRouter(prefix="/api/v1", tags=["works"])


@router.post(
    "/term-subjects/{term_subject_id}/works",
    response_model=WorkResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def create_work(
    term_subject_id: int,
    payload: WorkCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WorkResponse:
    """Add a work item. The term subject must be active."""
    try:
        return await service.create_work(db, term_subject_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/term-subjects/{term_subject_id}/works", response_model=List[WorkResponse])
async def list_works(
    term_subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[WorkResponse]:
    try:
        return await service.list_works(db, term_subject_id, current_user, capabilities_of(current_user))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/terms/{term_id}/works", response_model=List[WorkResponse])
async def list_works_by_term(
    term_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[WorkResponse]:
    try:
        return await service.list_works_by_term(db, term_id, current_user, capabilities_of(current_user))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/works/{work_id}", response_model=WorkResponse)
async def get_work(
    work_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WorkResponse:
    try:
        return await service.get_work(db, work_id, current_user, capabilities_of(current_user))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.patch(
    "/works/{work_id}",
    response_model=WorkResponse,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def update_work(
    work_id: int,
    payload: WorkUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> WorkResponse:
    try:
        return await service.update_work(db, work_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete(
    "/works/{work_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_capability("can_manage_terms"))],
)
async def delete_work(
    work_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> None:
    try:
        await service.delete_work(db, work_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
