"""Workload ledger: work items attached to a term subject. A term subject may carry any number of them."""

import logging
from datetime import datetime
from typing import List

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from coursetrack.auth.rbac import Capabilities
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core.exceptions import BusinessError
from coursetrack.core.models import Term, TermSubject, TermSubjectProfessor, WorkDetail
from coursetrack.api.v1.term_subjects.service import is_assigned

from .schemas import WorkCreate, WorkResponse, WorkUpdate
from .validation import validate_work_input

logger = logging.getLogger(__name__)


def _to_response(w: WorkDetail) -> WorkResponse:
    ts = w.__dict__.get("term_subject")
    return WorkResponse(
        id=w.id,
        term_subject_id=w.term_subject_id,
        term_id=ts.term_id if ts else None,
        subject_id=ts.subject_id if ts else None,
        work_title=w.work_title,
        description=w.description,
        start_date=w.start_date,
        end_date=w.end_date,
        hours_per_week=w.hours_per_week,
        created_at=w.created_at,
        created_by=w.created_by,
        updated_at=w.updated_at,
        updated_by=w.updated_by,
    )


def _with_term_subject(stmt):
    return stmt.options(selectinload(WorkDetail.term_subject))


async def _get_term_subject_or_404(db: AsyncSession, term_subject_id: int) -> TermSubject:
    ts = await db.get(TermSubject, term_subject_id)
    if not ts:
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return ts


async def _get_work_or_404(db: AsyncSession, work_id: int) -> WorkDetail:
    result = await db.execute(
        _with_term_subject(select(WorkDetail).where(WorkDetail.id == work_id))
        .execution_options(populate_existing=True)
    )
    work = result.scalar_one_or_none()
    if not work:
        raise BusinessError("Workload not found", "WORKLOAD_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return work


async def _ensure_can_read(
    db: AsyncSession, term_subject_id: int, user: CurrentUser, caps: Capabilities
) -> None:
    if caps.can_view_all:
        return
    if not await is_assigned(db, term_subject_id, user.id):
        raise BusinessError(
            "You do not have permission to view this workload",
            "PERMISSION_DENIED",
            status.HTTP_403_FORBIDDEN,
        )


async def create_work(
    db: AsyncSession,
    term_subject_id: int,
    payload: WorkCreate,
    actor_id: int,
) -> WorkResponse:
    data = validate_work_input(payload.model_dump())
    ts = await _get_term_subject_or_404(db, term_subject_id)
    if not ts.is_active:
        raise BusinessError("Term subject is not active", "TERM_SUBJECT_NOT_ACTIVE", status.HTTP_400_BAD_REQUEST)

    work = WorkDetail(term_subject_id=term_subject_id, created_by=actor_id, **data)
    db.add(work)
    try:
        await db.commit()
    except IntegrityError:
        # Term subject deleted since it was read
        await db.rollback()
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    logger.info(
        "Work item %s added to term subject %s (%s h/week, %s..%s)",
        work.id, term_subject_id, work.hours_per_week, work.start_date, work.end_date,
    )
    return _to_response(await _get_work_or_404(db, work.id))


async def get_work(
    db: AsyncSession, work_id: int, user: CurrentUser, caps: Capabilities
) -> WorkResponse:
    work = await _get_work_or_404(db, work_id)
    await _ensure_can_read(db, work.term_subject_id, user, caps)
    return _to_response(work)


async def list_works(
    db: AsyncSession, term_subject_id: int, user: CurrentUser, caps: Capabilities
) -> List[WorkResponse]:
    await _get_term_subject_or_404(db, term_subject_id)
    await _ensure_can_read(db, term_subject_id, user, caps)
    result = await db.execute(
        _with_term_subject(
            select(WorkDetail)
            .where(WorkDetail.term_subject_id == term_subject_id)
            .order_by(WorkDetail.start_date, WorkDetail.id)
        )
    )
    return [_to_response(w) for w in result.scalars().all()]


async def list_works_by_term(
    db: AsyncSession, term_id: int, user: CurrentUser, caps: Capabilities
) -> List[WorkResponse]:
    """All work items of a term, newest first. Instructors get only items of subjects they teach."""
    if not await db.get(Term, term_id):
        raise BusinessError("Term not found", "TERM_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    stmt = (
        select(WorkDetail)
        .join(TermSubject, TermSubject.id == WorkDetail.term_subject_id)
        .where(TermSubject.term_id == term_id)
    )
    if not caps.can_view_all:
        assigned = select(TermSubjectProfessor.term_subject_id).where(TermSubjectProfessor.user_id == user.id)
        stmt = stmt.where(WorkDetail.term_subject_id.in_(assigned))
    result = await db.execute(
        _with_term_subject(stmt).order_by(WorkDetail.created_at.desc(), WorkDetail.id.desc())
    )
    return [_to_response(w) for w in result.scalars().all()]


async def update_work(
    db: AsyncSession,
    work_id: int,
    payload: WorkUpdate,
    actor_id: int,
) -> WorkResponse:
    work = await _get_work_or_404(db, work_id)
    data = validate_work_input(
        payload.model_dump(exclude_unset=True),
        partial=True,
        current={"start_date": work.start_date, "end_date": work.end_date},
    )
    for field, value in data.items():
        setattr(work, field, value)
    work.updated_by = actor_id
    work.updated_at = datetime.utcnow()
    try:
        await db.commit()
    except (IntegrityError, StaleDataError):
        await db.rollback()
        raise BusinessError("Workload not found", "WORKLOAD_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return _to_response(await _get_work_or_404(db, work_id))


async def delete_work(db: AsyncSession, work_id: int) -> None:
    work = await _get_work_or_404(db, work_id)
    await db.delete(work)
    await db.commit()
    logger.info("Work item %s removed from term subject %s", work_id, work.term_subject_id)
