"""Lecturer assignments for a term subject. At most one assignee is the responsible lecturer."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from coursetrack.core import reference
from coursetrack.core.exceptions import BusinessError
from coursetrack.core.models import TermSubject, TermSubjectProfessor

from .schemas import LecturerAssign, LecturerResponse

logger = logging.getLogger(__name__)


def _to_response(a: TermSubjectProfessor) -> LecturerResponse:
    user = a.__dict__.get("user")
    return LecturerResponse(
        id=a.id,
        term_subject_id=a.term_subject_id,
        user_id=a.user_id,
        email=user.email if user else None,
        first_name_th=user.first_name_th if user else None,
        last_name_th=user.last_name_th if user else None,
        first_name_en=user.first_name_en if user else None,
        last_name_en=user.last_name_en if user else None,
        is_responsible=bool(a.is_responsible),
        notes=a.notes,
        created_at=a.created_at,
        created_by=a.created_by,
        updated_at=a.updated_at,
        updated_by=a.updated_by,
    )


async def _ensure_term_subject(db: AsyncSession, term_subject_id: int) -> None:
    if not await db.get(TermSubject, term_subject_id):
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)


async def _find_assignment(
    db: AsyncSession, term_subject_id: int, user_id: int
) -> Optional[TermSubjectProfessor]:
    result = await db.execute(
        select(TermSubjectProfessor)
        .options(selectinload(TermSubjectProfessor.user))
        .where(
            TermSubjectProfessor.term_subject_id == term_subject_id,
            TermSubjectProfessor.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _get_assignment_or_404(
    db: AsyncSession, term_subject_id: int, user_id: int
) -> TermSubjectProfessor:
    assignment = await _find_assignment(db, term_subject_id, user_id)
    if not assignment:
        raise BusinessError("Lecturer assignment not found", "ASSIGNMENT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return assignment


async def _clear_responsible(db: AsyncSession, term_subject_id: int) -> None:
    await db.execute(
        update(TermSubjectProfessor)
        .where(
            TermSubjectProfessor.term_subject_id == term_subject_id,
            TermSubjectProfessor.is_responsible.is_(True),
        )
        .values(is_responsible=False)
        .execution_options(synchronize_session=False)
    )


async def _reload(db: AsyncSession, assignment_id: int) -> TermSubjectProfessor:
    result = await db.execute(
        select(TermSubjectProfessor)
        .options(selectinload(TermSubjectProfessor.user))
        .where(TermSubjectProfessor.id == assignment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def assign_lecturer(
    db: AsyncSession,
    term_subject_id: int,
    payload: LecturerAssign,
    actor_id: int,
) -> LecturerResponse:
    """
    Assign a lecturer. Assigning someone already on the subject returns the existing
    assignment unchanged. is_responsible on a new assignee takes responsibility away
    from whoever held it.
    """
    await _ensure_term_subject(db, term_subject_id)
    if not await reference.active_user_exists(db, payload.user_id):
        raise BusinessError("Professor not found or inactive", "PROFESSOR_NOT_FOUND", status.HTTP_404_NOT_FOUND)

    existing = await _find_assignment(db, term_subject_id, payload.user_id)
    if existing:
        return _to_response(existing)

    try:
        if payload.is_responsible:
            await _clear_responsible(db, term_subject_id)
        assignment = TermSubjectProfessor(
            term_subject_id=term_subject_id,
            user_id=payload.user_id,
            is_responsible=payload.is_responsible,
            notes=payload.notes,
            created_by=actor_id,
        )
        db.add(assignment)
        await db.commit()
    except IntegrityError:
        # Subject or user deleted since the checks above, a concurrent assign of the
        # same user, or a concurrent responsible change
        await db.rollback()
        await _ensure_term_subject(db, term_subject_id)
        if not await reference.active_user_exists(db, payload.user_id):
            raise BusinessError("Professor not found or inactive", "PROFESSOR_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        existing = await _find_assignment(db, term_subject_id, payload.user_id)
        if existing:
            return _to_response(existing)
        raise BusinessError(
            "Responsible lecturer changed concurrently; retry the request",
            "CONCURRENT_MODIFICATION",
            status.HTTP_409_CONFLICT,
        )

    logger.info(
        "Assigned user %s to term subject %s (responsible=%s) by user %s",
        payload.user_id, term_subject_id, payload.is_responsible, actor_id,
    )
    return _to_response(await _reload(db, assignment.id))


async def remove_lecturer(db: AsyncSession, term_subject_id: int, user_id: int) -> None:
    """The responsible lecturer can only be removed when they are the last assignee."""
    assignment = await _get_assignment_or_404(db, term_subject_id, user_id)
    if assignment.is_responsible:
        result = await db.execute(
            select(func.count(TermSubjectProfessor.id)).where(
                TermSubjectProfessor.term_subject_id == term_subject_id
            )
        )
        if result.scalar_one() > 1:
            raise BusinessError(
                "Cannot remove responsible lecturer. Please assign another responsible lecturer first.",
                "CANNOT_REMOVE_RESPONSIBLE",
                status.HTTP_400_BAD_REQUEST,
            )
    await db.delete(assignment)
    try:
        await db.commit()
    except (IntegrityError, StaleDataError):
        await db.rollback()
        raise BusinessError("Lecturer assignment not found", "ASSIGNMENT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    logger.info("Removed user %s from term subject %s", user_id, term_subject_id)


async def change_responsible(
    db: AsyncSession, term_subject_id: int, user_id: int, actor_id: int
) -> LecturerResponse:
    await _ensure_term_subject(db, term_subject_id)
    assignment = await _find_assignment(db, term_subject_id, user_id)
    if not assignment:
        raise BusinessError(
            "Lecturer must be assigned to this subject before being set as responsible",
            "LECTURER_NOT_ASSIGNED",
            status.HTTP_400_BAD_REQUEST,
        )
    try:
        await _clear_responsible(db, term_subject_id)
        await db.execute(
            update(TermSubjectProfessor)
            .where(TermSubjectProfessor.id == assignment.id)
            .values(is_responsible=True, updated_by=actor_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise BusinessError(
            "Responsible lecturer changed concurrently; retry the request",
            "CONCURRENT_MODIFICATION",
            status.HTTP_409_CONFLICT,
        )
    logger.info("User %s is now responsible for term subject %s", user_id, term_subject_id)
    return _to_response(await _reload(db, assignment.id))


async def update_notes(
    db: AsyncSession,
    term_subject_id: int,
    user_id: int,
    notes: Optional[str],
    actor_id: int,
) -> LecturerResponse:
    assignment = await _get_assignment_or_404(db, term_subject_id, user_id)
    assignment.notes = notes
    assignment.updated_by = actor_id
    assignment.updated_at = datetime.utcnow()
    try:
        await db.commit()
    except (IntegrityError, StaleDataError):
        # Assignment removed between the read and the write
        await db.rollback()
        raise BusinessError("Lecturer assignment not found", "ASSIGNMENT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return _to_response(await _reload(db, assignment.id))


async def list_lecturers(db: AsyncSession, term_subject_id: int) -> List[LecturerResponse]:
    """Responsible lecturer first, then in assignment order."""
    await _ensure_term_subject(db, term_subject_id)
    result = await db.execute(
        select(TermSubjectProfessor)
        .options(selectinload(TermSubjectProfessor.user))
        .where(TermSubjectProfessor.term_subject_id == term_subject_id)
        .order_by(TermSubjectProfessor.is_responsible.desc(), TermSubjectProfessor.id)
    )
    return [_to_response(a) for a in result.scalars().all()]


async def get_responsible(db: AsyncSession, term_subject_id: int) -> Optional[LecturerResponse]:
    await _ensure_term_subject(db, term_subject_id)
    result = await db.execute(
        select(TermSubjectProfessor)
        .options(selectinload(TermSubjectProfessor.user))
        .where(
            TermSubjectProfessor.term_subject_id == term_subject_id,
            TermSubjectProfessor.is_responsible.is_(True),
        )
    )
    assignment = result.scalar_one_or_none()
    return _to_response(assignment) if assignment else None
