"""Term subjects: membership of subjects in a term, filed-document status, workload approval and visibility."""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Set

from fastapi import status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from coursetrack.auth.rbac import Capabilities
from coursetrack.auth.schemas import CurrentUser
from coursetrack.core import reference
from coursetrack.core.enums import TermStatus, WorkloadApproval
from coursetrack.core.exceptions import BusinessError, ServiceError
from coursetrack.core.models import (
    StudentYear,
    Subject,
    Term,
    TermSubject,
    TermSubjectAuditLog,
    TermSubjectProfessor,
    WorkDetail,
)
from coursetrack.api.v1.terms.resolver import resolve_current_term

from . import workflow
from .schemas import (
    ActiveTermInfo,
    ActiveTermSubjectsResponse,
    AuditEntryResponse,
    LecturerBrief,
    TermSubjectBulkCreate,
    TermSubjectCreate,
    TermSubjectResponse,
    TermSubjectStatusResponse,
    TermSubjectUpdate,
)
from .workflow import WorkloadAction

logger = logging.getLogger(__name__)


def _subject_fields(ts: TermSubject) -> Dict[str, Optional[str]]:
    subj = ts.__dict__.get("subject")
    if subj is None:
        return {}
    return {
        "code_th": subj.code_th,
        "code_eng": subj.code_eng,
        "name_th": subj.name_th,
        "name_eng": subj.name_eng,
        "credit": subj.credit,
    }


def _to_response(ts: TermSubject) -> TermSubjectResponse:
    return TermSubjectResponse(
        id=ts.id,
        term_id=ts.term_id,
        subject_id=ts.subject_id,
        is_active=ts.is_active,
        outline_status=ts.outline_status,
        outline_approved=ts.outline_approved,
        workload_status=ts.workload_status,
        workload_approved=workflow.coerce_state(ts.workload_approved).value,
        report_status=ts.report_status,
        report_approved=ts.report_approved,
        created_at=ts.created_at,
        created_by=ts.created_by,
        updated_at=ts.updated_at,
        updated_by=ts.updated_by,
        **_subject_fields(ts),
    )


def _lecturer_brief(assignment: TermSubjectProfessor) -> LecturerBrief:
    user = assignment.__dict__.get("user")
    return LecturerBrief(
        user_id=assignment.user_id,
        email=user.email if user else None,
        first_name_th=user.first_name_th if user else None,
        last_name_th=user.last_name_th if user else None,
        first_name_en=user.first_name_en if user else None,
        last_name_en=user.last_name_en if user else None,
        is_responsible=assignment.is_responsible,
    )


def _to_status_response(ts: TermSubject) -> TermSubjectStatusResponse:
    base = _to_response(ts)
    lecturers = sorted(ts.professors, key=lambda p: p.id)
    responsible = next((p.user_id for p in lecturers if p.is_responsible), None)
    return TermSubjectStatusResponse(
        **base.model_dump(),
        lecturers=[_lecturer_brief(p) for p in lecturers],
        responsible_lecturer_id=responsible,
        allowed_workload_actions=workflow.allowed_actions(ts.workload_approved),
    )


def _with_subject(stmt):
    return stmt.options(selectinload(TermSubject.subject))


def _with_status(stmt):
    return stmt.options(
        selectinload(TermSubject.subject),
        selectinload(TermSubject.professors).selectinload(TermSubjectProfessor.user),
    )


async def _get_term_or_404(db: AsyncSession, term_id: int) -> Term:
    term = await db.get(Term, term_id)
    if not term:
        raise BusinessError("Term not found", "TERM_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return term


async def get_term_subject_or_404(db: AsyncSession, term_subject_id: int) -> TermSubject:
    result = await db.execute(
        _with_subject(select(TermSubject).where(TermSubject.id == term_subject_id))
        .execution_options(populate_existing=True)
    )
    ts = result.scalar_one_or_none()
    if not ts:
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return ts


async def is_assigned(db: AsyncSession, term_subject_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(TermSubjectProfessor.id).where(
            TermSubjectProfessor.term_subject_id == term_subject_id,
            TermSubjectProfessor.user_id == user_id,
        )
    )
    return result.scalar_one_or_none() is not None


# ---------------------------------------------------------------------------
# Store primitives. These flush but never commit; callers own the transaction.
# ---------------------------------------------------------------------------


async def _present_subject_ids(db: AsyncSession, term_id: int, subject_ids: List[int]) -> Set[int]:
    result = await db.execute(
        select(TermSubject.subject_id).where(
            TermSubject.term_id == term_id,
            TermSubject.subject_id.in_(subject_ids),
        )
    )
    return set(result.scalars().all())


async def attach_failure(db: AsyncSession, subject_ids: List[int]) -> BusinessError:
    """
    Name the constraint a failed attach ran into. Call after rolling back: a subject
    deleted since the pre-check gives SUBJECT_NOT_FOUND, otherwise the pair was taken.
    """
    missing = await reference.missing_subject_ids(db, list(dict.fromkeys(subject_ids or [])))
    if missing:
        return BusinessError(
            f"Subject not found: {', '.join(str(i) for i in missing)}",
            "SUBJECT_NOT_FOUND",
            status.HTTP_404_NOT_FOUND,
            extra={"subject_ids": missing},
        )
    return BusinessError(
        "This subject is already added to this term",
        "DUPLICATE_TERM_SUBJECT",
        status.HTTP_409_CONFLICT,
    )


async def bulk_insert_term_subjects(
    db: AsyncSession,
    term_id: int,
    subject_ids: List[int],
    actor_id: Optional[int],
) -> List[TermSubject]:
    """Insert (term, subject) pairs that are not there yet. Input duplicates collapse; existing pairs are skipped."""
    unique_ids = list(dict.fromkeys(subject_ids or []))
    if not unique_ids:
        return []

    missing = await reference.missing_subject_ids(db, unique_ids)
    if missing:
        raise BusinessError(
            f"Subject not found: {', '.join(str(i) for i in missing)}",
            "SUBJECT_NOT_FOUND",
            status.HTTP_404_NOT_FOUND,
            extra={"subject_ids": missing},
        )

    present = await _present_subject_ids(db, term_id, unique_ids)

    rows = [
        TermSubject(term_id=term_id, subject_id=subject_id, created_by=actor_id)
        for subject_id in unique_ids
        if subject_id not in present
    ]
    if rows:
        db.add_all(rows)
        await db.flush()
    logger.info(
        "Attached %d subject(s) to term %s (%d already present)",
        len(rows), term_id, len(present),
    )
    return rows


async def delete_term_subjects_for_term(db: AsyncSession, term_id: int) -> int:
    """Delete every term subject of a term together with its assignments, work items and audit notes."""
    ids = select(TermSubject.id).where(TermSubject.term_id == term_id)
    for child in (TermSubjectProfessor, WorkDetail, TermSubjectAuditLog):
        await db.execute(
            delete(child)
            .where(child.term_subject_id.in_(ids))
            .execution_options(synchronize_session=False)
        )
    result = await db.execute(
        delete(TermSubject)
        .where(TermSubject.term_id == term_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def replace_term_subjects_in_tx(
    db: AsyncSession,
    term_id: int,
    subject_ids: List[int],
    actor_id: Optional[int],
) -> List[TermSubject]:
    """
    Delete-all-then-insert. Lossy: lecturers, work items and filed status of every
    previous row are destroyed, including rows whose subject is re-attached.
    """
    removed = await delete_term_subjects_for_term(db, term_id)
    logger.info("Replacing subjects of term %s: removed %d row(s)", term_id, removed)
    return await bulk_insert_term_subjects(db, term_id, subject_ids, actor_id)


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


async def add_subject_to_term(
    db: AsyncSession,
    payload: TermSubjectCreate,
    actor_id: int,
) -> TermSubjectResponse:
    await _get_term_or_404(db, payload.term_id)
    if not await reference.subject_exists(db, payload.subject_id):
        raise BusinessError("Subject not found", "SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)

    if await _present_subject_ids(db, payload.term_id, [payload.subject_id]):
        raise BusinessError(
            "This subject is already added to this term",
            "DUPLICATE_TERM_SUBJECT",
            status.HTTP_409_CONFLICT,
        )

    ts = TermSubject(
        term_id=payload.term_id,
        subject_id=payload.subject_id,
        is_active=payload.is_active,
        created_by=actor_id,
    )
    db.add(ts)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race: the pair was inserted or the subject deleted since the checks above
        await db.rollback()
        raise await attach_failure(db, [payload.subject_id])
    return _to_response(await get_term_subject_or_404(db, ts.id))


async def bulk_add_subjects(
    db: AsyncSession,
    payload: TermSubjectBulkCreate,
    actor_id: int,
) -> List[TermSubjectResponse]:
    """Returns only the rows inserted by this call."""
    await _get_term_or_404(db, payload.term_id)
    for attempt in (1, 2):
        try:
            rows = await bulk_insert_term_subjects(db, payload.term_id, payload.subject_ids, actor_id)
            await db.commit()
            break
        except ServiceError:
            await db.rollback()
            raise
        except IntegrityError:
            await db.rollback()
            if attempt == 2:
                raise await attach_failure(db, payload.subject_ids)
            # A concurrent attach took some of the pairs; the next pass skips them
            logger.info("Bulk attach to term %s hit a concurrent insert; retrying", payload.term_id)
    ids = [r.id for r in rows]
    if not ids:
        return []
    result = await db.execute(_with_subject(select(TermSubject).where(TermSubject.id.in_(ids))))
    return [_to_response(ts) for ts in sorted(result.scalars().all(), key=lambda t: ids.index(t.id))]


async def list_term_subjects(db: AsyncSession, term_id: int) -> List[TermSubjectResponse]:
    await _get_term_or_404(db, term_id)
    result = await db.execute(
        _with_subject(
            select(TermSubject)
            .join(Subject, Subject.id == TermSubject.subject_id)
            .where(TermSubject.term_id == term_id)
            .order_by(Subject.code_eng, TermSubject.id)
        )
    )
    return [_to_response(ts) for ts in result.scalars().all()]


async def replace_term_subjects(
    db: AsyncSession,
    term_id: int,
    subject_ids: List[int],
    actor_id: int,
) -> List[TermSubjectResponse]:
    """Replace the whole subject list of a term. Callers must send the complete desired list."""
    await _get_term_or_404(db, term_id)
    try:
        await replace_term_subjects_in_tx(db, term_id, subject_ids, actor_id)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise await attach_failure(db, subject_ids)
    db.expunge_all()
    return await list_term_subjects(db, term_id)


async def get_term_subject(db: AsyncSession, term_subject_id: int) -> TermSubjectResponse:
    return _to_response(await get_term_subject_or_404(db, term_subject_id))


async def get_term_subject_detail(
    db: AsyncSession,
    term_subject_id: int,
    user: CurrentUser,
    caps: Capabilities,
) -> TermSubjectStatusResponse:
    """Term subject with its lecturers. Instructors may only open subjects they teach."""
    result = await db.execute(_with_status(select(TermSubject).where(TermSubject.id == term_subject_id)))
    ts = result.scalar_one_or_none()
    if not ts:
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    if not caps.can_view_all and not any(p.user_id == user.id for p in ts.professors):
        raise BusinessError(
            "You do not have permission to view this subject",
            "PERMISSION_DENIED",
            status.HTTP_403_FORBIDDEN,
        )
    return _to_status_response(ts)


async def update_term_subject(
    db: AsyncSession,
    term_subject_id: int,
    payload: TermSubjectUpdate,
    actor_id: int,
) -> TermSubjectResponse:
    ts = await get_term_subject_or_404(db, term_subject_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(ts, field, value.value if hasattr(value, "value") else value)
    ts.updated_by = actor_id
    ts.updated_at = datetime.utcnow()
    try:
        await db.commit()
    except (IntegrityError, StaleDataError):
        # Row deleted, or its parents gone, between the read and the write
        await db.rollback()
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return _to_response(await get_term_subject_or_404(db, term_subject_id))


async def remove_term_subject(db: AsyncSession, term_subject_id: int) -> None:
    ts = await get_term_subject_or_404(db, term_subject_id)
    await db.delete(ts)
    try:
        await db.commit()
    except (IntegrityError, StaleDataError):
        await db.rollback()
        raise BusinessError("Term subject not found", "TERM_SUBJECT_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    logger.info("Removed term subject %s (term %s, subject %s)", ts.id, ts.term_id, ts.subject_id)


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


def _visible_to(stmt, user: CurrentUser, caps: Capabilities):
    if caps.can_view_all:
        return stmt
    assigned = select(TermSubjectProfessor.term_subject_id).where(TermSubjectProfessor.user_id == user.id)
    return stmt.where(TermSubject.id.in_(assigned))


async def _status_rows(
    db: AsyncSession,
    term_id: int,
    user: CurrentUser,
    caps: Capabilities,
    program_id: Optional[int] = None,
    student_year_id: Optional[int] = None,
) -> List[TermSubjectStatusResponse]:
    stmt = (
        select(TermSubject)
        .join(Subject, Subject.id == TermSubject.subject_id)
        .where(TermSubject.term_id == term_id)
    )
    if program_id is not None:
        stmt = stmt.where(Subject.program_id == program_id)
    if student_year_id is not None:
        stmt = stmt.where(Subject.student_years.any(StudentYear.id == student_year_id))
    stmt = _with_status(_visible_to(stmt, user, caps)).order_by(Subject.code_eng, TermSubject.id)
    result = await db.execute(stmt)
    return [_to_status_response(ts) for ts in result.scalars().all()]


async def list_term_subjects_status(
    db: AsyncSession,
    term_id: int,
    user: CurrentUser,
    caps: Capabilities,
    program_id: Optional[int] = None,
    student_year_id: Optional[int] = None,
) -> List[TermSubjectStatusResponse]:
    """Course status board for one term: everything for staff, own subjects for instructors."""
    await _get_term_or_404(db, term_id)
    if program_id is not None and not await reference.program_exists(db, program_id):
        raise BusinessError("Program not found", "PROGRAM_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    if student_year_id is not None and not await reference.student_year_exists(db, student_year_id):
        raise BusinessError("Student year not found", "STUDENT_YEAR_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return await _status_rows(db, term_id, user, caps, program_id, student_year_id)


async def active_term_subjects_status(
    db: AsyncSession,
    user: CurrentUser,
    caps: Capabilities,
    today: Optional[date] = None,
) -> ActiveTermSubjectsResponse:
    today = today or date.today()
    term = await resolve_current_term(db, today)
    if not term:
        raise BusinessError("No term found in the system", "NO_TERM_FOUND", status.HTTP_404_NOT_FOUND)
    subjects = await _status_rows(db, term.id, user, caps)
    return ActiveTermSubjectsResponse(
        term=ActiveTermInfo(
            id=term.id,
            academic_year=term.academic_year,
            academic_sector=term.academic_sector,
            term_name=f"{term.academic_sector}/{term.academic_year}",
            status=(TermStatus.ONGOING if today <= term.term_end_date else TermStatus.ENDED).value,
        ),
        subjects=subjects,
    )


async def list_my_subjects(db: AsyncSession, user_id: int) -> List[TermSubjectStatusResponse]:
    """Every term subject the user is assigned to, newest term first."""
    assigned = select(TermSubjectProfessor.term_subject_id).where(TermSubjectProfessor.user_id == user_id)
    result = await db.execute(
        _with_status(
            select(TermSubject)
            .join(Term, Term.id == TermSubject.term_id)
            .join(Subject, Subject.id == TermSubject.subject_id)
            .where(TermSubject.id.in_(assigned))
            .order_by(Term.academic_year.desc(), Term.academic_sector.desc(), Subject.code_eng)
        )
    )
    return [_to_status_response(ts) for ts in result.scalars().all()]


# ---------------------------------------------------------------------------
# Workload approval
# ---------------------------------------------------------------------------


async def _apply_workload_state(
    db: AsyncSession,
    ts: TermSubject,
    target: WorkloadApproval,
    action: str,
    actor_id: int,
    remarks: Optional[str] = None,
    expected: Optional[str] = None,
) -> bool:
    """Conditional write: only succeeds if the row still holds `expected`. Appends an audit entry."""
    values = {
        "workload_approved": target.value,
        "updated_by": actor_id,
        "updated_at": datetime.utcnow(),
    }
    if target == WorkloadApproval.submitted:
        values["workload_status"] = True
    stmt = update(TermSubject).where(TermSubject.id == ts.id)
    if expected is not None:
        stmt = stmt.where(TermSubject.workload_approved == expected)
    result = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        return False
    db.add(
        TermSubjectAuditLog(
            term_subject_id=ts.id,
            action=action,
            from_status=expected or ts.workload_approved,
            to_status=target.value,
            performed_by=actor_id,
            remarks=remarks,
        )
    )
    return True


async def _transition(
    db: AsyncSession,
    term_subject_id: int,
    action: WorkloadAction,
    actor_id: int,
    remarks: Optional[str] = None,
) -> TermSubjectResponse:
    ts = await get_term_subject_or_404(db, term_subject_id)
    current = workflow.coerce_state(ts.workload_approved)
    target = workflow.apply_transition(current.value, action)
    try:
        applied = await _apply_workload_state(
            db, ts, target, action.value.upper(), actor_id, remarks=remarks, expected=current.value
        )
        if not applied:
            # Another request moved the row first; report against the state it holds now
            await db.rollback()
            fresh = await get_term_subject_or_404(db, term_subject_id)
            workflow.apply_transition(fresh.workload_approved, action)
            raise BusinessError(
                "Workload status changed concurrently; retry the request",
                "CONCURRENT_MODIFICATION",
                status.HTTP_409_CONFLICT,
            )
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    logger.info(
        "Workload of term subject %s: %s -> %s (%s by user %s)",
        term_subject_id, current.value, target.value, action.value, actor_id,
    )
    return _to_response(await get_term_subject_or_404(db, term_subject_id))


async def submit_workload(db: AsyncSession, term_subject_id: int, user_id: int) -> TermSubjectResponse:
    """pending -> submitted. Only an instructor assigned to the subject may submit."""
    await get_term_subject_or_404(db, term_subject_id)
    if not await is_assigned(db, term_subject_id, user_id):
        raise BusinessError("You are not assigned to this subject", "NOT_ASSIGNED", status.HTTP_403_FORBIDDEN)
    return await _transition(db, term_subject_id, WorkloadAction.submit, user_id)


async def approve_workload(db: AsyncSession, term_subject_id: int, officer_id: int) -> TermSubjectResponse:
    """submitted -> approved."""
    return await _transition(db, term_subject_id, WorkloadAction.approve, officer_id)


async def reject_workload(
    db: AsyncSession,
    term_subject_id: int,
    officer_id: int,
    reason: Optional[str] = None,
) -> TermSubjectResponse:
    """submitted -> pending. The reason is kept as an audit remark, not on the term subject."""
    if reason:
        logger.info("Rejection reason for term subject %s: %s", term_subject_id, reason)
    return await _transition(db, term_subject_id, WorkloadAction.reject, officer_id, remarks=reason)


async def override_workload_approval(
    db: AsyncSession,
    term_subject_id: int,
    target: WorkloadApproval,
    officer_id: int,
    remarks: Optional[str] = None,
) -> TermSubjectResponse:
    """Administrative override: set any workload state, including leaving approved."""
    ts = await get_term_subject_or_404(db, term_subject_id)
    previous = workflow.coerce_state(ts.workload_approved).value
    await _apply_workload_state(db, ts, target, "OVERRIDE", officer_id, remarks=remarks, expected=None)
    await db.commit()
    logger.warning(
        "Workload of term subject %s overridden: %s -> %s by user %s",
        term_subject_id, previous, target.value, officer_id,
    )
    return _to_response(await get_term_subject_or_404(db, term_subject_id))


async def list_workload_history(db: AsyncSession, term_subject_id: int) -> List[AuditEntryResponse]:
    await get_term_subject_or_404(db, term_subject_id)
    result = await db.execute(
        select(TermSubjectAuditLog)
        .where(TermSubjectAuditLog.term_subject_id == term_subject_id)
        .order_by(TermSubjectAuditLog.timestamp, TermSubjectAuditLog.id)
    )
    return [AuditEntryResponse.model_validate(e) for e in result.scalars().all()]
