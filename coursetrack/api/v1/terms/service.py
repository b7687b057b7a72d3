import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.core.enums import TermStatus
from coursetrack.core.exceptions import BusinessError, ServiceError
from coursetrack.core.models import Term, TermSubject
from coursetrack.api.v1.term_subjects import service as term_subject_store

from .resolver import resolve_current_term
from .schemas import TermCreate, TermResponse, TermUpdate
from .validation import DATE_FIELDS, validate_term_data

logger = logging.getLogger(__name__)


def compute_term_status(term_end_date: date, today: Optional[date] = None) -> str:
    today = today or date.today()
    return (TermStatus.ONGOING if today <= term_end_date else TermStatus.ENDED).value


def _to_response(term: Term, subject_count: int = 0, today: Optional[date] = None) -> TermResponse:
    return TermResponse(
        id=term.id,
        academic_year=term.academic_year,
        academic_sector=term.academic_sector,
        term_name=f"{term.academic_sector}/{term.academic_year}",
        term_start_date=term.term_start_date,
        term_end_date=term.term_end_date,
        midterm_start_date=term.midterm_start_date,
        midterm_end_date=term.midterm_end_date,
        final_start_date=term.final_start_date,
        final_end_date=term.final_end_date,
        is_active=bool(term.is_active),
        status=compute_term_status(term.term_end_date, today),
        subject_count=subject_count,
        created_at=term.created_at,
        created_by=term.created_by,
        updated_at=term.updated_at,
        updated_by=term.updated_by,
    )


def _duplicate_term(year: int, sector: int) -> BusinessError:
    return BusinessError(
        f"Term {sector}/{year} already exists",
        "DUPLICATE_TERM",
        status.HTTP_409_CONFLICT,
    )


async def _subject_counts(db: AsyncSession, term_ids: List[int]) -> Dict[int, int]:
    if not term_ids:
        return {}
    result = await db.execute(
        select(TermSubject.term_id, func.count(TermSubject.id))
        .where(TermSubject.term_id.in_(term_ids))
        .group_by(TermSubject.term_id)
    )
    return {term_id: count for term_id, count in result.all()}


async def _responses(db: AsyncSession, terms: List[Term]) -> List[TermResponse]:
    counts = await _subject_counts(db, [t.id for t in terms])
    today = date.today()
    return [_to_response(t, counts.get(t.id, 0), today) for t in terms]


async def _get_term_or_404(db: AsyncSession, term_id: int) -> Term:
    term = await db.get(Term, term_id)
    if not term:
        raise BusinessError("Term not found", "TERM_NOT_FOUND", status.HTTP_404_NOT_FOUND)
    return term


async def _term_exists(
    db: AsyncSession, year: int, sector: int, exclude_id: Optional[int] = None
) -> bool:
    stmt = select(Term.id).where(Term.academic_year == year, Term.academic_sector == sector)
    if exclude_id is not None:
        stmt = stmt.where(Term.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none() is not None


async def _clear_active_flag(db: AsyncSession, keep_id: Optional[int] = None) -> None:
    stmt = update(Term).where(Term.is_active.is_(True))
    if keep_id is not None:
        stmt = stmt.where(Term.id != keep_id)
    await db.execute(stmt.values(is_active=False).execution_options(synchronize_session=False))


async def _commit_with_subjects(
    db: AsyncSession,
    term_id: int,
    subject_ids: Optional[List[int]],
    attach: Optional[Callable[..., Awaitable[Any]]],
    actor_id: int,
) -> None:
    """Run the subject insert or replace, if any, and commit the term with it."""
    try:
        if attach is not None:
            await attach(db, term_id, subject_ids, actor_id)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError:
        # Subject deleted or pair taken after the pre-checks; the term row is fine
        await db.rollback()
        raise await term_subject_store.attach_failure(db, subject_ids or [])


async def create_term(db: AsyncSession, payload: TermCreate, actor_id: int) -> TermResponse:
    """Validate, insert the term and attach its subjects in one transaction."""
    data = validate_term_data(payload.model_dump())

    if await _term_exists(db, data.academic_year, data.academic_sector):
        raise _duplicate_term(data.academic_year, data.academic_sector)

    term = Term(**data.model_dump(), is_active=bool(payload.is_active), created_by=actor_id)
    try:
        if term.is_active:
            await _clear_active_flag(db)
        db.add(term)
        await db.flush()
    except IntegrityError:
        # A concurrent create won the unique (year, sector) slot
        await db.rollback()
        raise _duplicate_term(data.academic_year, data.academic_sector)

    attach = term_subject_store.bulk_insert_term_subjects if payload.subject_ids else None
    await _commit_with_subjects(db, term.id, payload.subject_ids, attach, actor_id)

    await db.refresh(term)
    logger.info("Created term %s/%s (id=%s) by user %s", term.academic_sector, term.academic_year, term.id, actor_id)
    return (await _responses(db, [term]))[0]


async def update_term(
    db: AsyncSession, term_id: int, payload: TermUpdate, actor_id: int
) -> TermResponse:
    """
    Fields omitted from the payload keep their stored value; the merged record is
    validated as a whole. subject_ids, when present, replaces the subject list.
    """
    term = await _get_term_or_404(db, term_id)

    provided = payload.model_dump(exclude_unset=True)
    merged: Dict[str, Any] = {
        "academic_year": term.academic_year,
        "academic_sector": term.academic_sector,
    }
    for field in DATE_FIELDS:
        merged[field] = getattr(term, field)
    merged.update({k: v for k, v in provided.items() if k not in ("is_active", "subject_ids")})
    data = validate_term_data(merged)

    key_changed = (data.academic_year, data.academic_sector) != (term.academic_year, term.academic_sector)
    if key_changed and await _term_exists(db, data.academic_year, data.academic_sector, exclude_id=term.id):
        raise _duplicate_term(data.academic_year, data.academic_sector)

    try:
        for field, value in data.model_dump().items():
            setattr(term, field, value)
        if payload.is_active is not None:
            if payload.is_active:
                await _clear_active_flag(db, keep_id=term.id)
            term.is_active = payload.is_active
        term.updated_by = actor_id
        term.updated_at = datetime.utcnow()
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise _duplicate_term(data.academic_year, data.academic_sector)

    replace = "subject_ids" in provided and payload.subject_ids is not None
    attach = term_subject_store.replace_term_subjects_in_tx if replace else None
    await _commit_with_subjects(db, term.id, payload.subject_ids, attach, actor_id)

    await db.refresh(term)
    return (await _responses(db, [term]))[0]


async def delete_term(db: AsyncSession, term_id: int) -> None:
    term = await _get_term_or_404(db, term_id)
    await db.delete(term)
    await db.commit()
    logger.info("Deleted term %s/%s (id=%s)", term.academic_sector, term.academic_year, term_id)


async def get_term(db: AsyncSession, term_id: int) -> TermResponse:
    term = await _get_term_or_404(db, term_id)
    return (await _responses(db, [term]))[0]


def _ordered(stmt):
    return stmt.order_by(Term.academic_year.desc(), Term.academic_sector.desc())


async def list_terms(
    db: AsyncSession,
    academic_year: Optional[int] = None,
    academic_sector: Optional[int] = None,
) -> List[TermResponse]:
    stmt = select(Term)
    if academic_year is not None:
        stmt = stmt.where(Term.academic_year == academic_year)
    if academic_sector is not None:
        stmt = stmt.where(Term.academic_sector == academic_sector)
    result = await db.execute(_ordered(stmt))
    return await _responses(db, list(result.scalars().all()))


async def list_active_terms(db: AsyncSession, today: Optional[date] = None) -> List[TermResponse]:
    """Terms still running or not yet started (end date today or later)."""
    today = today or date.today()
    result = await db.execute(_ordered(select(Term).where(Term.term_end_date >= today)))
    return await _responses(db, list(result.scalars().all()))


async def list_ended_terms(db: AsyncSession, today: Optional[date] = None) -> List[TermResponse]:
    today = today or date.today()
    result = await db.execute(_ordered(select(Term).where(Term.term_end_date < today)))
    return await _responses(db, list(result.scalars().all()))


async def set_active_term(db: AsyncSession, term_id: int, actor_id: int) -> TermResponse:
    """Flag one term as current and clear the flag everywhere else."""
    term = await _get_term_or_404(db, term_id)
    await _clear_active_flag(db, keep_id=term.id)
    term.is_active = True
    term.updated_by = actor_id
    term.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(term)
    logger.info("Term %s/%s marked active by user %s", term.academic_sector, term.academic_year, actor_id)
    return (await _responses(db, [term]))[0]


async def get_current_term(db: AsyncSession, today: Optional[date] = None) -> TermResponse:
    term = await resolve_current_term(db, today)
    if not term:
        raise BusinessError("No term found in the system", "NO_TERM_FOUND", status.HTTP_404_NOT_FOUND)
    return (await _responses(db, [term]))[0]
