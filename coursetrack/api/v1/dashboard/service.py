"""Dashboard figures for one term. Defaults to the current term when none is named."""

from typing import List, Optional

from fastapi import status
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coursetrack.core.config import settings
from coursetrack.core.exceptions import BusinessError
from coursetrack.core.models import Subject, Term, TermSubject, WorkDetail
from coursetrack.api.v1.terms.resolver import resolve_current_term

from . import aggregator
from .aggregator import WorkSpan
from .schemas import (
    AverageWorkloadResponse,
    DashboardTerm,
    FiledCount,
    SummaryResponse,
    SummaryStatistics,
    WorkloadChartResponse,
)


def parse_year_levels(raw: Optional[str]) -> List[int]:
    """Parse a "1,2" style list. Missing means all four years; anything outside 1-4 is rejected."""
    if raw is None or not raw.strip():
        return list(aggregator.YEAR_LEVELS)
    levels: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part.isdecimal() or int(part) not in aggregator.YEAR_LEVELS:
            raise BusinessError(
                "Year levels must be integers between 1 and 4",
                "INVALID_YEAR_LEVELS",
                status.HTTP_400_BAD_REQUEST,
            )
        if int(part) not in levels:
            levels.append(int(part))
    return levels


async def _target_term(db: AsyncSession, term_id: Optional[int]) -> Term:
    if term_id is not None:
        term = await db.get(Term, term_id)
        if not term:
            raise BusinessError("Term not found", "TERM_NOT_FOUND", status.HTTP_404_NOT_FOUND)
        return term
    term = await resolve_current_term(db)
    if not term:
        raise BusinessError("No term found in the system", "NO_TERM_FOUND", status.HTTP_404_NOT_FOUND)
    return term


def _filed(count: int, total: int) -> FiledCount:
    # half-up rounding to a whole percent
    percentage = (count * 200 + total) // (total * 2) if total else 0
    return FiledCount(count=count, total=total, percentage=percentage)


async def summary(db: AsyncSession, term_id: Optional[int] = None) -> SummaryResponse:
    term = await _target_term(db, term_id)
    result = await db.execute(
        select(
            func.count(TermSubject.id),
            func.sum(case((TermSubject.outline_status.is_(True), 1), else_=0)),
            func.sum(case((TermSubject.workload_status.is_(True), 1), else_=0)),
            func.sum(case((TermSubject.report_status.is_(True), 1), else_=0)),
        ).where(TermSubject.term_id == term.id)
    )
    total, outline, workload, report = result.one()
    total = int(total or 0)
    return SummaryResponse(
        term_id=term.id,
        statistics=SummaryStatistics(
            total_subjects=total,
            outline_submitted=_filed(int(outline or 0), total),
            workload_filled=_filed(int(workload or 0), total),
            report_submitted=_filed(int(report or 0), total),
        ),
    )


async def _work_spans(db: AsyncSession, term_id: int) -> List[WorkSpan]:
    result = await db.execute(
        select(WorkDetail)
        .join(TermSubject, TermSubject.id == WorkDetail.term_subject_id)
        .where(TermSubject.term_id == term_id)
        .options(
            selectinload(WorkDetail.term_subject)
            .selectinload(TermSubject.subject)
            .selectinload(Subject.student_years)
        )
    )
    spans = []
    for w in result.scalars().all():
        years = frozenset(sy.student_year for sy in w.term_subject.subject.student_years)
        spans.append(WorkSpan(w.start_date, w.end_date, w.hours_per_week, years))
    return spans


async def average_workload(db: AsyncSession, term_id: Optional[int] = None) -> AverageWorkloadResponse:
    term = await _target_term(db, term_id)
    spans = await _work_spans(db, term.id)
    return AverageWorkloadResponse(
        term_id=term.id,
        average_by_year=aggregator.average_hours_by_year(spans),
    )


async def workload_chart(
    db: AsyncSession,
    term_id: Optional[int] = None,
    year_levels: Optional[List[int]] = None,
) -> WorkloadChartResponse:
    if year_levels is None:
        year_levels = list(aggregator.YEAR_LEVELS)
    term = await _target_term(db, term_id)
    spans = await _work_spans(db, term.id)
    return WorkloadChartResponse(
        term_id=term.id,
        academic_year=term.academic_year,
        academic_sector=term.academic_sector,
        year_levels=year_levels,
        chart_data=aggregator.weekly_totals(
            term.term_start_date, spans, weeks=settings.term_week_count, year_levels=year_levels
        ),
    )


async def active_term(db: AsyncSession) -> DashboardTerm:
    term = await _target_term(db, None)
    return DashboardTerm(
        id=term.id,
        academic_year=term.academic_year,
        academic_sector=term.academic_sector,
        term_name=f"{term.academic_sector}/{term.academic_year}",
        term_start_date=term.term_start_date,
        term_end_date=term.term_end_date,
        is_active=bool(term.is_active),
    )
