from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.auth.rbac import require_capability
from coursetrack.core.exceptions import ServiceError
from coursetrack.db.session import get_db

from .schemas import AverageWorkloadResponse, DashboardTerm, SummaryResponse, WorkloadChartResponse
from . import service

router = APIRouter(
    prefix="/api/v1/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(require_capability("can_view_reports"))],
)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    term_id: Optional[int] = Query(None, description="Defaults to the current term"),
    db: AsyncSession = Depends(get_db),
) -> SummaryResponse:
    """Subjects in the term and how many have filed outline, workload and report."""
    try:
        return await service.summary(db, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/average-workload", response_model=AverageWorkloadResponse)
async def get_average_workload(
    term_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> AverageWorkloadResponse:
    try:
        return await service.average_workload(db, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/workload-chart", response_model=WorkloadChartResponse)
async def get_workload_chart(
    term_id: Optional[int] = Query(None),
    years: Optional[str] = Query(None, description='Comma separated year levels, e.g. "1,2"'),
    db: AsyncSession = Depends(get_db),
) -> WorkloadChartResponse:
    """Total work hours per week of term, optionally restricted to subjects of some year levels."""
    try:
        year_levels = service.parse_year_levels(years)
        return await service.workload_chart(db, term_id, year_levels)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/active-term", response_model=DashboardTerm)
async def get_active_term(db: AsyncSession = Depends(get_db)) -> DashboardTerm:
    try:
        return await service.active_term(db)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
