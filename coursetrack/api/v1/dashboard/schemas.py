from datetime import date
from typing import List

from pydantic import BaseModel


class FiledCount(BaseModel):
    count: int
    total: int
    percentage: int


class SummaryStatistics(BaseModel):
    total_subjects: int
    outline_submitted: FiledCount
    workload_filled: FiledCount
    report_submitted: FiledCount


class SummaryResponse(BaseModel):
    term_id: int
    statistics: SummaryStatistics


class YearAverage(BaseModel):
    year_level: int
    avg_hours: float


class AverageWorkloadResponse(BaseModel):
    term_id: int
    average_by_year: List[YearAverage]


class WeekTotal(BaseModel):
    week: int
    total_hours: int


class WorkloadChartResponse(BaseModel):
    term_id: int
    academic_year: int
    academic_sector: int
    year_levels: List[int]
    chart_data: List[WeekTotal]


class DashboardTerm(BaseModel):
    id: int
    academic_year: int
    academic_sector: int
    term_name: str
    term_start_date: date
    term_end_date: date
    is_active: bool

    class Config:
        from_attributes = True
