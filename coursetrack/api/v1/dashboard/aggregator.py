"""
Weekly workload aggregation. Pure functions, no database access.

Week k (1-indexed) covers term_start + (k-1)*7 days through term_start + k*7 - 1 days.
A work item adds its full hours_per_week to every week its date range touches;
partial weeks are not pro-rated.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Sequence

YEAR_LEVELS = (1, 2, 3, 4)


class WeekSpan(NamedTuple):
    week: int
    start: date
    end: date


class WorkSpan(NamedTuple):
    start_date: date
    end_date: date
    hours_per_week: int
    year_levels: FrozenSet[int] = frozenset()


def week_spans(term_start: date, weeks: int = 16) -> List[WeekSpan]:
    return [
        WeekSpan(
            week=k,
            start=term_start + timedelta(days=(k - 1) * 7),
            end=term_start + timedelta(days=k * 7 - 1),
        )
        for k in range(1, weeks + 1)
    ]


def _overlaps(item: WorkSpan, span: WeekSpan) -> bool:
    return item.start_date <= span.end and item.end_date >= span.start


def weekly_totals(
    term_start: date,
    items: Iterable[WorkSpan],
    weeks: int = 16,
    year_levels: Optional[Sequence[int]] = None,
) -> List[dict]:
    """
    Total hours per week of term. When year_levels is given, only items whose subject
    belongs to at least one of those years are counted, each item once.
    """
    wanted = set(year_levels) if year_levels is not None else None
    selected = [i for i in items if wanted is None or i.year_levels & wanted]
    return [
        {"week": span.week, "total_hours": sum(i.hours_per_week for i in selected if _overlaps(i, span))}
        for span in week_spans(term_start, weeks)
    ]


def _round1(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_hours_by_year(items: Iterable[WorkSpan]) -> List[dict]:
    """Mean hours_per_week of the items touching each year level 1-4, rounded to one decimal; 0 when none."""
    items = list(items)
    out = []
    for year in YEAR_LEVELS:
        hours = [i.hours_per_week for i in items if year in i.year_levels]
        avg = _round1(Decimal(sum(hours)) / Decimal(len(hours))) if hours else 0
        out.append({"year_level": year, "avg_hours": avg})
    return out
