"""
Resolve the "current" term for views that default to it.
1. the row explicitly flagged is_active
2. else the row whose term window contains today
3. else the most recent row by (academic_year, academic_sector)
Evaluated on every call; nothing is cached between requests.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.core.models import Term


def _newest_first(stmt):
    return stmt.order_by(Term.academic_year.desc(), Term.academic_sector.desc()).limit(1)


async def resolve_current_term(db: AsyncSession, today: Optional[date] = None) -> Optional[Term]:
    today = today or date.today()

    flagged = await db.execute(_newest_first(select(Term).where(Term.is_active.is_(True))))
    term = flagged.scalars().first()
    if term:
        return term

    in_window = await db.execute(
        _newest_first(
            select(Term).where(
                Term.term_start_date <= today,
                Term.term_end_date >= today,
            )
        )
    )
    term = in_window.scalars().first()
    if term:
        return term

    latest = await db.execute(_newest_first(select(Term)))
    return latest.scalars().first()
