"""Read-only lookups against reference data (subjects, programs, student years, users)."""

from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursetrack.core.models import Program, StudentYear, Subject, User


async def subject_exists(db: AsyncSession, subject_id: int) -> bool:
    result = await db.execute(select(Subject.id).where(Subject.id == subject_id))
    return result.scalar_one_or_none() is not None


async def missing_subject_ids(db: AsyncSession, subject_ids: Iterable[int]) -> List[int]:
    """Return the ids from subject_ids that have no subjects row, in ascending order."""
    wanted = set(subject_ids)
    if not wanted:
        return []
    result = await db.execute(select(Subject.id).where(Subject.id.in_(wanted)))
    found = set(result.scalars().all())
    return sorted(wanted - found)


async def program_exists(db: AsyncSession, program_id: int) -> bool:
    result = await db.execute(select(Program.id).where(Program.id == program_id))
    return result.scalar_one_or_none() is not None


async def student_year_exists(db: AsyncSession, student_year_id: int) -> bool:
    result = await db.execute(select(StudentYear.id).where(StudentYear.id == student_year_id))
    return result.scalar_one_or_none() is not None


async def active_user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        select(User.id).where(User.id == user_id, User.is_active.is_(True))
    )
    return result.scalar_one_or_none() is not None
