"""
Current academic term lookup.
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.exceptions import NoActiveTermError
from accredit.models.academic_term import AcademicTerm, TermStatus


async def get_current_term(db: AsyncSession) -> Optional[AcademicTerm]:
    """Return the most recently started active term, if any."""
    result = await db.execute(
        select(AcademicTerm)
        .where(AcademicTerm.status == TermStatus.ACTIVE)
        .order_by(AcademicTerm.start_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def require_current_term(db: AsyncSession) -> AcademicTerm:
    term = await get_current_term(db)
    if term is None:
        raise NoActiveTermError()
    return term
