"""
Student officials of organizations and councils.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.exceptions import ConflictError, InvalidInputError
from accredit.models.student_official import StudentOfficial, PRESIDENT, MEMBER
from accredit.services import guards, storage
from accredit.services.file_validation import PICTURE_PROFILE, IncomingFile, ensure_valid
from accredit.services.guards import Owner, OwnerKind
from accredit.services.naming import normalize_person_name
from accredit.services.terms import require_current_term

logger = logging.getLogger(__name__)

UPLOAD_CATEGORY = "officials"

_KIND_LABEL = {
    OwnerKind.ORGANIZATION: ("organization", "Organization"),
    OwnerKind.COUNCIL: ("council", "Council"),
}


@dataclass(frozen=True)
class OfficialInput:
    name: str
    student_number: str
    position: str = MEMBER
    course: Optional[str] = None
    year_section: Optional[str] = None


def cross_presidency_message(owner_kind: OwnerKind, conflict: guards.OfficeConflict) -> str:
    target, _ = _KIND_LABEL[owner_kind]
    _, other_title = _KIND_LABEL[owner_kind.other]
    return (
        f"Cannot add this student to the {target}. {conflict.official_name} is already "
        f"the President of {conflict.owner_name}. {other_title} presidents cannot hold "
        f"{target} positions."
    )


async def list_officials(db: AsyncSession, owner: Owner, term_id: str) -> list[StudentOfficial]:
    result = await db.execute(
        select(StudentOfficial)
        .where(owner.column == owner.id, StudentOfficial.academic_term_id == term_id)
        .order_by(StudentOfficial.created)
    )
    return list(result.scalars().all())


async def check_student(
    db: AsyncSession, owner: Owner, student_number: str, term_id: str
) -> Optional[str]:
    """Reason the student cannot be added to the owner this term, if any."""
    if await guards.duplicate_official(db, owner, student_number, term_id):
        return "This student number is already registered as a member in the current academic year."
    conflict = await guards.is_president_elsewhere(db, student_number, term_id, owner.kind)
    if conflict:
        return cross_presidency_message(owner.kind, conflict)
    return None


async def add_official(
    db: AsyncSession,
    owner: Owner,
    data: OfficialInput,
    picture: Optional[IncomingFile] = None,
) -> StudentOfficial:
    name = normalize_person_name(data.name or "")
    student_number = (data.student_number or "").strip()
    if not name or not student_number:
        raise InvalidInputError("Name and student number are required.")
    position = normalize_person_name(data.position or "") or MEMBER
    if picture is not None:
        ensure_valid(picture, PICTURE_PROFILE)

    picture_path = None
    try:
        term = await require_current_term(db)
        await guards.load_owner(db, owner)

        reason = await check_student(db, owner, student_number, term.id)
        if reason:
            raise ConflictError(reason)
        if await guards.position_taken(db, owner, position, term.id):
            raise ConflictError(
                f"The position {position} is already filled for the current academic year."
            )
        if position == PRESIDENT:
            holding = await guards.holds_position_elsewhere(db, student_number, term.id, owner.kind)
            if holding:
                raise ConflictError(
                    f"{holding.official_name} already holds a position in "
                    f"{holding.owner_name} and cannot be made President."
                )

        if picture is not None:
            picture_path = storage.save_file(UPLOAD_CATEGORY, owner.id, picture.filename, picture.content)

        official = StudentOfficial(
            organization_id=owner.id if owner.kind is OwnerKind.ORGANIZATION else None,
            council_id=owner.id if owner.kind is OwnerKind.COUNCIL else None,
            academic_term_id=term.id,
            name=name,
            student_number=student_number,
            course=(data.course or "").strip() or None,
            year_section=(data.year_section or "").strip() or None,
            position=position,
            picture_path=picture_path,
        )
        db.add(official)
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        if picture_path:
            storage.delete_file(picture_path)
        raise

    logger.info("Added %s %s to %s %s", position, student_number, owner.kind.value, owner.id)
    return official
