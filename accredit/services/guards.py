"""
Uniqueness guards.

Read-only predicates checked immediately before a mutating transition, inside
the caller's transaction. The unique constraints on the models remain the
final arbiter; these checks exist so a conflict can be reported with the name
of the record it collides with.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.exceptions import ConflictError, NotFoundError
from accredit.models.user import User
from accredit.models.application import Application, ApplicationType, ApplicationStatus
from accredit.models.organization import Organization, Council
from accredit.models.student_official import StudentOfficial, PRESIDENT, MEMBER


class OwnerKind(str, Enum):
    """The two kinds of entity that own officials and event proposals."""
    ORGANIZATION = "organization"
    COUNCIL = "council"

    @property
    def other(self) -> "OwnerKind":
        if self is OwnerKind.ORGANIZATION:
            return OwnerKind.COUNCIL
        return OwnerKind.ORGANIZATION


@dataclass(frozen=True)
class Owner:
    kind: OwnerKind
    id: str

    @property
    def column(self):
        """Owner column on tables that belong to either kind of entity."""
        if self.kind is OwnerKind.ORGANIZATION:
            return StudentOfficial.organization_id
        return StudentOfficial.council_id


@dataclass(frozen=True)
class OfficeConflict:
    official_name: str
    owner_name: str


# ============================================================================
# ENTITY SLOTS
# ============================================================================

async def council_exists_for_college(db: AsyncSession, college_id: str) -> Optional[str]:
    """Name of the council already created for the college, if any."""
    result = await db.execute(
        select(Council.name).where(Council.college_id == college_id)
    )
    return result.scalar_one_or_none()


async def organization_exists_for_course(db: AsyncSession, course_id: str) -> Optional[str]:
    """Name of the organization already created for the course, if any."""
    result = await db.execute(
        select(Organization.name).where(Organization.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def org_code_taken(db: AsyncSession, code: str) -> Optional[str]:
    """Name of the organization already using the code, if any."""
    result = await db.execute(
        select(Organization.name).where(func.upper(Organization.code) == code.strip().upper())
    )
    return result.scalar_one_or_none()


async def ensure_entity_slot_free(
    db: AsyncSession,
    application_type: ApplicationType,
    college_id: str,
    course_id: Optional[str] = None,
    org_code: Optional[str] = None,
) -> None:
    """Raise ConflictError if the entity an application asks for cannot exist."""
    if application_type == ApplicationType.COUNCIL:
        existing = await council_exists_for_college(db, college_id)
        if existing:
            raise ConflictError(
                f"A student council already exists for this college: {existing}"
            )
        return

    if org_code:
        existing = await org_code_taken(db, org_code)
        if existing:
            raise ConflictError(
                f"Organization code '{org_code.strip().upper()}' already exists for: {existing}"
            )
    if course_id:
        existing = await organization_exists_for_course(db, course_id)
        if existing:
            raise ConflictError(
                f"There is already an existing organization for this course: {existing}"
            )


async def ensure_no_pending_duplicate(
    db: AsyncSession,
    application_type: ApplicationType,
    college_id: str,
    course_id: Optional[str] = None,
    org_code: Optional[str] = None,
) -> None:
    """Raise ConflictError if another pending application targets the same slot."""
    pending = select(Application.id).where(
        Application.status == ApplicationStatus.PENDING_REVIEW,
        Application.application_type == application_type,
    )

    if application_type == ApplicationType.COUNCIL:
        result = await db.execute(pending.where(Application.college_id == college_id).limit(1))
        if result.scalar_one_or_none():
            raise ConflictError(
                "A pending council application for this college already exists."
            )
        return

    if org_code:
        same_code = func.upper(Application.org_code) == org_code.strip().upper()
        result = await db.execute(pending.where(same_code).limit(1))
        if result.scalar_one_or_none():
            raise ConflictError(
                "A pending application with this organization code already exists."
            )
    if course_id:
        result = await db.execute(pending.where(Application.course_id == course_id).limit(1))
        if result.scalar_one_or_none():
            raise ConflictError(
                "A pending application for this course already exists."
            )


# ============================================================================
# ACCOUNTS
# ============================================================================

async def account_emails_taken(db: AsyncSession, emails: Iterable[str]) -> list[str]:
    """Subset of ``emails`` already registered to an account (case-insensitive)."""
    emails = [e for e in emails if e]
    wanted = {e.strip().lower() for e in emails}
    if not wanted:
        return []
    result = await db.execute(
        select(User.email).where(func.lower(User.email).in_(wanted))
    )
    taken = {e.lower() for e in result.scalars().all()}
    # Preserve the caller's order for readable messages
    ordered = []
    for email in emails:
        key = email.strip().lower()
        if key in taken and key not in ordered:
            ordered.append(key)
    return ordered


async def username_taken(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.scalar_one_or_none() is not None


# ============================================================================
# OFFICIALS
# ============================================================================

async def load_owner(db: AsyncSession, owner: Owner) -> Union[Organization, Council]:
    model = Organization if owner.kind is OwnerKind.ORGANIZATION else Council
    entity = await db.get(model, owner.id)
    if entity is None:
        raise NotFoundError(owner.kind.value.capitalize(), owner.id)
    return entity


async def _official_in_other_kind(
    db: AsyncSession,
    student_number: str,
    term_id: str,
    owner_kind: OwnerKind,
    president_only: bool,
) -> Optional[OfficeConflict]:
    other = owner_kind.other
    if other is OwnerKind.ORGANIZATION:
        owner_model, owner_column = Organization, StudentOfficial.organization_id
    else:
        owner_model, owner_column = Council, StudentOfficial.council_id

    query = (
        select(StudentOfficial.name, owner_model.name)
        .join(owner_model, owner_model.id == owner_column)
        .where(
            StudentOfficial.student_number == student_number,
            StudentOfficial.academic_term_id == term_id,
        )
    )
    if president_only:
        query = query.where(func.upper(StudentOfficial.position) == PRESIDENT)
    row = (await db.execute(query.limit(1))).first()
    if row is None:
        return None
    return OfficeConflict(official_name=row[0], owner_name=row[1])


async def is_president_elsewhere(
    db: AsyncSession,
    student_number: str,
    term_id: str,
    owner_kind: OwnerKind,
) -> Optional[OfficeConflict]:
    """Whether the student is PRESIDENT of an entity of the *other* kind this term."""
    return await _official_in_other_kind(db, student_number, term_id, owner_kind, True)


async def holds_position_elsewhere(
    db: AsyncSession,
    student_number: str,
    term_id: str,
    owner_kind: OwnerKind,
) -> Optional[OfficeConflict]:
    """Whether the student holds any position in an entity of the other kind this term."""
    return await _official_in_other_kind(db, student_number, term_id, owner_kind, False)


async def duplicate_official(
    db: AsyncSession, owner: Owner, student_number: str, term_id: str
) -> Optional[StudentOfficial]:
    """Existing row for the same student under the same owner this term."""
    result = await db.execute(
        select(StudentOfficial).where(
            owner.column == owner.id,
            StudentOfficial.student_number == student_number,
            StudentOfficial.academic_term_id == term_id,
        )
    )
    return result.scalars().first()


async def position_taken(
    db: AsyncSession, owner: Owner, position: str, term_id: str
) -> bool:
    """Officer positions other than MEMBER are held by one student at a time."""
    if position == MEMBER:
        return False
    result = await db.execute(
        select(StudentOfficial.id).where(
            owner.column == owner.id,
            func.upper(StudentOfficial.position) == position,
            StudentOfficial.academic_term_id == term_id,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None
