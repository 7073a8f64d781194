"""
Institution registry maintained by OSAS: colleges, courses, MIS coordinators
and the recognition status of provisioned organizations and councils.
"""
import logging
from typing import Union
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from accredit.core.security import get_password_hash
from accredit.models.college import College, Course
from accredit.models.mis_coordinator import MisCoordinator
from accredit.models.organization import Organization, Council, RecognitionStatus
from accredit.models.user import User, UserRole
from accredit.services import guards
from accredit.services.guards import Owner
from accredit.services.naming import normalize_person_name
from accredit.services.terms import require_current_term

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


async def _commit_or_conflict(db: AsyncSession, message: str) -> None:
    try:
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(message)


async def create_college(db: AsyncSession, code: str, name: str) -> College:
    code = code.strip().upper()
    name = name.strip()
    if not code or not name:
        raise InvalidInputError("College code and name are required.")

    existing = await db.execute(select(College.id).where(College.code == code))
    if existing.scalar_one_or_none():
        raise ConflictError(f"College code '{code}' already exists.")

    college = College(code=code, name=name)
    db.add(college)
    await _commit_or_conflict(db, f"College code '{code}' already exists.")
    logger.info("Registered college %s", code)
    return college


async def create_course(db: AsyncSession, college_id: str, code: str, name: str) -> Course:
    code = code.strip().upper()
    name = name.strip()
    if not code or not name:
        raise InvalidInputError("Course code and name are required.")
    if await db.get(College, college_id) is None:
        raise NotFoundError("College", college_id)

    existing = await db.execute(select(Course.id).where(Course.code == code))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Course code '{code}' already exists.")

    course = Course(college_id=college_id, code=code, name=name)
    db.add(course)
    await _commit_or_conflict(db, f"Course code '{code}' already exists.")
    logger.info("Registered course %s", code)
    return course


async def register_mis_coordinator(
    db: AsyncSession,
    college_id: str,
    coordinator_name: str,
    username: str,
    email: str,
    password: str,
    confirm_password: str,
) -> MisCoordinator:
    coordinator_name = normalize_person_name(coordinator_name or "")
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not coordinator_name or not username or not email:
        raise InvalidInputError("All required fields must be filled.")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    if password != confirm_password:
        raise InvalidInputError("Passwords do not match.")

    try:
        term = await require_current_term(db)
        if await db.get(College, college_id) is None:
            raise NotFoundError("College", college_id)
        if await guards.username_taken(db, username):
            raise ConflictError("Username already exists.")
        if await guards.account_emails_taken(db, [email]):
            raise ConflictError("Email already exists.")

        existing = await db.execute(
            select(func.count()).select_from(MisCoordinator).where(
                MisCoordinator.college_id == college_id,
                MisCoordinator.academic_term_id == term.id,
            )
        )
        if existing.scalar():
            raise ConflictError(
                "An MIS coordinator is already registered for this college in the current academic year."
            )

        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            name=coordinator_name,
            role=UserRole.MIS_COORDINATOR,
        )
        db.add(user)
        await db.flush()

        coordinator = MisCoordinator(
            college_id=college_id,
            user_id=user.id,
            academic_term_id=term.id,
            coordinator_name=coordinator_name,
        )
        db.add(coordinator)
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("The MIS coordinator conflicts with an existing record.")
    except Exception:
        await db.rollback()
        raise

    logger.info("Registered MIS coordinator %s for college %s", username, college_id)
    return coordinator


async def set_recognition(
    db: AsyncSession, owner: Owner, status: RecognitionStatus
) -> Union[Organization, Council]:
    entity = await guards.load_owner(db, owner)
    entity.status = status
    await db.flush()
    await db.commit()
    logger.info("%s %s is now %s", owner.kind.value, entity.code, status.value)
    return entity
