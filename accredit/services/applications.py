"""
Application review.

An application is decided exactly once. Approval provisions the president
and adviser accounts and creates the organization or council in the same
transaction as the status change; if any step fails nothing is kept.
Notifications go out only after the commit.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.exceptions import (
    ConflictError, InvalidInputError, NotFoundError, StateViolationError
)
from accredit.models.application import Application, ApplicationStatus, ApplicationType
from accredit.models.college import College
from accredit.models.organization import Organization, Council, RecognitionStatus, EntityType
from accredit.models.user import UserRole
from accredit.services import guards
from accredit.services.naming import (
    council_code, council_name, normalize_code, normalize_org_name, normalize_person_name
)
from accredit.services.notifications import Notifier, NotificationKind, dispatch
from accredit.services.provisioning import ProvisionedAccount, provision
from accredit.services.terms import require_current_term

logger = logging.getLogger(__name__)

ROLES = {
    ApplicationType.ORGANIZATION: (UserRole.ORG_PRESIDENT, UserRole.ORG_ADVISER),
    ApplicationType.COUNCIL: (UserRole.COUNCIL_PRESIDENT, UserRole.COUNCIL_ADVISER),
}


@dataclass
class ApprovalResult:
    application: Application
    entity: Union[Organization, Council]
    president: ProvisionedAccount
    adviser: ProvisionedAccount


@dataclass(frozen=True)
class _Target:
    """Fields needed to explain a conflict after the session was rolled back."""
    application_type: ApplicationType
    college_id: str
    course_id: Optional[str]
    org_code: Optional[str]


async def get_application(db: AsyncSession, application_id: str) -> Application:
    result = await db.execute(select(Application).where(Application.id == application_id))
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError("Application", application_id)
    return application


async def _lock_pending(db: AsyncSession, application_id: str) -> Application:
    """Load the application with a row lock and check it is still undecided."""
    result = await db.execute(
        select(Application)
        .where(Application.id == application_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError("Application", application_id)
    if not application.is_pending:
        raise StateViolationError(
            "Application has already been processed.",
            current_state=application.status.value,
        )
    return application


def entity_identity(application: Application, college: College) -> tuple[str, str]:
    """Code and name of the entity an application creates."""
    if application.application_type == ApplicationType.COUNCIL:
        return council_code(college.code), council_name(college.name)
    return normalize_code(application.org_code), normalize_org_name(application.org_name)


async def approve_application(
    db: AsyncSession, application_id: str, reviewer_id: str, notifier: Notifier
) -> ApprovalResult:
    target = None
    try:
        application = await _lock_pending(db, application_id)
        target = _Target(
            application_type=application.application_type,
            college_id=application.college_id,
            course_id=application.course_id,
            org_code=application.org_code,
        )

        shared = application.president_email.strip().lower()
        if shared == application.adviser_email.strip().lower():
            raise ConflictError(
                f"Cannot approve: The president and the adviser share the email {shared}. "
                "Please reject this application and ask the applicant to use different "
                "email addresses.",
                code="EMAIL_SHARED",
            )

        taken = await guards.account_emails_taken(
            db, [application.president_email, application.adviser_email]
        )
        if taken:
            raise ConflictError(
                "Cannot approve: The following email(s) are already registered in the "
                f"system: {', '.join(taken)}. Please reject this application and ask "
                "the applicant to use different email addresses.",
                code="EMAIL_TAKEN",
            )

        term = await require_current_term(db)
        college = await db.get(College, application.college_id)
        if college is None:
            raise NotFoundError("College", application.college_id)

        await guards.ensure_entity_slot_free(
            db,
            application.application_type,
            application.college_id,
            course_id=application.course_id,
            org_code=application.org_code,
        )

        president_role, adviser_role = ROLES[application.application_type]
        president_name = normalize_person_name(application.president_name)
        adviser_name = normalize_person_name(application.adviser_name)
        president = await provision(db, president_name, president_role, application.president_email)
        adviser = await provision(db, adviser_name, adviser_role, application.adviser_email)

        code, name = entity_identity(application, college)
        common = dict(
            code=code,
            name=name,
            college_id=application.college_id,
            academic_term_id=term.id,
            president_id=president.user.id,
            adviser_id=adviser.user.id,
            president_name=president_name,
            adviser_name=adviser_name,
            status=RecognitionStatus.UNRECOGNIZED,
            type=EntityType.NEW,
        )
        if application.application_type == ApplicationType.ORGANIZATION:
            entity = Organization(course_id=application.course_id, **common)
        else:
            entity = Council(**common)
        db.add(entity)

        application.status = ApplicationStatus.APPROVED
        application.reviewed_by = reviewer_id
        application.reviewed_at = datetime.now(timezone.utc)
        await db.flush()
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Approval of application %s hit a constraint: %s", application_id, e.orig)
        raise await _explain_integrity_error(db, target)
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Application %s approved by %s: created %s %s",
        application_id, reviewer_id, application.application_type.value, code
    )

    for account, email in ((president, application.president_email), (adviser, application.adviser_email)):
        await dispatch(notifier, email, NotificationKind.ACCOUNT_CREDENTIALS, {
            "name": account.user.name,
            "username": account.username,
            "password": account.raw_password,
            "role_label": account.role.label,
            "entity_name": name,
        })
    await dispatch(notifier, application.verified_email, NotificationKind.APPLICATION_APPROVED, {
        "entity_name": name,
    })

    return ApprovalResult(
        application=application,
        entity=entity,
        president=president,
        adviser=adviser,
    )


async def _explain_integrity_error(db: AsyncSession, target: Optional[_Target]) -> ConflictError:
    """Turn a constraint violation into a ConflictError naming the collision."""
    if target is not None:
        try:
            await guards.ensure_entity_slot_free(
                db,
                target.application_type,
                target.college_id,
                course_id=target.course_id,
                org_code=target.org_code,
            )
        except ConflictError as conflict:
            return conflict
    return ConflictError(
        "The application conflicts with a record created at the same time. "
        "No changes were saved."
    )


async def reject_application(
    db: AsyncSession,
    application_id: str,
    reviewer_id: str,
    reason: str,
    notifier: Notifier,
) -> Application:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidInputError("Rejection reason is required.", code="REASON_REQUIRED")

    try:
        application = await _lock_pending(db, application_id)
        application.status = ApplicationStatus.REJECTED
        application.rejection_reason = reason
        application.reviewed_by = reviewer_id
        application.reviewed_at = datetime.now(timezone.utc)
        college = await db.get(College, application.college_id)
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Application %s rejected by %s", application_id, reviewer_id)

    if application.application_type == ApplicationType.COUNCIL:
        entity_name = council_name(college.name) if college else "your student council"
    else:
        entity_name = application.org_name
    await dispatch(notifier, application.verified_email, NotificationKind.APPLICATION_REJECTED, {
        "entity_name": entity_name,
        "reason": reason,
    })
    return application
