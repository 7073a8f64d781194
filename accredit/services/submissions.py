"""
Public application submissions.

The form is staged as a PendingSubmission and a one-time code is mailed to
the verifying contact. Entering the code turns the staged form into a
pending Application. Uniqueness is checked again, authoritatively, when the
application is approved.
"""
import logging
import math
import re
from datetime import datetime, timezone, timedelta
from typing import Optional
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.config import settings
from accredit.core.exceptions import (
    ConflictError, CooldownError, InvalidInputError, NotFoundError
)
from accredit.core.security import generate_otp, hash_otp, verify_otp
from accredit.models.application import Application, ApplicationType, VerifiedBy
from accredit.models.base import as_utc
from accredit.models.college import College, Course
from accredit.models.pending_submission import PendingSubmission
from accredit.schemas.submission import (
    ApplicationSubmission, AvailabilityCheck, AvailabilityResponse, CouncilPreview
)
from accredit.services import guards
from accredit.services.naming import (
    council_code, council_name, normalize_code, normalize_org_name, normalize_person_name
)
from accredit.services.notifications import Notifier, NotificationKind, dispatch

logger = logging.getLogger(__name__)

OTP_PATTERN = re.compile(r"^\d{6}$")


def _verifying_email(form: ApplicationSubmission) -> str:
    if form.verified_by == VerifiedBy.PRESIDENT:
        return form.president_email.lower()
    return form.adviser_email.lower()


def normalize_form(form: ApplicationSubmission) -> dict:
    """Apply the stored-name rules to a submitted form."""
    data = {
        "application_type": form.application_type.value,
        "verified_by": form.verified_by.value,
        "college_id": form.college_id,
        "course_id": None,
        "org_code": None,
        "org_name": None,
        "president_name": normalize_person_name(form.president_name),
        "president_email": form.president_email.lower(),
        "adviser_name": normalize_person_name(form.adviser_name),
        "adviser_email": form.adviser_email.lower(),
    }
    if form.application_type == ApplicationType.ORGANIZATION:
        data["course_id"] = form.course_id
        data["org_code"] = normalize_code(form.org_code or "")
        data["org_name"] = normalize_org_name(form.org_name or "")
    return data


async def _validate_form(db: AsyncSession, form: ApplicationSubmission) -> None:
    if not form.president_name.strip() or not form.adviser_name.strip():
        raise InvalidInputError("All required fields must be filled.")

    if form.application_type == ApplicationType.ORGANIZATION:
        if not (form.org_code or "").strip() or not (form.org_name or "").strip() or not form.course_id:
            raise InvalidInputError(
                "Organization code, organization name and course are required."
            )

    if form.president_email.strip().lower() == form.adviser_email.strip().lower():
        raise InvalidInputError(
            "The president and the adviser must use different email addresses.",
            code="DUPLICATE_EMAIL",
        )

    domain = settings.ALLOWED_EMAIL_DOMAIN.lower()
    if not _verifying_email(form).endswith("@" + domain):
        raise InvalidInputError(
            f"Please use your institutional email address (@{domain}).",
            code="EMAIL_DOMAIN",
        )

    college = await db.get(College, form.college_id)
    if college is None:
        raise NotFoundError("College", form.college_id)
    if form.application_type == ApplicationType.ORGANIZATION:
        course = await db.get(Course, form.course_id)
        if course is None:
            raise NotFoundError("Course", form.course_id)
        if course.college_id != college.id:
            raise InvalidInputError("The selected course does not belong to the selected college.")


async def stage_submission(
    db: AsyncSession, form: ApplicationSubmission, notifier: Notifier
) -> PendingSubmission:
    """Stage the form and send a verification code to the verifying contact."""
    await _validate_form(db, form)
    email = _verifying_email(form)

    try:
        result = await db.execute(
            select(PendingSubmission)
            .where(PendingSubmission.email == email)
            .order_by(PendingSubmission.created.desc())
            .limit(1)
        )
        previous = result.scalar_one_or_none()
        if previous is not None:
            elapsed = (datetime.now(timezone.utc) - as_utc(previous.created)).total_seconds()
            remaining = settings.OTP_RESEND_COOLDOWN_SECONDS - elapsed
            if remaining > 0:
                raise CooldownError(math.ceil(remaining))

        await db.execute(delete(PendingSubmission).where(PendingSubmission.email == email))

        otp = generate_otp()
        submission = PendingSubmission(
            email=email,
            verified_by=form.verified_by,
            otp_hash=hash_otp(otp),
            form_data=normalize_form(form),
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        )
        db.add(submission)
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Staged %s application for %s", form.application_type.value, email)
    await dispatch(notifier, email, NotificationKind.SUBMISSION_OTP, {
        "otp": otp,
        "expires_minutes": settings.OTP_EXPIRE_MINUTES,
    })
    return submission


async def verify_submission(db: AsyncSession, token: str, otp: str) -> Application:
    """Check the code and turn the staged form into a pending application."""
    otp = (otp or "").strip()
    if not OTP_PATTERN.match(otp):
        raise InvalidInputError("Please enter the 6-digit verification code.", code="OTP_FORMAT")

    try:
        result = await db.execute(
            select(PendingSubmission).where(PendingSubmission.token == token)
        )
        submission = result.scalar_one_or_none()
        if submission is None:
            raise NotFoundError("Verification request", token)
        if submission.is_expired:
            raise InvalidInputError(
                "Verification code has expired. Please request a new one.",
                code="OTP_EXPIRED",
            )
        if submission.attempts >= settings.OTP_MAX_ATTEMPTS:
            raise InvalidInputError(
                "Too many incorrect attempts. Please request a new code.",
                code="OTP_LOCKED",
            )
        if not verify_otp(otp, submission.otp_hash):
            submission.attempts += 1
            await db.commit()
            raise InvalidInputError("Invalid verification code.", code="OTP_INVALID")

        data = submission.form_data
        application_type = ApplicationType(data["application_type"])

        for role, key in (("president", "president_email"), ("adviser", "adviser_email")):
            if await guards.account_emails_taken(db, [data[key]]):
                raise ConflictError(
                    f"The {role}'s email ({data[key]}) is already registered in the system.",
                    code="EMAIL_TAKEN",
                )

        await guards.ensure_entity_slot_free(
            db, application_type, data["college_id"],
            course_id=data["course_id"], org_code=data["org_code"],
        )
        await guards.ensure_no_pending_duplicate(
            db, application_type, data["college_id"],
            course_id=data["course_id"], org_code=data["org_code"],
        )

        application = Application(
            application_type=application_type,
            college_id=data["college_id"],
            course_id=data["course_id"],
            org_code=data["org_code"],
            org_name=data["org_name"],
            president_name=data["president_name"],
            president_email=data["president_email"],
            adviser_name=data["adviser_name"],
            adviser_email=data["adviser_email"],
            verified_by=VerifiedBy(data["verified_by"]),
            verified_email=submission.email,
        )
        db.add(application)
        await db.delete(submission)
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Application %s submitted by %s", application.id, application.verified_email)
    return application


# ============================================================================
# AVAILABILITY CHECKS
# ============================================================================

async def check_council(db: AsyncSession, college_id: str) -> CouncilPreview:
    college = await db.get(College, college_id)
    if college is None:
        raise NotFoundError("College", college_id)
    existing = await guards.council_exists_for_college(db, college_id)
    if existing:
        return CouncilPreview(
            available=False,
            message=f"A student council already exists for this college: {existing}",
        )
    return CouncilPreview(
        available=True,
        code=council_code(college.code),
        name=council_name(college.name),
    )


async def check_course(db: AsyncSession, course_id: str) -> AvailabilityCheck:
    existing = await guards.organization_exists_for_course(db, course_id)
    if existing:
        return AvailabilityCheck(
            available=False,
            message=f"There is already an existing organization for this course: {existing}",
        )
    return AvailabilityCheck(available=True)


async def check_org_code(db: AsyncSession, org_code: str) -> AvailabilityCheck:
    code = normalize_code(org_code)
    existing = await guards.org_code_taken(db, code)
    if existing:
        return AvailabilityCheck(
            available=False,
            message=f"Organization code '{code}' already exists for: {existing}",
        )
    return AvailabilityCheck(available=True)


async def availability(
    db: AsyncSession,
    college_id: Optional[str] = None,
    course_id: Optional[str] = None,
    org_code: Optional[str] = None,
) -> AvailabilityResponse:
    return AvailabilityResponse(
        council=await check_council(db, college_id) if college_id else None,
        course=await check_course(db, course_id) if course_id else None,
        org_code=await check_org_code(db, org_code) if org_code else None,
    )
