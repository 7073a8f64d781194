"""
Public application form endpoints.

The form is submitted without an account. A verification code is mailed to
the president or adviser, and entering it files the application for OSAS
review.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.db.base import get_db
from accredit.schemas.application import ApplicationResponse
from accredit.schemas.submission import (
    ApplicationSubmission, SubmissionStagedResponse, SubmissionVerify, AvailabilityResponse
)
from accredit.services import submissions
from accredit.services.notifications import Notifier, get_notifier

router = APIRouter()


@router.post("", response_model=SubmissionStagedResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_application(
    form: ApplicationSubmission,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Stage an application and send the verification code."""
    submission = await submissions.stage_submission(db, form, notifier)
    return SubmissionStagedResponse(
        token=submission.token,
        email=submission.email,
        expires_at=submission.expires_at,
        message=f"A verification code was sent to {submission.email}.",
    )


@router.post("/verify", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def verify_application(
    data: SubmissionVerify,
    db: AsyncSession = Depends(get_db)
):
    """Confirm the verification code and file the application."""
    application = await submissions.verify_submission(db, data.token, data.otp)
    return ApplicationResponse.model_validate(application)


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    college_id: Optional[str] = Query(None),
    course_id: Optional[str] = Query(None),
    org_code: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Advisory checks run by the form before submission.

    The council check also previews the code and name the council would get.
    """
    return await submissions.availability(db, college_id, course_id, org_code)
