"""
Public application form schemas.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr

from accredit.models.application import ApplicationType, VerifiedBy


class ApplicationSubmission(BaseModel):
    """Application form as submitted by the president or adviser."""
    application_type: ApplicationType
    verified_by: VerifiedBy
    college_id: str
    # Organization applications only
    course_id: Optional[str] = None
    org_code: Optional[str] = None
    org_name: Optional[str] = None

    president_name: str
    president_email: EmailStr
    adviser_name: str
    adviser_email: EmailStr


class SubmissionStagedResponse(BaseModel):
    """Returned after the verification code was sent."""
    token: str
    email: str
    expires_at: datetime
    message: str


class SubmissionVerify(BaseModel):
    token: str
    otp: str


class AvailabilityCheck(BaseModel):
    available: bool
    message: Optional[str] = None


class CouncilPreview(AvailabilityCheck):
    code: Optional[str] = None
    name: Optional[str] = None


class AvailabilityResponse(BaseModel):
    council: Optional[CouncilPreview] = None
    course: Optional[AvailabilityCheck] = None
    org_code: Optional[AvailabilityCheck] = None
