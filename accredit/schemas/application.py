"""
Application review schemas.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from accredit.models.application import ApplicationType, ApplicationStatus, VerifiedBy


class ApplicationResponse(BaseModel):
    id: str
    application_type: ApplicationType
    status: ApplicationStatus
    college_id: str
    course_id: Optional[str] = None
    org_code: Optional[str] = None
    org_name: Optional[str] = None
    president_name: str
    president_email: str
    adviser_name: str
    adviser_email: str
    verified_by: VerifiedBy
    verified_email: str
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class ApplicationReject(BaseModel):
    reason: str


class ProvisionedEntity(BaseModel):
    """Entity created by an approval. Credentials are only sent by email."""
    id: str
    code: str
    name: str
    status: str
    president_username: str
    adviser_username: str


class ApprovalResponse(BaseModel):
    application: ApplicationResponse
    entity: ProvisionedEntity
