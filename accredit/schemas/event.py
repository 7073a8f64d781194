"""
Event proposal and document schemas.
"""
from typing import Optional
from datetime import datetime, date
from pydantic import BaseModel

from accredit.models.event import DocumentType, DocumentStatus


class DocumentResponse(BaseModel):
    id: str
    proposal_id: str
    document_type: DocumentType
    original_filename: str
    file_size: int
    status: DocumentStatus
    submitted_at: datetime
    adviser_approved_at: Optional[datetime] = None
    adviser_rejected_at: Optional[datetime] = None
    osas_approved_at: Optional[datetime] = None
    osas_rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    resubmission_deadline: Optional[date] = None

    class Config:
        from_attributes = True


class ProposalSummaryResponse(BaseModel):
    total: int
    approved: int
    rejected: int
    pending: int
    sent_to_osas: int
    overall: str


class ProposalResponse(BaseModel):
    id: str
    organization_id: Optional[str] = None
    council_id: Optional[str] = None
    academic_term_id: str
    title: str
    venue: str
    submitted_by: str
    created: datetime
    documents: list[DocumentResponse]
    summary: ProposalSummaryResponse


class AdviserDecision(BaseModel):
    approve: bool
    reason: Optional[str] = None


class OsasDecision(BaseModel):
    approve: bool
    reason: Optional[str] = None
    resubmission_deadline: Optional[date] = None
