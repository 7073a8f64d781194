"""
Event proposal and supporting document models.

Each document goes through adviser review and then OSAS review. The stored
``status`` column is the source of truth for where a document is in that
pipeline; the four decision timestamps are kept as audit metadata and are
constrained to agree with it.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime, date
from enum import Enum
from sqlalchemy import (
    String, ForeignKey, DateTime, Date, Integer, Text, CheckConstraint,
    Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from accredit.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from accredit.models.organization import Organization, Council


class DocumentType(str, Enum):
    ACTIVITY_PROPOSAL = "activity_proposal"
    RESOLUTION_BUDGET_APPROVAL = "resolution_budget_approval"
    LETTER_VENUE_EQUIPMENT = "letter_venue_equipment"
    CV_SPEAKERS = "cv_speakers"
    OTHER = "other"

    @property
    def label(self) -> str:
        return DOCUMENT_TYPE_LABELS[self]


DOCUMENT_TYPE_LABELS = {
    DocumentType.ACTIVITY_PROPOSAL: "Activity Proposal",
    DocumentType.RESOLUTION_BUDGET_APPROVAL: "Resolution for Budget Approval",
    DocumentType.LETTER_VENUE_EQUIPMENT: "Letters for Venue/Equipment",
    DocumentType.CV_SPEAKERS: "CV of Speakers",
    DocumentType.OTHER: "Other",
}


class DocumentStatus(str, Enum):
    PENDING = "pending"
    ADVISER_APPROVED = "adviser_approved"
    ADVISER_REJECTED = "adviser_rejected"
    OSAS_APPROVED = "osas_approved"
    OSAS_REJECTED = "osas_rejected"


class EventProposal(BaseModel):
    __tablename__ = "event_proposals"
    __table_args__ = (
        CheckConstraint(
            "(organization_id IS NULL) <> (council_id IS NULL)",
            name="single_owner"
        ),
    )

    organization_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    council_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("councils.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    academic_term_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("academic_terms.id", ondelete="RESTRICT"),
        nullable=False
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    venue: Mapped[str] = mapped_column(String(255), nullable=False)
    submitted_by: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )

    organization: Mapped[Optional["Organization"]] = relationship("Organization")
    council: Mapped[Optional["Council"]] = relationship("Council")
    documents: Mapped[list["EventDocument"]] = relationship(
        "EventDocument",
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="EventDocument.created"
    )

    def __repr__(self) -> str:
        return f"<EventProposal {self.title}>"


class EventDocument(BaseModel):
    __tablename__ = "event_documents"
    __table_args__ = (
        CheckConstraint(
            "adviser_approved_at IS NULL OR adviser_rejected_at IS NULL",
            name="single_adviser_decision"
        ),
        CheckConstraint(
            "osas_approved_at IS NULL OR osas_rejected_at IS NULL",
            name="single_osas_decision"
        ),
        CheckConstraint(
            "(osas_approved_at IS NULL AND osas_rejected_at IS NULL) "
            "OR adviser_approved_at IS NOT NULL",
            name="osas_after_adviser"
        ),
        CheckConstraint(
            "(status = 'pending' AND adviser_approved_at IS NULL AND adviser_rejected_at IS NULL "
            "AND osas_approved_at IS NULL AND osas_rejected_at IS NULL) "
            "OR (status = 'adviser_approved' AND adviser_approved_at IS NOT NULL "
            "AND osas_approved_at IS NULL AND osas_rejected_at IS NULL) "
            "OR (status = 'adviser_rejected' AND adviser_rejected_at IS NOT NULL "
            "AND osas_approved_at IS NULL AND osas_rejected_at IS NULL) "
            "OR (status = 'osas_approved' AND osas_approved_at IS NOT NULL) "
            "OR (status = 'osas_rejected' AND osas_rejected_at IS NOT NULL)",
            name="status_matches_timestamps"
        ),
    )

    proposal_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("event_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    document_type: Mapped[DocumentType] = mapped_column(
        SQLEnum(
            DocumentType,
            name="documenttype",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )

    # Stored file, relative to UPLOAD_DIR
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    submitted_by: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    status: Mapped[DocumentStatus] = mapped_column(
        SQLEnum(
            DocumentStatus,
            name="documentstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=DocumentStatus.PENDING,
        nullable=False,
        index=True
    )

    # Adviser review
    adviser_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    adviser_rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    adviser_reviewed_by: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # OSAS review
    osas_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    osas_rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    osas_reviewed_by: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resubmission_deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    proposal: Mapped["EventProposal"] = relationship("EventProposal", back_populates="documents")

    def __repr__(self) -> str:
        return f"<EventDocument {self.document_type.value} ({self.status.value})>"
