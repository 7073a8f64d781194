"""
Recognition application model.

An application asks OSAS to create either an organization (tied to one
course) or a student council (tied to one college). It is decided exactly
once; approval provisions the accounts and the entity in a single
transaction.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlalchemy import String, ForeignKey, DateTime, Text, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from accredit.models.base import BaseModel

if TYPE_CHECKING:
    from accredit.models.college import College, Course


class ApplicationType(str, Enum):
    ORGANIZATION = "organization"
    COUNCIL = "council"


class ApplicationStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerifiedBy(str, Enum):
    """Which contact confirmed the submission by email."""
    PRESIDENT = "president"
    ADVISER = "adviser"


class Application(BaseModel):
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint(
            "(status = 'pending_review') = (reviewed_at IS NULL)",
            name="reviewed_iff_decided"
        ),
        CheckConstraint(
            "(status = 'rejected') = (rejection_reason IS NOT NULL AND rejection_reason <> '')",
            name="reason_iff_rejected"
        ),
    )

    application_type: Mapped[ApplicationType] = mapped_column(
        SQLEnum(
            ApplicationType,
            name="applicationtype",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(
            ApplicationStatus,
            name="applicationstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=ApplicationStatus.PENDING_REVIEW,
        nullable=False,
        index=True
    )

    college_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("colleges.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    # Organization applications only
    course_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=True
    )
    org_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    org_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    president_name: Mapped[str] = mapped_column(String(200), nullable=False)
    president_email: Mapped[str] = mapped_column(String(255), nullable=False)
    adviser_name: Mapped[str] = mapped_column(String(200), nullable=False)
    adviser_email: Mapped[str] = mapped_column(String(255), nullable=False)

    verified_by: Mapped[VerifiedBy] = mapped_column(
        SQLEnum(
            VerifiedBy,
            name="verifiedby",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    verified_email: Mapped[str] = mapped_column(String(255), nullable=False)

    # Decision
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    college: Mapped["College"] = relationship("College", foreign_keys=[college_id])
    course: Mapped[Optional["Course"]] = relationship("Course", foreign_keys=[course_id])

    @property
    def is_pending(self) -> bool:
        return self.status == ApplicationStatus.PENDING_REVIEW

    def __repr__(self) -> str:
        return f"<Application {self.id} {self.application_type.value} ({self.status.value})>"
