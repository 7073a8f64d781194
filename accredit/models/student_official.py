"""
Student official model.

Officers and members listed under an organization or a council for one
academic term.
"""
from typing import Optional
from sqlalchemy import String, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from accredit.models.base import BaseModel

PRESIDENT = "PRESIDENT"
MEMBER = "MEMBER"


class StudentOfficial(BaseModel):
    __tablename__ = "student_officials"
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
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    student_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    course: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    year_section: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    position: Mapped[str] = mapped_column(String(100), nullable=False, default=MEMBER)

    # Picture path relative to UPLOAD_DIR
    picture_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<StudentOfficial {self.student_number} {self.position}>"
