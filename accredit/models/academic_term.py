"""
Academic term model.

Terms are maintained by the calendar office; this service only reads the
currently active one.
"""
from datetime import date
from enum import Enum
from sqlalchemy import String, Date, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from accredit.models.base import BaseModel


class TermStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class AcademicTerm(BaseModel):
    __tablename__ = "academic_terms"

    school_year: Mapped[str] = mapped_column(String(20), nullable=False)
    semester: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[TermStatus] = mapped_column(
        SQLEnum(
            TermStatus,
            name="termstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=TermStatus.INACTIVE,
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<AcademicTerm {self.school_year} {self.semester} ({self.status.value})>"
