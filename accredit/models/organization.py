"""
Organization and student council models.

Both are created only by approving an application. A college has at most one
council, a course has at most one organization and organization codes are
globally unique regardless of case; the unique constraints and index below
back the checks done in ``services/guards.py``.
"""
from typing import Optional, TYPE_CHECKING
from enum import Enum
from sqlalchemy import String, ForeignKey, Index, func, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from accredit.models.base import BaseModel

if TYPE_CHECKING:
    from accredit.models.college import College, Course
    from accredit.models.academic_term import AcademicTerm


class RecognitionStatus(str, Enum):
    UNRECOGNIZED = "unrecognized"
    RECOGNIZED = "recognized"


class EntityType(str, Enum):
    NEW = "new"
    OLD = "old"


def _status_column():
    return mapped_column(
        SQLEnum(
            RecognitionStatus,
            name="recognitionstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=RecognitionStatus.UNRECOGNIZED,
        nullable=False
    )


def _type_column():
    return mapped_column(
        SQLEnum(
            EntityType,
            name="entitytype",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EntityType.NEW,
        nullable=False
    )


class Organization(BaseModel):
    __tablename__ = "organizations"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    college_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("colleges.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    course_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False
    )
    academic_term_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("academic_terms.id", ondelete="RESTRICT"),
        nullable=False
    )

    president_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    adviser_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    president_name: Mapped[str] = mapped_column(String(200), nullable=False)
    adviser_name: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[RecognitionStatus] = _status_column()
    type: Mapped[EntityType] = _type_column()

    college: Mapped["College"] = relationship("College", foreign_keys=[college_id])
    course: Mapped["Course"] = relationship("Course", foreign_keys=[course_id])
    academic_term: Mapped["AcademicTerm"] = relationship("AcademicTerm")

    def __repr__(self) -> str:
        return f"<Organization {self.code}>"


# Codes differing only in case name the same organization
Index("uq_organizations_code_upper", func.upper(Organization.code), unique=True)


class Council(BaseModel):
    __tablename__ = "councils"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    college_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("colleges.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False
    )
    academic_term_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("academic_terms.id", ondelete="RESTRICT"),
        nullable=False
    )

    president_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    adviser_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    president_name: Mapped[str] = mapped_column(String(200), nullable=False)
    adviser_name: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[RecognitionStatus] = _status_column()
    type: Mapped[EntityType] = _type_column()

    college: Mapped["College"] = relationship("College", foreign_keys=[college_id])
    academic_term: Mapped["AcademicTerm"] = relationship("AcademicTerm")

    def __repr__(self) -> str:
        return f"<Council {self.code}>"
