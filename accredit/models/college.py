"""
College and course models.
"""
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from accredit.models.base import BaseModel


class College(BaseModel):
    __tablename__ = "colleges"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    courses: Mapped[list["Course"]] = relationship(
        "Course",
        back_populates="college",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<College {self.code}>"


class Course(BaseModel):
    __tablename__ = "courses"

    college_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("colleges.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    college: Mapped["College"] = relationship("College", back_populates="courses")

    def __repr__(self) -> str:
        return f"<Course {self.code}>"
