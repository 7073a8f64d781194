"""
MIS coordinator assignment model.
"""
from typing import TYPE_CHECKING
from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from accredit.models.base import BaseModel

if TYPE_CHECKING:
    from accredit.models.user import User
    from accredit.models.college import College


class MisCoordinator(BaseModel):
    """One coordinator per college per academic term."""
    __tablename__ = "mis_coordinators"
    __table_args__ = (
        UniqueConstraint("college_id", "academic_term_id", name="uq_mis_coordinators_college_term"),
    )

    college_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("colleges.id", ondelete="CASCADE"),
        nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    academic_term_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("academic_terms.id", ondelete="RESTRICT"),
        nullable=False
    )
    coordinator_name: Mapped[str] = mapped_column(String(200), nullable=False)

    user: Mapped["User"] = relationship("User")
    college: Mapped["College"] = relationship("College")

    def __repr__(self) -> str:
        return f"<MisCoordinator {self.coordinator_name}>"
