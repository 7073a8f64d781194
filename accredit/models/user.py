"""
User account model.
"""
from enum import Enum
from sqlalchemy import String, Boolean, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from accredit.models.base import BaseModel


class UserRole(str, Enum):
    """Role tag carried by every account."""
    ORG_PRESIDENT = "org_president"
    ORG_ADVISER = "org_adviser"
    COUNCIL_PRESIDENT = "council_president"
    COUNCIL_ADVISER = "council_adviser"
    MIS_COORDINATOR = "mis_coordinator"
    OSAS = "osas"

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    UserRole.ORG_PRESIDENT: "Organization President",
    UserRole.ORG_ADVISER: "Organization Adviser",
    UserRole.COUNCIL_PRESIDENT: "Council President",
    UserRole.COUNCIL_ADVISER: "Council Adviser",
    UserRole.MIS_COORDINATOR: "MIS Coordinator",
    UserRole.OSAS: "OSAS",
}


class User(BaseModel):
    """Login account. Emails and usernames are unique across all roles."""
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="userrole",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role.value})>"
