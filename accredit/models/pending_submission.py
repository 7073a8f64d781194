"""
Pending application submission awaiting email verification.

The public application form is staged here with a hashed one-time code until
the verifying contact proves they own the address. Verification turns the
staged form into an Application and deletes this row.
"""
import secrets
from datetime import datetime, timezone, timedelta
from enum import Enum
from sqlalchemy import String, DateTime, Integer, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from accredit.core.config import settings
from accredit.models.base import BaseModel, as_utc
from accredit.models.application import VerifiedBy


def generate_verification_token() -> str:
    return secrets.token_urlsafe(32)


def default_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)


class PendingSubmission(BaseModel):
    __tablename__ = "pending_submissions"

    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        default=generate_verification_token,
        index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    verified_by: Mapped[VerifiedBy] = mapped_column(
        SQLEnum(
            VerifiedBy,
            name="verifiedby",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    otp_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Normalized application form
    form_data: Mapped[dict] = mapped_column(JSON, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=default_expiry
    )

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > as_utc(self.expires_at)

    def __repr__(self) -> str:
        return f"<PendingSubmission {self.email}>"
