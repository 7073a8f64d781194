"""
Account provisioning.

Creates the login accounts handed to a newly approved organization or
council. The raw password is returned once so it can be mailed to the owner;
only its hash is stored.
"""
import logging
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.core.config import settings
from accredit.core.exceptions import ConflictError
from accredit.core.security import generate_password, get_password_hash
from accredit.models.user import User, UserRole
from accredit.services import guards
from accredit.services.naming import generate_username

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionedAccount:
    user: User
    username: str
    raw_password: str
    role: UserRole


async def provision(
    db: AsyncSession, person_name: str, role: UserRole, email: str
) -> ProvisionedAccount:
    """Create an account inside the caller's transaction.

    The username is derived from the person's name plus a random suffix and
    retried on collision. Nothing is committed here.
    """
    username = None
    for _ in range(settings.USERNAME_MAX_ATTEMPTS):
        candidate = generate_username(person_name)
        if not await guards.username_taken(db, candidate):
            username = candidate
            break
    if username is None:
        raise ConflictError(
            f"Could not generate a unique username for {person_name}"
        )

    raw_password = generate_password()
    user = User(
        username=username,
        email=email.strip().lower(),
        password_hash=get_password_hash(raw_password),
        name=person_name,
        role=role,
    )
    db.add(user)
    await db.flush()

    logger.info("Provisioned %s account %s", role.value, username)
    return ProvisionedAccount(
        user=user,
        username=username,
        raw_password=raw_password,
        role=role,
    )
