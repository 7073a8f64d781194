"""Ownership checks for organization- and council-scoped resources."""
from typing import Union
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.models.organization import Organization, Council
from accredit.models.user import User, UserRole
from accredit.services.guards import Owner, OwnerKind, load_owner

PRESIDENT_ROLES = {
    OwnerKind.ORGANIZATION: UserRole.ORG_PRESIDENT,
    OwnerKind.COUNCIL: UserRole.COUNCIL_PRESIDENT,
}
ADVISER_ROLES = {
    OwnerKind.ORGANIZATION: UserRole.ORG_ADVISER,
    OwnerKind.COUNCIL: UserRole.COUNCIL_ADVISER,
}


async def require_president(
    db: AsyncSession, user: User, owner: Owner
) -> Union[Organization, Council]:
    """The user must be the president account of the owning entity."""
    entity = await load_owner(db, owner)
    if user.role != PRESIDENT_ROLES[owner.kind] or entity.president_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only the president of this {owner.kind.value} can do this"
        )
    return entity


async def require_adviser(
    db: AsyncSession, user: User, owner: Owner
) -> Union[Organization, Council]:
    """The user must be the adviser account of the owning entity."""
    entity = await load_owner(db, owner)
    if user.role != ADVISER_ROLES[owner.kind] or entity.adviser_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only the adviser of this {owner.kind.value} can do this"
        )
    return entity


async def require_officer_manager(
    db: AsyncSession, user: User, owner: Owner
) -> Union[Organization, Council]:
    """Presidents and advisers both manage their entity's officials."""
    entity = await load_owner(db, owner)
    if user.id not in (entity.president_id, entity.adviser_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not an officer of this {owner.kind.value}"
        )
    return entity
