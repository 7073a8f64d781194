"""
Application review endpoints for OSAS.
"""
from typing import Optional
from math import ceil
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.db.base import get_db
from accredit.core.deps import require_roles
from accredit.models.application import Application, ApplicationStatus
from accredit.models.user import User, UserRole
from accredit.schemas.application import (
    ApplicationResponse, ApplicationReject, ApprovalResponse, ProvisionedEntity
)
from accredit.schemas.common import PaginatedResponse
from accredit.services import applications, commands
from accredit.services.notifications import Notifier, get_notifier

router = APIRouter()

require_osas = require_roles(UserRole.OSAS)


@router.get("", response_model=PaginatedResponse[ApplicationResponse])
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_osas)
):
    query = select(Application)
    if status_filter:
        query = query.where(Application.status == status_filter)

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total_items = total_result.scalar() or 0

    query = query.order_by(Application.created.desc())
    query = query.offset((page - 1) * perPage).limit(perPage)
    result = await db.execute(query)

    return PaginatedResponse[ApplicationResponse](
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[ApplicationResponse.model_validate(a) for a in result.scalars().all()],
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_osas)
):
    application = await applications.get_application(db, application_id)
    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/approve", response_model=ApprovalResponse)
async def approve_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    current_user: User = Depends(require_osas)
):
    """
    Approve a pending application.

    Creates the president and adviser accounts and the organization or
    council. Credentials are emailed to the account owners.
    """
    result = await commands.apply(
        db, commands.ApproveApplication(application_id, current_user.id), notifier
    )
    return ApprovalResponse(
        application=ApplicationResponse.model_validate(result.application),
        entity=ProvisionedEntity(
            id=result.entity.id,
            code=result.entity.code,
            name=result.entity.name,
            status=result.entity.status.value,
            president_username=result.president.username,
            adviser_username=result.adviser.username,
        ),
    )


@router.post("/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    application_id: str,
    data: ApplicationReject,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    current_user: User = Depends(require_osas)
):
    application = await commands.apply(
        db, commands.RejectApplication(application_id, current_user.id, data.reason), notifier
    )
    return ApplicationResponse.model_validate(application)
