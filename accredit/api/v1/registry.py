"""
Institution registry endpoints for OSAS.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.db.base import get_db
from accredit.core.deps import require_roles
from accredit.models.college import College, Course
from accredit.models.user import User, UserRole
from accredit.schemas.registry import (
    CollegeCreate, CollegeResponse, CourseCreate, CourseResponse,
    MisCoordinatorCreate, MisCoordinatorResponse, RecognitionUpdate, EntityResponse
)
from accredit.services import registry
from accredit.services.guards import Owner, OwnerKind

router = APIRouter()

require_osas = require_roles(UserRole.OSAS)


@router.get("/colleges", response_model=list[CollegeResponse])
async def list_colleges(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(College).order_by(College.code))
    return [CollegeResponse.model_validate(c) for c in result.scalars().all()]


@router.post("/colleges", response_model=CollegeResponse, status_code=status.HTTP_201_CREATED)
async def create_college(
    data: CollegeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_osas)
):
    college = await registry.create_college(db, data.code, data.name)
    return CollegeResponse.model_validate(college)


@router.get("/courses", response_model=list[CourseResponse])
async def list_courses(
    college_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    query = select(Course).order_by(Course.code)
    if college_id:
        query = query.where(Course.college_id == college_id)
    result = await db.execute(query)
    return [CourseResponse.model_validate(c) for c in result.scalars().all()]


@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_osas)
):
    course = await registry.create_course(db, data.college_id, data.code, data.name)
    return CourseResponse.model_validate(course)


@router.post("/mis-coordinators", response_model=MisCoordinatorResponse, status_code=status.HTTP_201_CREATED)
async def register_mis_coordinator(
    data: MisCoordinatorCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_osas)
):
    coordinator = await registry.register_mis_coordinator(
        db,
        data.college_id,
        data.coordinator_name,
        data.username,
        data.email,
        data.password,
        data.passwordConfirm,
    )
    return MisCoordinatorResponse.model_validate(coordinator)


@router.patch("/{owner_type}/{owner_id}/recognition", response_model=EntityResponse)
async def set_recognition(
    owner_type: OwnerKind,
    owner_id: str,
    data: RecognitionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_osas)
):
    entity = await registry.set_recognition(db, Owner(owner_type, owner_id), data.status)
    return EntityResponse.model_validate(entity)
