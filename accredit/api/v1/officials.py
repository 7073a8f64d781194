"""
Student official endpoints.

Officials are listed per organization or council for the current term.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Form, Query, UploadFile, File, status
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.db.base import get_db
from accredit.core.deps import get_current_user
from accredit.core.permissions import require_officer_manager
from accredit.models.user import User
from accredit.schemas.registry import OfficialResponse, StudentCheckResponse
from accredit.services import officials
from accredit.services.guards import Owner, OwnerKind, load_owner
from accredit.services.terms import require_current_term
from accredit.api.v1.uploads import read_upload

router = APIRouter()


@router.get("/{owner_type}/{owner_id}", response_model=list[OfficialResponse])
async def list_officials(
    owner_type: OwnerKind,
    owner_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    owner = Owner(owner_type, owner_id)
    await load_owner(db, owner)
    term = await require_current_term(db)
    rows = await officials.list_officials(db, owner, term.id)
    return [OfficialResponse.model_validate(r) for r in rows]


@router.get("/{owner_type}/{owner_id}/check", response_model=StudentCheckResponse)
async def check_student(
    owner_type: OwnerKind,
    owner_id: str,
    student_number: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Whether a student can be added, checked before the form is submitted."""
    owner = Owner(owner_type, owner_id)
    await load_owner(db, owner)
    term = await require_current_term(db)
    reason = await officials.check_student(db, owner, student_number.strip(), term.id)
    return StudentCheckResponse(allowed=reason is None, message=reason)


@router.post("/{owner_type}/{owner_id}", response_model=OfficialResponse, status_code=status.HTTP_201_CREATED)
async def add_official(
    owner_type: OwnerKind,
    owner_id: str,
    name: str = Form(...),
    student_number: str = Form(...),
    position: str = Form(officials.MEMBER),
    course: Optional[str] = Form(None),
    year_section: Optional[str] = Form(None),
    picture: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    owner = Owner(owner_type, owner_id)
    await require_officer_manager(db, current_user, owner)

    official = await officials.add_official(
        db,
        owner,
        officials.OfficialInput(
            name=name,
            student_number=student_number,
            position=position,
            course=course,
            year_section=year_section,
        ),
        picture=await read_upload(picture) if picture is not None and picture.filename else None,
    )
    return OfficialResponse.model_validate(official)
