"""
Registry and officials schemas.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from accredit.models.organization import RecognitionStatus


class CollegeCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)


class CollegeResponse(BaseModel):
    id: str
    code: str
    name: str

    class Config:
        from_attributes = True


class CourseCreate(BaseModel):
    college_id: str
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=200)


class CourseResponse(BaseModel):
    id: str
    college_id: str
    code: str
    name: str

    class Config:
        from_attributes = True


class MisCoordinatorCreate(BaseModel):
    college_id: str
    coordinator_name: str
    username: str
    email: EmailStr
    password: str
    passwordConfirm: str


class MisCoordinatorResponse(BaseModel):
    id: str
    college_id: str
    user_id: str
    academic_term_id: str
    coordinator_name: str
    created: datetime

    class Config:
        from_attributes = True


class RecognitionUpdate(BaseModel):
    status: RecognitionStatus


class EntityResponse(BaseModel):
    id: str
    code: str
    name: str
    college_id: str
    academic_term_id: str
    president_name: str
    adviser_name: str
    status: RecognitionStatus

    class Config:
        from_attributes = True


class OfficialResponse(BaseModel):
    id: str
    organization_id: Optional[str] = None
    council_id: Optional[str] = None
    academic_term_id: str
    name: str
    student_number: str
    course: Optional[str] = None
    year_section: Optional[str] = None
    position: str
    picture_path: Optional[str] = None
    created: datetime

    class Config:
        from_attributes = True


class StudentCheckResponse(BaseModel):
    allowed: bool
    message: Optional[str] = None
