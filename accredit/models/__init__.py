"""
Database models.
"""
from accredit.models.base import BaseModel, generate_id
from accredit.models.user import User, UserRole
from accredit.models.academic_term import AcademicTerm, TermStatus
from accredit.models.college import College, Course
from accredit.models.application import (
    Application, ApplicationType, ApplicationStatus, VerifiedBy
)
from accredit.models.organization import (
    Organization, Council, RecognitionStatus, EntityType
)
from accredit.models.event import (
    EventProposal, EventDocument, DocumentType, DocumentStatus
)
from accredit.models.student_official import StudentOfficial
from accredit.models.pending_submission import PendingSubmission
from accredit.models.mis_coordinator import MisCoordinator

__all__ = [
    "BaseModel",
    "generate_id",
    "User",
    "UserRole",
    "AcademicTerm",
    "TermStatus",
    "College",
    "Course",
    "Application",
    "ApplicationType",
    "ApplicationStatus",
    "VerifiedBy",
    "Organization",
    "Council",
    "RecognitionStatus",
    "EntityType",
    "EventProposal",
    "EventDocument",
    "DocumentType",
    "DocumentStatus",
    "StudentOfficial",
    "PendingSubmission",
    "MisCoordinator",
]
