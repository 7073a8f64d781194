"""
Reviewer commands.

Every reviewer action is one of the command types below, handled by
``apply``. Adding a command without handling it fails type checking at the
``assert_never`` call.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union, assert_never
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.services import applications, documents
from accredit.services.file_validation import IncomingFile
from accredit.services.notifications import Notifier


@dataclass(frozen=True)
class ApproveApplication:
    application_id: str
    reviewer_id: str


@dataclass(frozen=True)
class RejectApplication:
    application_id: str
    reviewer_id: str
    reason: str


@dataclass(frozen=True)
class AdviserDecide:
    document_id: str
    reviewer_id: str
    approve: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class OsasDecide:
    document_id: str
    reviewer_id: str
    approve: bool
    reason: Optional[str] = None
    resubmission_deadline: Optional[date] = None


@dataclass(frozen=True)
class ResubmitDocument:
    document_id: str
    file: IncomingFile


Command = Union[ApproveApplication, RejectApplication, AdviserDecide, OsasDecide, ResubmitDocument]


async def apply(db: AsyncSession, command: Command, notifier: Notifier):
    if isinstance(command, ApproveApplication):
        return await applications.approve_application(
            db, command.application_id, command.reviewer_id, notifier
        )
    if isinstance(command, RejectApplication):
        return await applications.reject_application(
            db, command.application_id, command.reviewer_id, command.reason, notifier
        )
    if isinstance(command, AdviserDecide):
        return await documents.adviser_decide(
            db, command.document_id, command.approve, command.reviewer_id, notifier,
            reason=command.reason,
        )
    if isinstance(command, OsasDecide):
        return await documents.osas_decide(
            db, command.document_id, command.approve, command.reviewer_id, notifier,
            reason=command.reason,
            resubmission_deadline=command.resubmission_deadline,
        )
    if isinstance(command, ResubmitDocument):
        return await documents.resubmit_document(db, command.document_id, command.file, notifier)
    assert_never(command)
