"""
Event proposal document pipeline.

Every document is reviewed first by the owner's adviser and then by OSAS:

    pending -> adviser_approved | adviser_rejected
    adviser_approved -> osas_approved | osas_rejected
    adviser_rejected | osas_rejected -> pending   (resubmission only)

Files are validated completely before anything is written. New files are
written before the row changes and removed again if the transaction fails;
replaced files are removed only after the commit.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Sequence, Union
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from accredit.core.config import settings
from accredit.core.exceptions import InvalidInputError, NotFoundError, StateViolationError
from accredit.models.event import EventProposal, EventDocument, DocumentType, DocumentStatus
from accredit.models.organization import RecognitionStatus
from accredit.models.user import User, UserRole
from accredit.services import storage
from accredit.services.file_validation import DOCUMENT_PROFILE, IncomingFile, ensure_valid
from accredit.services.guards import Owner, OwnerKind, load_owner
from accredit.services.notifications import Notifier, NotificationKind, dispatch
from accredit.services.terms import require_current_term

logger = logging.getLogger(__name__)

UPLOAD_CATEGORY = "event_documents"


# ============================================================================
# STATE
# ============================================================================

@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class AdviserApproved:
    pass


@dataclass(frozen=True)
class AdviserRejected:
    reason: str


@dataclass(frozen=True)
class OsasApproved:
    pass


@dataclass(frozen=True)
class OsasRejected:
    reason: str


DocumentState = Union[Pending, AdviserApproved, AdviserRejected, OsasApproved, OsasRejected]


def project_state(document: EventDocument) -> DocumentState:
    """Pipeline state of a document, read from its status tag."""
    status = document.status
    if status == DocumentStatus.PENDING:
        return Pending()
    if status == DocumentStatus.ADVISER_APPROVED:
        return AdviserApproved()
    if status == DocumentStatus.ADVISER_REJECTED:
        return AdviserRejected(reason=document.rejection_reason or "")
    if status == DocumentStatus.OSAS_APPROVED:
        return OsasApproved()
    if status == DocumentStatus.OSAS_REJECTED:
        return OsasRejected(reason=document.rejection_reason or "")
    raise ValueError(f"Unknown document status: {status!r}")


def status_from_timestamps(document: EventDocument) -> DocumentStatus:
    """Status implied by the audit timestamps alone."""
    if document.osas_approved_at is not None:
        return DocumentStatus.OSAS_APPROVED
    if document.osas_rejected_at is not None:
        return DocumentStatus.OSAS_REJECTED
    if document.adviser_rejected_at is not None:
        return DocumentStatus.ADVISER_REJECTED
    if document.adviser_approved_at is not None:
        return DocumentStatus.ADVISER_APPROVED
    return DocumentStatus.PENDING


def is_rejected(state: DocumentState) -> bool:
    return isinstance(state, (AdviserRejected, OsasRejected))


@dataclass(frozen=True)
class ProposalSummary:
    total: int
    approved: int
    rejected: int
    pending: int
    sent_to_osas: int

    @property
    def overall(self) -> str:
        if self.total == 0:
            return "no_documents"
        if self.approved == self.total:
            return "approved"
        if self.rejected:
            return "needs_revision"
        if self.pending == 0:
            return "with_osas"
        return "in_review"


def summarize(documents: Sequence[EventDocument]) -> ProposalSummary:
    states = [project_state(d) for d in documents]
    return ProposalSummary(
        total=len(states),
        approved=sum(isinstance(s, OsasApproved) for s in states),
        rejected=sum(is_rejected(s) for s in states),
        pending=sum(isinstance(s, Pending) for s in states),
        sent_to_osas=sum(isinstance(s, AdviserApproved) for s in states),
    )


# ============================================================================
# LOOKUPS
# ============================================================================

async def get_proposal(db: AsyncSession, proposal_id: str) -> EventProposal:
    result = await db.execute(
        select(EventProposal)
        .options(selectinload(EventProposal.documents))
        .where(EventProposal.id == proposal_id)
        .execution_options(populate_existing=True)
    )
    proposal = result.scalar_one_or_none()
    if proposal is None:
        raise NotFoundError("Event proposal", proposal_id)
    return proposal


async def get_document(db: AsyncSession, document_id: str) -> EventDocument:
    document = await db.get(EventDocument, document_id)
    if document is None:
        raise NotFoundError("Document", document_id)
    return document


async def _lock_document(db: AsyncSession, document_id: str) -> EventDocument:
    result = await db.execute(
        select(EventDocument)
        .where(EventDocument.id == document_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise NotFoundError("Document", document_id)
    return document


def proposal_owner(proposal: EventProposal) -> Owner:
    if proposal.organization_id:
        return Owner(OwnerKind.ORGANIZATION, proposal.organization_id)
    return Owner(OwnerKind.COUNCIL, proposal.council_id)


async def _email_of(db: AsyncSession, user_id: Optional[str]) -> Optional[str]:
    if not user_id:
        return None
    result = await db.execute(select(User.email).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _osas_recipients(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(User.email).where(User.role == UserRole.OSAS, User.is_active.is_(True))
    )
    recipients = list(result.scalars().all())
    if settings.OSAS_NOTIFICATION_EMAIL and settings.OSAS_NOTIFICATION_EMAIL not in recipients:
        recipients.append(settings.OSAS_NOTIFICATION_EMAIL)
    return recipients


@dataclass(frozen=True)
class _Context:
    """Notification details gathered before the commit."""
    title: str
    document_label: str
    entity_name: str
    president_email: Optional[str]
    adviser_email: Optional[str]


async def _context(db: AsyncSession, document: EventDocument) -> _Context:
    proposal = await db.get(EventProposal, document.proposal_id)
    entity = await load_owner(db, proposal_owner(proposal))
    return _Context(
        title=proposal.title,
        document_label=document.document_type.label,
        entity_name=entity.name,
        president_email=await _email_of(db, entity.president_id),
        adviser_email=await _email_of(db, entity.adviser_id),
    )


def _require_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidInputError("Please provide a rejection reason", code="REASON_REQUIRED")
    return reason


# ============================================================================
# SUBMISSION
# ============================================================================

async def create_proposal(
    db: AsyncSession,
    owner: Owner,
    title: str,
    venue: str,
    files: Sequence[tuple[DocumentType, IncomingFile]],
    submitted_by: str,
    notifier: Notifier,
) -> EventProposal:
    """Create a proposal with its documents, or nothing at all."""
    title = (title or "").strip()
    venue = (venue or "").strip()
    if not title or not venue:
        raise InvalidInputError("Event title and venue are required.")
    if not files:
        raise InvalidInputError("At least one document is required.")

    # One bad file rejects the whole proposal
    for _, incoming in files:
        ensure_valid(incoming, DOCUMENT_PROFILE)

    written: list[str] = []
    try:
        term = await require_current_term(db)
        entity = await load_owner(db, owner)
        if entity.status != RecognitionStatus.RECOGNIZED:
            raise StateViolationError(
                "Only recognized organizations and councils can submit event proposals.",
                current_state=entity.status.value,
            )

        proposal = EventProposal(
            organization_id=owner.id if owner.kind is OwnerKind.ORGANIZATION else None,
            council_id=owner.id if owner.kind is OwnerKind.COUNCIL else None,
            academic_term_id=term.id,
            title=title,
            venue=venue,
            submitted_by=submitted_by,
        )
        db.add(proposal)
        await db.flush()

        for document_type, incoming in files:
            path = storage.save_file(UPLOAD_CATEGORY, proposal.id, incoming.filename, incoming.content)
            written.append(path)
            db.add(EventDocument(
                proposal_id=proposal.id,
                document_type=document_type,
                file_path=path,
                original_filename=incoming.filename,
                file_size=incoming.size,
                submitted_by=submitted_by,
                status=DocumentStatus.PENDING,
            ))
        await db.flush()
        adviser_email = await _email_of(db, entity.adviser_id)
        await db.commit()
    except Exception:
        await db.rollback()
        for path in written:
            storage.delete_file(path)
        raise

    logger.info("Event proposal %s submitted with %d document(s)", proposal.id, len(files))
    await dispatch(notifier, adviser_email, NotificationKind.PROPOSAL_SUBMITTED, {
        "title": title,
        "entity_name": entity.name,
        "document_count": len(files),
    })
    return await get_proposal(db, proposal.id)


# ============================================================================
# REVIEW
# ============================================================================

async def adviser_decide(
    db: AsyncSession,
    document_id: str,
    approve: bool,
    reviewer_id: str,
    notifier: Notifier,
    reason: Optional[str] = None,
) -> EventDocument:
    if not approve:
        reason = _require_reason(reason)

    try:
        document = await _lock_document(db, document_id)
        if not isinstance(project_state(document), Pending):
            raise StateViolationError(
                "Only pending documents can be reviewed by the adviser.",
                current_state=document.status.value,
            )

        now = datetime.now(timezone.utc)
        if approve:
            document.status = DocumentStatus.ADVISER_APPROVED
            document.adviser_approved_at = now
        else:
            document.status = DocumentStatus.ADVISER_REJECTED
            document.adviser_rejected_at = now
            document.rejection_reason = reason
        document.adviser_reviewed_by = reviewer_id
        await db.flush()

        context = await _context(db, document)
        forward = False
        if approve:
            proposal = await get_proposal(db, document.proposal_id)
            forward = all(d.status != DocumentStatus.PENDING for d in proposal.documents)
        osas_recipients = await _osas_recipients(db) if forward else []
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Document %s %s by adviser %s",
        document_id, "approved" if approve else "rejected", reviewer_id
    )
    payload = {"title": context.title, "document_label": context.document_label}
    if approve:
        await dispatch(notifier, context.president_email, NotificationKind.DOCUMENT_ADVISER_APPROVED, payload)
    else:
        await dispatch(notifier, context.president_email, NotificationKind.DOCUMENT_ADVISER_REJECTED, {
            **payload, "reason": reason,
        })
    for recipient in osas_recipients:
        await dispatch(notifier, recipient, NotificationKind.PROPOSAL_FORWARDED_TO_OSAS, {
            "title": context.title, "entity_name": context.entity_name,
        })
    return document


async def osas_decide(
    db: AsyncSession,
    document_id: str,
    approve: bool,
    reviewer_id: str,
    notifier: Notifier,
    reason: Optional[str] = None,
    resubmission_deadline: Optional[date] = None,
) -> EventDocument:
    if not approve:
        reason = _require_reason(reason)
        if resubmission_deadline is not None and resubmission_deadline < date.today():
            raise InvalidInputError("Resubmission deadline cannot be in the past.")

    try:
        document = await _lock_document(db, document_id)
        if not isinstance(project_state(document), AdviserApproved):
            raise StateViolationError(
                "Only documents approved by the adviser can be reviewed by OSAS.",
                current_state=document.status.value,
            )

        now = datetime.now(timezone.utc)
        if approve:
            document.status = DocumentStatus.OSAS_APPROVED
            document.osas_approved_at = now
        else:
            document.status = DocumentStatus.OSAS_REJECTED
            document.osas_rejected_at = now
            document.rejection_reason = reason
            document.resubmission_deadline = resubmission_deadline
        document.osas_reviewed_by = reviewer_id
        await db.flush()
        context = await _context(db, document)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Document %s %s by OSAS %s",
        document_id, "approved" if approve else "rejected", reviewer_id
    )
    payload = {"title": context.title, "document_label": context.document_label}
    if approve:
        await dispatch(notifier, context.president_email, NotificationKind.DOCUMENT_OSAS_APPROVED, payload)
    else:
        await dispatch(notifier, context.president_email, NotificationKind.DOCUMENT_OSAS_REJECTED, {
            **payload,
            "reason": reason,
            "resubmission_deadline": resubmission_deadline.isoformat() if resubmission_deadline else None,
        })
    return document


async def resubmit_document(
    db: AsyncSession,
    document_id: str,
    new_file: IncomingFile,
    notifier: Notifier,
) -> EventDocument:
    """Replace a rejected document's file and send it back to the adviser."""
    ensure_valid(new_file, DOCUMENT_PROFILE)

    new_path = None
    try:
        document = await _lock_document(db, document_id)
        if not is_rejected(project_state(document)):
            raise StateViolationError(
                "Only rejected documents can be resubmitted.",
                current_state=document.status.value,
            )
        old_path = document.file_path

        new_path = storage.save_file(
            UPLOAD_CATEGORY, document.proposal_id, new_file.filename, new_file.content
        )
        document.file_path = new_path
        document.original_filename = new_file.filename
        document.file_size = new_file.size
        document.status = DocumentStatus.PENDING
        document.adviser_approved_at = None
        document.adviser_rejected_at = None
        document.osas_approved_at = None
        document.osas_rejected_at = None
        document.adviser_reviewed_by = None
        document.osas_reviewed_by = None
        document.rejection_reason = None
        document.resubmission_deadline = None
        document.submitted_at = datetime.now(timezone.utc)
        await db.flush()
        context = await _context(db, document)
        await db.commit()
    except Exception:
        await db.rollback()
        if new_path:
            storage.delete_file(new_path)
        raise

    storage.delete_file(old_path)
    logger.info("Document %s resubmitted", document_id)
    await dispatch(notifier, context.adviser_email, NotificationKind.DOCUMENT_RESUBMITTED, {
        "title": context.title,
        "document_label": context.document_label,
        "entity_name": context.entity_name,
    })
    return document
