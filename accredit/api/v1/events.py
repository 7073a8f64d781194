"""
Event proposal endpoints.

- Presidents submit proposals with their supporting documents and resubmit
  rejected documents.
- Advisers review each document first, then OSAS.
"""
from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, File, status
from sqlalchemy.ext.asyncio import AsyncSession

from accredit.db.base import get_db
from accredit.core.deps import get_current_user, require_roles
from accredit.core.permissions import require_adviser, require_president
from accredit.models.event import EventProposal, DocumentType
from accredit.models.user import User, UserRole
from accredit.schemas.event import (
    AdviserDecision, DocumentResponse, OsasDecision, ProposalResponse, ProposalSummaryResponse
)
from accredit.services import commands, documents
from accredit.services.guards import Owner, OwnerKind
from accredit.services.notifications import Notifier, get_notifier
from accredit.api.v1.uploads import read_upload

router = APIRouter()


def proposal_to_response(proposal: EventProposal) -> ProposalResponse:
    summary = documents.summarize(proposal.documents)
    return ProposalResponse(
        id=proposal.id,
        organization_id=proposal.organization_id,
        council_id=proposal.council_id,
        academic_term_id=proposal.academic_term_id,
        title=proposal.title,
        venue=proposal.venue,
        submitted_by=proposal.submitted_by,
        created=proposal.created,
        documents=[DocumentResponse.model_validate(d) for d in proposal.documents],
        summary=ProposalSummaryResponse(
            total=summary.total,
            approved=summary.approved,
            rejected=summary.rejected,
            pending=summary.pending,
            sent_to_osas=summary.sent_to_osas,
            overall=summary.overall,
        ),
    )


async def _document_owner(db: AsyncSession, document_id: str) -> Owner:
    document = await documents.get_document(db, document_id)
    proposal = await db.get(EventProposal, document.proposal_id)
    return documents.proposal_owner(proposal)


@router.post("/proposals", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    owner_type: OwnerKind = Form(...),
    owner_id: str = Form(...),
    title: str = Form(...),
    venue: str = Form(...),
    document_types: list[DocumentType] = Form(...),
    files: list[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    current_user: User = Depends(get_current_user)
):
    """
    Submit an event proposal.

    ``document_types`` and ``files`` are matched by position. Every file is
    validated before anything is stored; one invalid file rejects the whole
    proposal.
    """
    if len(document_types) != len(files):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Each uploaded file needs exactly one document type"
        )

    owner = Owner(owner_type, owner_id)
    await require_president(db, current_user, owner)

    incoming = [
        (document_type, await read_upload(upload))
        for document_type, upload in zip(document_types, files)
    ]
    proposal = await documents.create_proposal(
        db, owner, title, venue, incoming, current_user.id, notifier
    )
    return proposal_to_response(proposal)


@router.get("/proposals/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    proposal = await documents.get_proposal(db, proposal_id)
    return proposal_to_response(proposal)


@router.post("/documents/{document_id}/adviser-decision", response_model=DocumentResponse)
async def adviser_decision(
    document_id: str,
    decision: AdviserDecision,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    current_user: User = Depends(get_current_user)
):
    await require_adviser(db, current_user, await _document_owner(db, document_id))
    document = await commands.apply(
        db,
        commands.AdviserDecide(document_id, current_user.id, decision.approve, decision.reason),
        notifier,
    )
    return DocumentResponse.model_validate(document)


@router.post("/documents/{document_id}/osas-decision", response_model=DocumentResponse)
async def osas_decision(
    document_id: str,
    decision: OsasDecision,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    current_user: User = Depends(require_roles(UserRole.OSAS))
):
    document = await commands.apply(
        db,
        commands.OsasDecide(
            document_id,
            current_user.id,
            decision.approve,
            decision.reason,
            decision.resubmission_deadline,
        ),
        notifier,
    )
    return DocumentResponse.model_validate(document)


@router.post("/documents/{document_id}/resubmit", response_model=DocumentResponse)
async def resubmit_document(
    document_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    current_user: User = Depends(get_current_user)
):
    """Replace a rejected document; it goes back to the adviser as pending."""
    await require_president(db, current_user, await _document_owner(db, document_id))
    document = await commands.apply(
        db, commands.ResubmitDocument(document_id, await read_upload(file)), notifier
    )
    return DocumentResponse.model_validate(document)
