"""
Workflow notifications.

Notifications are sent after the workflow transaction has committed and are
best-effort: a failure is logged and reported as ``False``, never raised.
"""
import logging
from enum import Enum
from typing import Any, Protocol

from accredit.core.config import settings
from accredit.services.email import EmailService, email_service

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    SUBMISSION_OTP = "submission_otp"
    ACCOUNT_CREDENTIALS = "account_credentials"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    PROPOSAL_SUBMITTED = "proposal_submitted"
    DOCUMENT_ADVISER_APPROVED = "document_adviser_approved"
    DOCUMENT_ADVISER_REJECTED = "document_adviser_rejected"
    PROPOSAL_FORWARDED_TO_OSAS = "proposal_forwarded_to_osas"
    DOCUMENT_OSAS_APPROVED = "document_osas_approved"
    DOCUMENT_OSAS_REJECTED = "document_osas_rejected"
    DOCUMENT_RESUBMITTED = "document_resubmitted"


TEMPLATES: dict[NotificationKind, tuple[str, str]] = {
    NotificationKind.SUBMISSION_OTP: (
        "Your application verification code",
        "Your verification code is {otp}.\n\n"
        "It expires in {expires_minutes} minutes. If you did not request this "
        "code you can ignore this email.",
    ),
    NotificationKind.ACCOUNT_CREDENTIALS: (
        "Your {role_label} account for {entity_name}",
        "Hello {name},\n\n"
        "An account has been created for you as {role_label} of {entity_name}.\n\n"
        "Username: {username}\n"
        "Password: {password}\n\n"
        "Please sign in at {site_url} and change your password.",
    ),
    NotificationKind.APPLICATION_APPROVED: (
        "Application approved: {entity_name}",
        "The application for {entity_name} has been approved. The president "
        "and adviser will receive their login credentials in separate emails.",
    ),
    NotificationKind.APPLICATION_REJECTED: (
        "Application not approved: {entity_name}",
        "The application for {entity_name} was not approved.\n\n"
        "Reason: {reason}",
    ),
    NotificationKind.PROPOSAL_SUBMITTED: (
        "New event proposal: {title}",
        "{entity_name} submitted the event proposal \"{title}\" "
        "({document_count} document(s)) for your review.",
    ),
    NotificationKind.DOCUMENT_ADVISER_APPROVED: (
        "Document approved by adviser: {document_label}",
        "The {document_label} for \"{title}\" was approved by your adviser.",
    ),
    NotificationKind.DOCUMENT_ADVISER_REJECTED: (
        "Document returned by adviser: {document_label}",
        "The {document_label} for \"{title}\" was returned by your adviser.\n\n"
        "Reason: {reason}",
    ),
    NotificationKind.PROPOSAL_FORWARDED_TO_OSAS: (
        "Event proposal ready for OSAS review: {title}",
        "All documents of \"{title}\" from {entity_name} were approved by the "
        "adviser and are ready for OSAS review.",
    ),
    NotificationKind.DOCUMENT_OSAS_APPROVED: (
        "Document approved by OSAS: {document_label}",
        "The {document_label} for \"{title}\" was approved by OSAS.",
    ),
    NotificationKind.DOCUMENT_OSAS_REJECTED: (
        "Document returned by OSAS: {document_label}",
        "The {document_label} for \"{title}\" was returned by OSAS.\n\n"
        "Reason: {reason}\n"
        "Resubmit by: {resubmission_deadline}",
    ),
    NotificationKind.DOCUMENT_RESUBMITTED: (
        "Document resubmitted: {document_label}",
        "{entity_name} resubmitted the {document_label} for \"{title}\".",
    ),
}


class Notifier(Protocol):
    async def notify(
        self, to_email: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> bool:
        ...


class NotificationDispatcher:
    """Renders a notification and hands it to the email service."""

    def __init__(self, emailer: EmailService, site_url: str = ""):
        self.emailer = emailer
        self.site_url = site_url

    def render(self, kind: NotificationKind, payload: dict[str, Any]) -> tuple[str, str]:
        subject, body = TEMPLATES[kind]
        values = {"site_url": self.site_url, "resubmission_deadline": "not set", **payload}
        if values["resubmission_deadline"] is None:
            values["resubmission_deadline"] = "not set"
        return subject.format(**values), body.format(**values)

    async def notify(
        self, to_email: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> bool:
        try:
            subject, body = self.render(kind, payload)
        except KeyError as e:
            logger.error("Cannot render %s notification, missing %s", kind.value, e)
            return False
        sent = await self.emailer.send_email(to_email, subject, body)
        if not sent:
            logger.warning("Notification %s to %s was not delivered", kind.value, to_email)
        return sent


notification_dispatcher = NotificationDispatcher(email_service, site_url=settings.SITE_URL)


def get_notifier() -> Notifier:
    """Dependency returning the notifier used by the API."""
    return notification_dispatcher


async def dispatch(
    notifier: Notifier, to_email: str, kind: NotificationKind, payload: dict[str, Any]
) -> bool:
    """Send through any notifier without letting its failure reach the workflow."""
    if not to_email:
        logger.warning("Skipping %s notification: no recipient", kind.value)
        return False
    try:
        return await notifier.notify(to_email, kind, payload)
    except Exception:
        logger.exception("Notification %s to %s failed", kind.value, to_email)
        return False
