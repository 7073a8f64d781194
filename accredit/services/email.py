"""
Email delivery service.

In debug mode, and whenever no SMTP host is configured, messages are appended
to a log file instead of being sent.
"""
import asyncio
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path

from accredit.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Sends plain-text emails through SMTP or the development log file."""

    def __init__(self):
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME
        self.debug = settings.DEBUG
        self.email_log_path = Path(settings.EMAIL_LOG_PATH)

    def _log_email(self, to: str, subject: str, body: str):
        """Log email to file for development/testing."""
        timestamp = datetime.now().isoformat()
        log_entry = f"""
================================================================================
EMAIL SENT: {timestamp}
================================================================================
TO: {to}
FROM: {self.from_name} <{self.from_email}>
SUBJECT: {subject}
--------------------------------------------------------------------------------
{body}
--------------------------------------------------------------------------------
"""
        with open(self.email_log_path, "a") as f:
            f.write(log_entry)

        logger.info("Email logged: to=%s, subject=%s", to, subject)

    def _send_smtp(self, to: str, subject: str, body: str):
        message = EmailMessage()
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        if settings.SMTP_TLS:
            smtp = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT)
        else:
            smtp = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT)
        with smtp:
            if settings.SMTP_USERNAME:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
            smtp.send_message(message)
        logger.info("Email sent: to=%s, subject=%s", to, subject)

    async def send_email(self, to: str, subject: str, body: str) -> bool:
        """
        Send an email.

        Returns:
            True if the email was sent or logged successfully
        """
        try:
            if self.debug or not settings.SMTP_HOST:
                self._log_email(to, subject, body)
            else:
                await asyncio.to_thread(self._send_smtp, to, subject, body)
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False


email_service = EmailService()
