"""
Campus Portal Backend — Email Service
=======================================

What:  Sends HTML (or plain text) email over SMTP with aiosmtplib.
How:   Builds a MIME message and hands it to `aiosmtplib.send`. Connection
       failures are retried with tenacity.
Who:   Called by POST /api/notifications/email.

Unconfigured behaviour:
    development → logs the would-be message and returns True so flows that
                  send mail can be exercised locally
    production  → logs an error and returns False
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

import aiosmtplib
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from campus.config import settings
from campus.services.notifications.base import NotificationSender

logger = logging.getLogger(__name__)


class EmailService(NotificationSender):
    channel = "email"

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        development: Optional[bool] = None,
    ):
        self.host = host if host is not None else settings.smtp_host
        self.port = port if port is not None else settings.smtp_port
        self.username = username if username is not None else settings.smtp_username
        self.password = password if password is not None else settings.smtp_password
        self.use_tls = use_tls if use_tls is not None else settings.smtp_use_tls
        self.from_email = from_email if from_email is not None else settings.email_from
        self.from_name = from_name if from_name is not None else settings.email_from_name
        self.development = settings.is_development if development is None else development

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username)

    async def send(self, target: str, message: str) -> bool:
        return await self.send_email(target, "University System notification", message)

    async def send_email(self, to_email: str, subject: str, body: str, html: bool = True) -> bool:
        """
        Send one email.

        Returns:
            bool: True if the SMTP server accepted it (or, in development,
                  when SMTP is unconfigured and the message was only logged).
        """
        if not self.is_configured:
            if self.development:
                logger.warning("Email configuration is incomplete. Email not sent.")
                logger.info("[DEV MODE] Email to: %s, Subject: %s", to_email, subject)
                return True
            logger.error("Email configuration is incomplete; cannot send to %s", to_email)
            return False

        mime = MIMEMultipart("alternative")
        mime["From"] = formataddr((self.from_name, self.from_email or self.username))
        mime["To"] = to_email
        mime["Subject"] = subject
        mime.attach(MIMEText(body, "html" if html else "plain", "utf-8"))

        try:
            await self._send_with_retry(mime)
        except aiosmtplib.SMTPException as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False

        logger.info("Email sent successfully to %s", to_email)
        return True

    @retry(
        retry=retry_if_exception_type((aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _send_with_retry(self, mime: MIMEMultipart) -> None:
        await aiosmtplib.send(
            mime,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password or None,
            start_tls=self.use_tls,
            timeout=30,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
email_service = EmailService()
