"""
Campus Portal Backend — Notification Collaborators
====================================================

Outbound messaging used by the notification routes:
    - NotificationSender (abstract): send(target, message) -> bool
    - WhatsAppService: HTTP gateway via httpx, tenacity retries
    - EmailService: SMTP via aiosmtplib, tenacity retries
"""

from campus.services.notifications.base import NotificationSender
from campus.services.notifications.email_service import EmailService, email_service
from campus.services.notifications.whatsapp_service import WhatsAppService, whatsapp_service

__all__ = [
    "EmailService",
    "NotificationSender",
    "WhatsAppService",
    "email_service",
    "whatsapp_service",
]
