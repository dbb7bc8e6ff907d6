"""
Campus Portal Backend — WhatsApp Messaging Service
====================================================

What:  Sends text messages through an HTTP WhatsApp gateway.
How:   POSTs a JSON payload {number, type, message, instance_id, access_token}
       with httpx. Transport errors (connection refused, timeouts) are retried
       with tenacity; HTTP error statuses are not retried, because the gateway
       already received and rejected the request.
Who:   Called by POST /api/notifications/whatsapp.

Failure policy:
    Never raises for delivery problems. Missing configuration, exhausted
    retries and non-2xx answers are logged and reported as False.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx
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

OTP_TEMPLATE = "Your verification code is: {otp}. This code will expire in 10 minutes."


class WhatsAppService(NotificationSender):
    """
    WhatsApp gateway client.

    Args:
        api_url, instance_id, access_token, timeout: default to settings
        transport: optional httpx transport (tests pass httpx.MockTransport)
    """

    channel = "whatsapp"

    def __init__(
        self,
        api_url: Optional[str] = None,
        instance_id: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url if api_url is not None else settings.whatsapp_api_url
        self.instance_id = instance_id if instance_id is not None else settings.whatsapp_instance_id
        self.access_token = access_token if access_token is not None else settings.whatsapp_access_token
        self.timeout = timeout if timeout is not None else settings.whatsapp_timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.instance_id and self.access_token)

    async def send_otp(self, phone_number: str, otp: str) -> bool:
        return await self.send(phone_number, OTP_TEMPLATE.format(otp=otp))

    async def send(self, target: str, message: str) -> bool:
        if not self.is_configured:
            logger.error("WhatsApp configuration is missing; message not sent")
            return False

        number = target.strip().lstrip("+")
        payload = {
            "number": number,
            "type": "text",
            "message": message,
            "instance_id": self.instance_id,
            "access_token": self.access_token,
        }

        try:
            response = await self._post_with_retry(payload)
        except httpx.HTTPError as e:
            logger.error("WhatsApp gateway unreachable for %s: %s", number, e)
            return False

        if response.is_success:
            logger.info("WhatsApp message sent successfully to %s", number)
            return True

        logger.error(
            "Failed to send WhatsApp message. Status: %d, Error: %s",
            response.status_code,
            response.text[:500],
        )
        return False

    @retry(
        # Only transport failures; an HTTP status means the gateway answered
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, payload: Dict[str, Any]) -> httpx.Response:
        start_time = time.perf_counter()
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.api_url, json=payload)
        logger.debug(
            "WhatsApp gateway answered %d in %.0fms",
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
        )
        return response


# ── Singleton Instance ────────────────────────────────────────────────────
whatsapp_service = WhatsAppService()
