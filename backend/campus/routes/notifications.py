"""
Campus Portal Backend — Notification Routes
=============================================

What:  Admin-only endpoints that send a WhatsApp message or an email.
How:   The collaborators report delivery as a bool; a refused delivery is
       answered 502 so callers can tell it apart from their own mistakes.
"""

from fastapi import Depends
from fastapi.responses import JSONResponse

from campus.filters import RequestSizeLimitFilter, RoleAuthorizationFilter
from campus.pipeline import FilteredRouter, FilterPipeline
from campus.responses import JSON_CHANNEL
from campus.schemas.common import EmailRequest, NotificationResponse, WhatsAppRequest
from campus.services.notifications import (
    EmailService,
    WhatsAppService,
    email_service,
    whatsapp_service,
)

router = FilteredRouter(
    prefix="/api/notifications",
    tags=["Notifications"],
    pipeline=FilterPipeline(
        resource=[RequestSizeLimitFilter()],
        authorization=[RoleAuthorizationFilter(["Admin"])],
        error_channel=JSON_CHANNEL,
    ),
)


def get_whatsapp_service() -> WhatsAppService:
    return whatsapp_service


def get_email_service() -> EmailService:
    return email_service


def _answer(result: NotificationResponse) -> JSONResponse:
    return JSONResponse(status_code=200 if result.sent else 502, content=result.model_dump())


@router.post("/whatsapp", response_model=NotificationResponse, summary="Send a WhatsApp message")
async def send_whatsapp(
    payload: WhatsAppRequest,
    sender: WhatsAppService = Depends(get_whatsapp_service),
) -> JSONResponse:
    sent = await sender.send(payload.phone_number, payload.message)
    return _answer(
        NotificationResponse(
            sent=sent,
            channel=sender.channel,
            detail=None if sent else "The messaging gateway did not accept the message",
        )
    )


@router.post("/email", response_model=NotificationResponse, summary="Send an email")
async def send_email(
    payload: EmailRequest,
    sender: EmailService = Depends(get_email_service),
) -> JSONResponse:
    sent = await sender.send_email(payload.to, payload.subject, payload.body, html=payload.html)
    return _answer(
        NotificationResponse(
            sent=sent,
            channel=sender.channel,
            detail=None if sent else "The mail server did not accept the message",
        )
    )
