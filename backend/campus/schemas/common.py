"""
Campus Portal Backend — Shared Schemas
========================================

What:  Small response/request models shared by several route modules.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """
    What:  Health check response for monitoring and orchestration.
    Who:   Returned by GET /health.

    Status values:
        - "healthy": All dependencies operational
        - "degraded": Database unreachable
    """

    status: str = Field(description="Overall health: healthy or degraded")
    database: str = Field(description="Database connectivity status")
    version: str = Field(default="1.0.0", description="API version")


class DashboardResponse(BaseModel):
    section: str
    counts: Dict[str, int]


class WhatsAppRequest(BaseModel):
    phone_number: str = Field(min_length=3, max_length=32, description="E.164, leading '+' optional")
    message: str = Field(min_length=1, max_length=4096)


class EmailRequest(BaseModel):
    to: str = Field(min_length=3, max_length=320)
    subject: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1)
    html: bool = Field(default=True)


class NotificationResponse(BaseModel):
    sent: bool
    channel: str
    detail: Optional[str] = None
