"""
Campus Portal Backend — Admin Portal Routes
=============================================

What:  Admin dashboard summary, reachable only through URLs ending in the
       configured admin suffix (default "/admin") and only for Admins.
How:   UrlSuffixGate checks the path shape first, then the role filter.
       Errors render as HTML pages: this is the browser-facing channel.

Example:
    GET /portal/dashboard/admin   → 200 with counts (X-User-Roles: Admin)
    GET /portal/dashboard         → 403, URL shape
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from campus.database import get_db_session
from campus.filters import CustomHeaderFilter, RoleAuthorizationFilter, UrlSuffixGate
from campus.pipeline import FilteredRouter, FilterPipeline
from campus.responses import HTML_CHANNEL
from campus.schemas.common import DashboardResponse
from campus.services.department_service import department_service

router = FilteredRouter(
    prefix="/portal",
    tags=["Admin Portal"],
    pipeline=FilterPipeline(
        authorization=[UrlSuffixGate(), RoleAuthorizationFilter(["Admin"])],
        error_channel=HTML_CHANNEL,
    ),
)


@router.filtered(
    "/{section:path}",
    methods=["GET"],
    response_model=DashboardResponse,
    summary="Admin dashboard counts",
    pipeline=FilterPipeline(result=[CustomHeaderFilter({"X-Portal-Section": "admin"})]),
)
async def admin_dashboard(
    section: str,
    db: AsyncSession = Depends(get_db_session),
) -> DashboardResponse:
    return DashboardResponse(section=section, counts=await department_service.dashboard_counts(db))
