"""
Campus Portal Backend — Header Diagnostics Routes
===================================================

What:  Small browser-facing pages that show the result decorators at work.
       Open one and inspect the response headers.
Who:   Developers checking header and cache behaviour behind proxies.

Routes (all under /diagnostics/headers):
    /default    X-Action-Result-Key: ResultFilterApplied
    /custom     X-My-Custom-Key: MyCustomValue
    /multiple   X-Header-1..3, one decorator each
    /manual     decorator header plus one the handler sets itself
    /cached     Cache-Control public, 120s
    /plain      no decorators
    /failure    raises; answered with the HTML error page
"""

import logging

from fastapi.responses import HTMLResponse

from campus.filters import CacheControlFilter, CustomHeaderFilter
from campus.pipeline import FilteredRouter, FilterPipeline
from campus.responses import HTML_CHANNEL

logger = logging.getLogger(__name__)

router = FilteredRouter(
    prefix="/diagnostics/headers",
    tags=["Diagnostics"],
    pipeline=FilterPipeline(error_channel=HTML_CHANNEL),
)


def _page(message: str) -> HTMLResponse:
    return HTMLResponse(
        "<!DOCTYPE html><html><head><title>Header diagnostics</title></head>"
        f"<body><p>{message}</p></body></html>"
    )


@router.filtered(
    "/default",
    methods=["GET"],
    response_class=HTMLResponse,
    pipeline=FilterPipeline(result=[CustomHeaderFilter()]),
)
async def default_header() -> HTMLResponse:
    return _page("Check response headers for: X-Action-Result-Key")


@router.filtered(
    "/custom",
    methods=["GET"],
    response_class=HTMLResponse,
    pipeline=FilterPipeline(result=[CustomHeaderFilter({"X-My-Custom-Key": "MyCustomValue"})]),
)
async def custom_header() -> HTMLResponse:
    return _page("Check response headers for: X-My-Custom-Key = MyCustomValue")


@router.filtered(
    "/multiple",
    methods=["GET"],
    response_class=HTMLResponse,
    pipeline=FilterPipeline(
        result=[
            CustomHeaderFilter({"X-Header-1": "Value1"}),
            CustomHeaderFilter({"X-Header-2": "Value2"}),
            CustomHeaderFilter({"X-Header-3": "Value3"}),
        ]
    ),
)
async def multiple_headers() -> HTMLResponse:
    return _page("Check response headers for multiple X-Header-* entries")


@router.filtered(
    "/manual",
    methods=["GET"],
    response_class=HTMLResponse,
    pipeline=FilterPipeline(result=[CustomHeaderFilter({"X-Bonus-Key": "BonusValue"})]),
)
async def manual_header() -> HTMLResponse:
    response = _page("Check response headers for: X-Bonus-Key and X-Manual-Header")
    response.headers["X-Manual-Header"] = "ManualValue"
    return response


@router.filtered(
    "/cached",
    methods=["GET"],
    response_class=HTMLResponse,
    pipeline=FilterPipeline(result=[CacheControlFilter(120)]),
)
async def cached_page() -> HTMLResponse:
    return _page("This page may be cached for 120 seconds")


@router.filtered("/plain", methods=["GET"], response_class=HTMLResponse)
async def plain_page() -> HTMLResponse:
    return _page("No custom headers should be added (except standard ones)")


@router.filtered("/failure", methods=["GET"], response_class=HTMLResponse)
async def failing_page() -> HTMLResponse:
    logger.info("Diagnostics failure page requested")
    raise RuntimeError("Diagnostics page that always fails")
