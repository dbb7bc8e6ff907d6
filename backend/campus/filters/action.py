"""
Campus Portal Backend — Action Filters
========================================

What:  Hooks wrapped tightly around the handler, after binding.
Who:   Attached through `FilterPipeline(action=[...])`. Before-hooks run in
       registration order, after-hooks in reverse.

Filters:
    DepartmentLocationActionFilter → timing + monitoring log of the department
                                     location; never denies
    ValidateDepartmentLocationFilter → 400 when a bound department payload
                                       carries a location outside the allow-list
"""

import logging
from typing import Iterable, Optional

from campus.filters.departments import (
    DepartmentLookup,
    allow_list,
    normalize_location,
    parse_department_id,
)
from campus.models.department import Department
from campus.pipeline.base import ActionFilter, StageOutcome, pop_timer, push_timer
from campus.pipeline.context import RequestContext
from campus.pipeline.results import CONTINUE, PipelineResult, ShortCircuit
from campus.repositories.repository import ScopedLookup

logger = logging.getLogger(__name__)


class DepartmentLocationActionFilter(ActionFilter):
    """
    Times the handler and logs whether the department's location would pass.

    The side lookup is monitoring only. A lookup failure is logged and the
    request continues; an exception raised downstream is logged by the
    after-hook and keeps propagating.

    Args:
        lookup:            object with `async find_by_id(model, id)`; defaults
                           to a ScopedLookup on the application database
        parameter:         handler argument holding the department id
        allowed_locations: defaults to settings.allowed_locations
    """

    def __init__(
        self,
        lookup: Optional[DepartmentLookup] = None,
        parameter: str = "deptId",
        allowed_locations: Optional[Iterable[str]] = None,
    ):
        self.lookup = lookup or ScopedLookup()
        self.parameter = parameter
        self.allowed_locations = allow_list(allowed_locations)

    async def before(self, ctx: RequestContext) -> PipelineResult:
        push_timer(ctx, self)

        raw = ctx.arguments.get(self.parameter)
        body = ctx.arguments.get("body")
        if raw is None and isinstance(body, dict):
            raw = body.get(self.parameter)

        dept_id = parse_department_id(raw)
        if dept_id is not None:
            await self._log_location(ctx, dept_id)

        logger.info("Executing action: %s [%s]", ctx.operation, ctx.request_id)
        return CONTINUE

    async def _log_location(self, ctx: RequestContext, dept_id: int) -> None:
        try:
            department = await self.lookup.find_by_id(Department, dept_id)
        except Exception as e:
            logger.warning(
                "Department lookup for monitoring failed (dept %s) [%s]: %s",
                dept_id,
                ctx.request_id,
                e,
            )
            return

        if department is None:
            return
        location = normalize_location(department.location)
        if location in self.allowed_locations:
            logger.info("Department location check passed: %s - %s", department.name, location)
        else:
            logger.warning("Department location check failed: %s - %s", department.name, location)

    async def after(self, ctx: RequestContext, outcome: StageOutcome) -> None:
        elapsed_ms = pop_timer(ctx, self) or 0.0

        status = outcome.response.status_code if outcome.response is not None else None
        logger.info(
            "Action executed: %s - Duration: %.0fms - status %s [%s]",
            ctx.operation,
            elapsed_ms,
            status,
            ctx.request_id,
        )
        if outcome.exception is not None:
            logger.error(
                "Action failed: %s [%s]: %s",
                ctx.operation,
                ctx.request_id,
                type(outcome.exception).__name__,
                exc_info=outcome.exception,
            )


class ValidateDepartmentLocationFilter(ActionFilter):
    """
    Rejects department payloads whose location is blank or not allowed.

    Only applies when the bound argument is a JSON object that carries a
    `location` key; partial updates without one pass through.
    """

    def __init__(self, argument: str = "body", allowed_locations: Optional[Iterable[str]] = None):
        self.argument = argument
        self.allowed_locations = allow_list(allowed_locations)

    async def before(self, ctx: RequestContext) -> PipelineResult:
        payload = ctx.arguments.get(self.argument)
        if not isinstance(payload, dict) or "location" not in payload:
            return CONTINUE

        raw = payload.get("location")
        location = normalize_location(raw if isinstance(raw, str) else None)
        if not location:
            return self._reject("Department location is required")

        if location not in self.allowed_locations:
            return self._reject(
                f"Department location '{raw}' is not allowed. "
                f"Allowed locations: {', '.join(self.allowed_locations)}"
            )
        return CONTINUE

    @staticmethod
    def _reject(message: str) -> ShortCircuit:
        return ShortCircuit.json(400, {"errors": {"location": [message]}})
