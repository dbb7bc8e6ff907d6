"""
Campus Portal Backend — Authorization Filters
===============================================

What:  Decide whether a caller may reach a handler.
How:   Each filter returns CONTINUE or a ShortCircuit carrying the denial
       response. Denials are never exceptions; a failing department lookup
       is a genuine fault and propagates to the exception boundary.
Who:   Attached to routes through `FilterPipeline(authorization=[...])`.

Filters:
    RoleAuthorizationFilter  → 403 unless the caller holds one of the roles
    DepartmentLocationGate   → 403/404 unless the department's location is allowed
    UrlSuffixGate            → 403 unless the request path has the required suffix
"""

import logging
from typing import Iterable, Optional, Sequence

from campus.config import settings
from campus.filters.departments import (
    DEPARTMENT_ID_PARAMETERS,
    DepartmentLookup,
    allow_list,
    find_department_id,
    normalize_location,
)
from campus.models.department import Department
from campus.pipeline.base import AuthorizationFilter
from campus.pipeline.context import RequestContext
from campus.pipeline.results import CONTINUE, PipelineResult, ShortCircuit
from campus.repositories.repository import ScopedLookup

logger = logging.getLogger(__name__)

# ctx.items key under which the gate leaves the department it resolved
DEPARTMENT_ITEM = "department"


class RoleAuthorizationFilter(AuthorizationFilter):
    """
    Admits callers holding at least one of `roles` (case-insensitive).

    Example:
        RoleAuthorizationFilter(["Admin"])
    """

    def __init__(self, roles: Iterable[str]):
        self.roles = tuple(roles)
        if not self.roles:
            raise ValueError("RoleAuthorizationFilter needs at least one role")

    async def check(self, ctx: RequestContext) -> PipelineResult:
        if ctx.has_any_role(self.roles):
            return CONTINUE

        logger.warning(
            "Role check failed for %s [%s]: requires one of %s",
            ctx.operation,
            ctx.request_id,
            ", ".join(self.roles),
        )
        return ShortCircuit.json(
            403,
            {
                "message": "Access denied. You don't have the role required for this resource.",
                "requiredRoles": list(self.roles),
            },
        )


class DepartmentLocationGate(AuthorizationFilter):
    """
    Admits requests whose department is located in the allow-list.

    The department id is read from the route, then the query string, then a
    JSON body, under any of `parameters`.

    Outcomes:
        id absent or not numeric      → 403
        department does not exist     → 404 {"message": "Department not found"}
        location blank                → 403
        location not in allow-list    → 403 naming the location and the allow-list
        otherwise                     → CONTINUE; department stored in ctx.items

    Args:
        lookup:            object with `async find_by_id(model, id)`; defaults
                           to a ScopedLookup on the application database
        allowed_locations: defaults to settings.allowed_locations
        parameters:        accepted names for the department id
    """

    def __init__(
        self,
        lookup: Optional[DepartmentLookup] = None,
        allowed_locations: Optional[Iterable[str]] = None,
        parameters: Sequence[str] = DEPARTMENT_ID_PARAMETERS,
    ):
        self.lookup = lookup or ScopedLookup()
        self.allowed_locations = allow_list(allowed_locations)
        self.parameters = tuple(parameters)

    async def check(self, ctx: RequestContext) -> PipelineResult:
        dept_id = await find_department_id(ctx, self.parameters)
        if dept_id is None:
            logger.warning("No valid department id on %s [%s]", ctx.operation, ctx.request_id)
            return ShortCircuit.json(
                403, {"message": "Access denied. A valid department id is required."}
            )

        department = await self.lookup.find_by_id(Department, dept_id)
        if department is None:
            return ShortCircuit.json(404, {"message": "Department not found"})

        location = normalize_location(department.location)
        if not location:
            logger.warning("Department %s has no location [%s]", dept_id, ctx.request_id)
            return ShortCircuit.json(
                403, {"message": "Access denied. Department location is not set."}
            )

        if location not in self.allowed_locations:
            logger.warning(
                "Department %s location '%s' not allowed for %s [%s]",
                dept_id,
                location,
                ctx.operation,
                ctx.request_id,
            )
            return ShortCircuit.json(
                403,
                {
                    "message": (
                        f"Access denied. Department location '{location}' is not allowed. "
                        f"Allowed locations: {', '.join(self.allowed_locations)}"
                    ),
                },
            )

        ctx.items[DEPARTMENT_ITEM] = department
        return CONTINUE


class UrlSuffixGate(AuthorizationFilter):
    """Admits requests whose path ends with `suffix` (case-insensitive)."""

    def __init__(self, suffix: Optional[str] = None):
        self.suffix = suffix if suffix is not None else settings.admin_url_suffix

    async def check(self, ctx: RequestContext) -> PipelineResult:
        if ctx.path and ctx.path.lower().endswith(self.suffix.lower()):
            return CONTINUE

        return ShortCircuit.json(
            403,
            {
                "message": (
                    f"Access denied. URL must end with '{self.suffix}' to access this resource."
                ),
                "currentPath": ctx.path,
                "requiredPath": f"Must end with: {self.suffix}",
            },
        )
