"""
Campus Portal Backend — Department Lookup Helpers
===================================================

What:  Shared plumbing for the department-location filters: finding the
       department id a request refers to, loading the department, and the
       normalized location allow-list.
"""

from typing import Any, Iterable, Optional, Protocol, Sequence, Tuple

from campus.config import settings
from campus.pipeline.context import RequestContext

DEPARTMENT_ID_PARAMETERS: Tuple[str, ...] = ("deptId", "dept_id")


class DepartmentLookup(Protocol):
    async def find_by_id(self, model: Any, entity_id: Any) -> Any:
        ...


def normalize_location(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def allow_list(locations: Optional[Iterable[str]] = None) -> Tuple[str, ...]:
    """Normalized allow-list, defaulting to `settings.allowed_locations`."""
    if locations is None:
        return tuple(settings.allowed_locations_list)
    normalized = []
    for location in locations:
        value = normalize_location(location)
        if value and value not in normalized:
            normalized.append(value)
    return tuple(normalized)


def parse_department_id(raw: Any) -> Optional[int]:
    """Integer id from a route/query/body value; None when absent or non-numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


async def find_department_id(
    ctx: RequestContext,
    parameters: Sequence[str] = DEPARTMENT_ID_PARAMETERS,
    include_body: bool = True,
) -> Optional[int]:
    """
    The department id a request refers to.

    Looks in the route parameters, then the query string, then (optionally)
    the top level of a JSON object body. The first source that names one of
    `parameters` wins, even if its value is not numeric.
    """
    for source in (ctx.route_params, ctx.query_params):
        for name in parameters:
            if name in source:
                return parse_department_id(source[name])

    if include_body:
        body = await ctx.json_body()
        if isinstance(body, dict):
            for name in parameters:
                if name in body:
                    return parse_department_id(body[name])
    return None
