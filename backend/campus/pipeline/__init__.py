"""
Campus Portal Backend — Request Pipeline Package
==================================================

What:  Per-route filter composition: context, stage results, filter
       contracts, the pipeline runner and the FastAPI routing glue.
"""

from campus.pipeline.base import (
    ActionFilter,
    AuthorizationFilter,
    ResourceFilter,
    ResultFilter,
    StageOutcome,
    pop_timer,
    push_timer,
    set_header,
)
from campus.pipeline.context import RequestContext, ResponseState
from campus.pipeline.pipeline import FilterPipeline
from campus.pipeline.results import CONTINUE, Continue, Failure, PipelineResult, ShortCircuit
from campus.pipeline.routing import FilteredRoute, FilteredRouter, filtered_route_class

__all__ = [
    "ActionFilter",
    "AuthorizationFilter",
    "CONTINUE",
    "Continue",
    "Failure",
    "FilterPipeline",
    "FilteredRoute",
    "FilteredRouter",
    "PipelineResult",
    "RequestContext",
    "ResourceFilter",
    "ResponseState",
    "ResultFilter",
    "ShortCircuit",
    "StageOutcome",
    "filtered_route_class",
    "pop_timer",
    "push_timer",
    "set_header",
]
