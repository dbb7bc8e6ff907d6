"""
Campus Portal Backend — Filtered Routing
==========================================

What:  FastAPI route and router classes that run a `FilterPipeline` around
       each endpoint.
How:   `FilteredRoute` overrides `get_route_handler()`: FastAPI's own handler
       (parameter binding, validation, serialization) becomes the innermost
       step of the pipeline. The pipeline is a class attribute because
       `APIRoute.__init__` builds the handler before instance attributes
       could be set, so each registration gets a generated subclass.
Who:   Route modules create a `FilteredRouter` with router-level filters and
       register endpoints through `router.filtered(...)`.

Example:
    router = FilteredRouter(prefix="/api/courses",
                            pipeline=FilterPipeline(resource=[RequestSizeLimitFilter()]))

    @router.filtered("/{course_id}", methods=["GET"],
                     pipeline=FilterPipeline(authorization=[DepartmentLocationGate()]))
    async def get_course(course_id: int): ...
"""

from typing import Any, Callable, Optional, Sequence, Type

from fastapi import APIRouter
from fastapi.routing import APIRoute
from starlette.requests import Request
from starlette.responses import Response

from campus.pipeline.context import RequestContext
from campus.pipeline.pipeline import FilterPipeline


class FilteredRoute(APIRoute):
    pipeline: FilterPipeline = FilterPipeline()

    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()
        pipeline = self.pipeline
        operation = self.name

        async def filtered_route_handler(request: Request) -> Response:
            ctx = RequestContext.from_request(request, operation=operation)
            # Handlers reach filter results (e.g. the resolved department) here
            request.state.pipeline_context = ctx
            return await pipeline.run(ctx, lambda _ctx: original_route_handler(request))

        return filtered_route_handler


def filtered_route_class(pipeline: FilterPipeline) -> Type[FilteredRoute]:
    return type("FilteredRoute", (FilteredRoute,), {"pipeline": pipeline})


class FilteredRouter(APIRouter):
    """
    APIRouter whose routes run through a filter pipeline.

    Routes added with the plain decorators (`@router.get`) get the
    router-level pipeline; `router.filtered()` appends route-level filters
    inside it.
    """

    def __init__(self, *args: Any, pipeline: Optional[FilterPipeline] = None, **kwargs: Any):
        self.pipeline = pipeline or FilterPipeline()
        kwargs.setdefault("route_class", filtered_route_class(self.pipeline))
        super().__init__(*args, **kwargs)

    def filtered(
        self,
        path: str,
        *,
        methods: Sequence[str],
        pipeline: Optional[FilterPipeline] = None,
        **kwargs: Any,
    ) -> Callable:
        route_class = filtered_route_class(self.pipeline.merged_with(pipeline))

        def decorator(func: Callable) -> Callable:
            self.add_api_route(
                path,
                func,
                methods=list(methods),
                route_class_override=route_class,
                **kwargs,
            )
            return func

        return decorator
