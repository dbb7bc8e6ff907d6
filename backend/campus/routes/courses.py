"""
Campus Portal Backend — Course API Routes
===========================================

What:  JSON API over courses, each route wrapped in its filter pipeline.
Who:   API clients of the portal.

Router-level filters (every route below):
    resource: RequestSizeLimitFilter, ApiVersionFilter
    errors:   JSON channel

Route-level filters:
    GET    /api/courses                      cache 300s, X-API-Endpoint
    GET    /api/courses/department/{id}      location gate, cache 180s
    GET    /api/courses/test-authorization   location gate
    GET    /api/courses/test-exception       raises, answered by the exception boundary
    GET    /api/courses/{course_id}?deptId=  location gate, action timing
    POST   /api/courses                      X-API-Endpoint
    PUT    /api/courses/{course_id}          action timing
    DELETE /api/courses/{course_id}          X-API-Endpoint
"""

import logging
from typing import Optional

from fastapi import Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus.database import get_db_session
from campus.filters import (
    DEPARTMENT_ITEM,
    ApiVersionFilter,
    CacheControlFilter,
    CustomHeaderFilter,
    DepartmentLocationActionFilter,
    DepartmentLocationGate,
    RequestSizeLimitFilter,
)
from campus.pipeline import FilteredRouter, FilterPipeline
from campus.responses import JSON_CHANNEL
from campus.schemas.common import MessageResponse
from campus.schemas.course import CourseCreate, CourseListResponse, CourseResponse, CourseUpdate
from campus.schemas.department import DepartmentResponse
from campus.services.course_service import course_service

logger = logging.getLogger(__name__)

router = FilteredRouter(
    prefix="/api/courses",
    tags=["Courses"],
    pipeline=FilterPipeline(
        resource=[RequestSizeLimitFilter(), ApiVersionFilter()],
        error_channel=JSON_CHANNEL,
    ),
)


def endpoint_header(name: str) -> CustomHeaderFilter:
    return CustomHeaderFilter({"X-API-Endpoint": name})


@router.filtered(
    "",
    methods=["GET"],
    response_model=CourseListResponse,
    summary="List all courses",
    pipeline=FilterPipeline(result=[CacheControlFilter(300), endpoint_header("GetAllCourses")]),
)
async def list_courses(db: AsyncSession = Depends(get_db_session)) -> CourseListResponse:
    logger.info("API: Getting all courses")
    courses = await course_service.list_courses(db)
    return CourseListResponse(courses=courses, total_count=len(courses))


@router.filtered(
    "/department/{dept_id}",
    methods=["GET"],
    response_model=CourseListResponse,
    summary="List the courses of one department (location-gated)",
    pipeline=FilterPipeline(
        authorization=[DepartmentLocationGate()],
        result=[CacheControlFilter(180), endpoint_header("GetCoursesByDepartment")],
    ),
)
async def list_courses_for_department(
    dept_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> CourseListResponse:
    courses = await course_service.courses_for_department(db, dept_id)
    return CourseListResponse(courses=courses, total_count=len(courses))


@router.filtered(
    "/test-authorization",
    methods=["GET"],
    summary="Location gate probe",
    pipeline=FilterPipeline(authorization=[DepartmentLocationGate()]),
)
async def test_authorization(request: Request, dept_id: int = Query(alias="deptId")) -> dict:
    # The gate already loaded the department for this request
    department = request.state.pipeline_context.items[DEPARTMENT_ITEM]
    return {
        "message": "Authorization passed!",
        "department": DepartmentResponse.model_validate(department).model_dump(),
    }


@router.filtered("/test-exception", methods=["GET"], summary="Always fails")
async def test_exception() -> dict:
    raise RuntimeError("This is a test exception to demonstrate the exception boundary")


@router.filtered(
    "/{course_id}",
    methods=["GET"],
    response_model=CourseResponse,
    summary="Get one course (location-gated on deptId)",
    pipeline=FilterPipeline(
        authorization=[DepartmentLocationGate()],
        action=[DepartmentLocationActionFilter()],
        result=[endpoint_header("GetCourse")],
    ),
)
async def get_course(
    course_id: int,
    dept_id: Optional[int] = Query(default=None, alias="deptId"),
    db: AsyncSession = Depends(get_db_session),
) -> CourseResponse:
    logger.info("API: Getting course %s", course_id)
    return await course_service.get_course(db, course_id)


@router.filtered(
    "",
    methods=["POST"],
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a course",
    pipeline=FilterPipeline(result=[endpoint_header("CreateCourse")]),
)
async def create_course(
    payload: CourseCreate,
    db: AsyncSession = Depends(get_db_session),
) -> CourseResponse:
    course = await course_service.create_course(db, payload)
    logger.info("API: Created course %s", course.name)
    return course


@router.filtered(
    "/{course_id}",
    methods=["PUT"],
    response_model=CourseResponse,
    summary="Update a course",
    pipeline=FilterPipeline(
        action=[DepartmentLocationActionFilter()],
        result=[endpoint_header("UpdateCourse")],
    ),
)
async def update_course(
    course_id: int,
    payload: CourseUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> CourseResponse:
    return await course_service.update_course(db, course_id, payload)


@router.filtered(
    "/{course_id}",
    methods=["DELETE"],
    response_model=MessageResponse,
    summary="Delete a course",
    pipeline=FilterPipeline(result=[endpoint_header("DeleteCourse")]),
)
async def delete_course(
    course_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await course_service.delete_course(db, course_id)
    return MessageResponse(message="Course deleted successfully")
