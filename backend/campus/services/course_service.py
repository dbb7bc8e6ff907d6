"""
Campus Portal Backend — Course Service
========================================

What:  Course CRUD behind the /api/courses routes.
How:   Stateless; every call receives the request's session and goes through
       the generic Repository. Missing rows become NotFoundError (404 at the
       exception boundary); database failures arrive as DatabaseError.
Who:   Called by route handlers, which run inside the filter pipeline.
"""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from campus.exceptions import NotFoundError, ValidationError
from campus.models.course import Course
from campus.models.department import Department
from campus.repositories.repository import Repository
from campus.schemas.course import CourseCreate, CourseResponse, CourseUpdate

logger = logging.getLogger(__name__)


class CourseService:
    """
    Business logic layer for course operations.

    Responsibilities:
        - list_courses() / courses_for_department(): read-only listings
        - get_course(): single course with not-found handling
        - create/update/delete: writes, flushed; committed by get_db_session
    """

    async def list_courses(self, db: AsyncSession) -> List[CourseResponse]:
        courses = await Repository(db).query(Course, order_by=Course.id)
        return [CourseResponse.model_validate(course) for course in courses]

    async def courses_for_department(self, db: AsyncSession, dept_id: int) -> List[CourseResponse]:
        courses = await Repository(db).query(Course, Course.dept_id == dept_id, order_by=Course.id)
        return [CourseResponse.model_validate(course) for course in courses]

    async def get_course(self, db: AsyncSession, course_id: int) -> CourseResponse:
        course = await Repository(db).find_by_id(Course, course_id)
        if course is None:
            raise NotFoundError(resource="Course", resource_id=course_id)
        return CourseResponse.model_validate(course)

    async def create_course(self, db: AsyncSession, payload: CourseCreate) -> CourseResponse:
        repo = Repository(db)
        await self._require_department(repo, payload.dept_id)

        course = Course(**payload.model_dump())
        course = await repo.save(course)
        logger.info("Course %s created in department %s", course.id, course.dept_id)
        return CourseResponse.model_validate(course)

    async def update_course(
        self, db: AsyncSession, course_id: int, payload: CourseUpdate
    ) -> CourseResponse:
        repo = Repository(db)
        course = await repo.find_by_id(Course, course_id)
        if course is None:
            raise NotFoundError(resource="Course", resource_id=course_id)

        changes = payload.model_dump(exclude_unset=True)
        if "dept_id" in changes:
            await self._require_department(repo, changes["dept_id"])
        for field, value in changes.items():
            setattr(course, field, value)

        course = await repo.save(course)
        logger.info("Course %s updated (%s)", course_id, ", ".join(sorted(changes)) or "no changes")
        return CourseResponse.model_validate(course)

    async def delete_course(self, db: AsyncSession, course_id: int) -> None:
        repo = Repository(db)
        course = await repo.find_by_id(Course, course_id)
        if course is None:
            raise NotFoundError(resource="Course", resource_id=course_id)
        await repo.delete(course)
        logger.info("Course %s deleted", course_id)

    @staticmethod
    async def _require_department(repo: Repository, dept_id: int) -> None:
        if not await repo.exists(Department, dept_id):
            raise ValidationError(
                message=f"Department {dept_id} does not exist",
                field="deptId",
            )


# ── Singleton Instance ────────────────────────────────────────────────────
course_service = CourseService()
