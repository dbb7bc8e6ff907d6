"""
Campus Portal Backend — Department Service
============================================

What:  Department CRUD plus the counts shown on the admin portal.
Who:   Called by the department and admin portal routes.

Location policy is enforced by the pipeline (ValidateDepartmentLocationFilter)
before these methods run; the service stores what it is given.
"""

import logging
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from campus.exceptions import NotFoundError
from campus.models.course import Course
from campus.models.department import Department
from campus.repositories.repository import Repository
from campus.schemas.department import DepartmentCreate, DepartmentResponse, DepartmentUpdate

logger = logging.getLogger(__name__)


class DepartmentService:
    async def list_departments(self, db: AsyncSession) -> List[DepartmentResponse]:
        departments = await Repository(db).query(Department, order_by=Department.id)
        return [DepartmentResponse.model_validate(d) for d in departments]

    async def get_department(self, db: AsyncSession, dept_id: int) -> DepartmentResponse:
        department = await Repository(db).find_by_id(Department, dept_id)
        if department is None:
            raise NotFoundError(resource="Department", resource_id=dept_id)
        return DepartmentResponse.model_validate(department)

    async def create_department(self, db: AsyncSession, payload: DepartmentCreate) -> DepartmentResponse:
        department = await Repository(db).save(Department(**payload.model_dump()))
        logger.info("Department %s created (%s)", department.id, department.location)
        return DepartmentResponse.model_validate(department)

    async def update_department(
        self, db: AsyncSession, dept_id: int, payload: DepartmentUpdate
    ) -> DepartmentResponse:
        repo = Repository(db)
        department = await repo.find_by_id(Department, dept_id)
        if department is None:
            raise NotFoundError(resource="Department", resource_id=dept_id)

        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(department, field, value)
        department = await repo.save(department)
        logger.info("Department %s updated", dept_id)
        return DepartmentResponse.model_validate(department)

    async def delete_department(self, db: AsyncSession, dept_id: int) -> None:
        repo = Repository(db)
        department = await repo.find_by_id(Department, dept_id)
        if department is None:
            raise NotFoundError(resource="Department", resource_id=dept_id)
        await repo.delete(department)
        logger.info("Department %s deleted", dept_id)

    async def dashboard_counts(self, db: AsyncSession) -> Dict[str, int]:
        repo = Repository(db)
        return {
            "departments": await repo.count(Department),
            "courses": await repo.count(Course),
        }


# ── Singleton Instance ────────────────────────────────────────────────────
department_service = DepartmentService()
