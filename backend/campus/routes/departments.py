"""
Campus Portal Backend — Department API Routes
===============================================

What:  JSON API over departments.
How:   Reads are open. Writes require the Admin role; create and update also
       pass the body through ValidateDepartmentLocationFilter, so a location
       outside the allow-list is rejected with 400 before the handler runs.
"""

from typing import List

from fastapi import Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus.database import get_db_session
from campus.filters import (
    RequestSizeLimitFilter,
    RoleAuthorizationFilter,
    ValidateDepartmentLocationFilter,
)
from campus.pipeline import FilteredRouter, FilterPipeline
from campus.responses import JSON_CHANNEL
from campus.schemas.common import MessageResponse
from campus.schemas.department import DepartmentCreate, DepartmentResponse, DepartmentUpdate
from campus.services.department_service import department_service

ADMIN_ROLE = "Admin"

router = FilteredRouter(
    prefix="/api/departments",
    tags=["Departments"],
    pipeline=FilterPipeline(resource=[RequestSizeLimitFilter()], error_channel=JSON_CHANNEL),
)

_admin_write = FilterPipeline(
    authorization=[RoleAuthorizationFilter([ADMIN_ROLE])],
    action=[ValidateDepartmentLocationFilter()],
)


@router.get("", response_model=List[DepartmentResponse], summary="List departments")
async def list_departments(db: AsyncSession = Depends(get_db_session)) -> List[DepartmentResponse]:
    return await department_service.list_departments(db)


@router.get("/{dept_id}", response_model=DepartmentResponse, summary="Get one department")
async def get_department(
    dept_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> DepartmentResponse:
    return await department_service.get_department(db, dept_id)


@router.filtered(
    "",
    methods=["POST"],
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a department (Admin)",
    pipeline=_admin_write,
)
async def create_department(
    payload: DepartmentCreate,
    db: AsyncSession = Depends(get_db_session),
) -> DepartmentResponse:
    return await department_service.create_department(db, payload)


@router.filtered(
    "/{dept_id}",
    methods=["PUT"],
    response_model=DepartmentResponse,
    summary="Update a department (Admin)",
    pipeline=_admin_write,
)
async def update_department(
    dept_id: int,
    payload: DepartmentUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> DepartmentResponse:
    return await department_service.update_department(db, dept_id, payload)


@router.filtered(
    "/{dept_id}",
    methods=["DELETE"],
    response_model=MessageResponse,
    summary="Delete a department (Admin)",
    pipeline=FilterPipeline(authorization=[RoleAuthorizationFilter([ADMIN_ROLE])]),
)
async def delete_department(
    dept_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await department_service.delete_department(db, dept_id)
    return MessageResponse(message="Department deleted successfully")
