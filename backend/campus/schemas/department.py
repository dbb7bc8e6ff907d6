"""
Campus Portal Backend — Department Schemas
============================================

What:  Request/response contracts for /api/departments.
How:   Location policy is NOT validated here; the
       ValidateDepartmentLocationFilter checks it against the configured
       allow-list before the handler runs.
"""

from typing import Optional

from pydantic import BaseModel, Field


class DepartmentBase(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    pc_numbers: Optional[int] = Field(default=None, ge=0)
    manager_name: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=100)


class DepartmentCreate(DepartmentBase):
    name: str = Field(min_length=1, max_length=100, description="Department name")


class DepartmentUpdate(DepartmentBase):
    """Partial update: only fields present in the request body change."""


class DepartmentResponse(DepartmentBase):
    id: int = Field(description="Department identifier")

    model_config = {"from_attributes": True}
