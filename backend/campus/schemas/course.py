"""
Campus Portal Backend — Course Schemas
========================================

What:  Request/response contracts for /api/courses.
Who:   Used by the course routes for body validation and serialization.

The wire format uses the camelCase names the portal's API clients already
send (`minDegree`, `deptId`); Python code uses snake_case through aliases.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CourseBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=100, description="Course name")
    topic: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    degree: float = Field(description="Maximum degree")
    min_degree: float = Field(alias="minDegree", description="Minimum passing degree")
    dept_id: int = Field(alias="deptId", description="Owning department")


class CourseCreate(CourseBase):
    pass


class CourseUpdate(BaseModel):
    """Partial update: only fields present in the request body change."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    topic: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    degree: Optional[float] = None
    min_degree: Optional[float] = Field(default=None, alias="minDegree")
    dept_id: Optional[int] = Field(default=None, alias="deptId")


class CourseResponse(CourseBase):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int = Field(description="Course identifier")


class CourseListResponse(BaseModel):
    courses: List[CourseResponse]
    total_count: int
