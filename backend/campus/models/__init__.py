# Importing both models registers them on Base.metadata and resolves relationships
from campus.models.course import Course
from campus.models.department import Department

__all__ = ["Course", "Department"]
