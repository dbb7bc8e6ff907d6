"""
Campus Portal Backend — Pipeline Filters
==========================================

Concrete resource, authorization, action and result filters.
"""

from campus.filters.action import DepartmentLocationActionFilter, ValidateDepartmentLocationFilter
from campus.filters.authorization import (
    DEPARTMENT_ITEM,
    DepartmentLocationGate,
    RoleAuthorizationFilter,
    UrlSuffixGate,
)
from campus.filters.resource import ApiVersionFilter, RequestSizeLimitFilter
from campus.filters.result import CacheControlFilter, CustomHeaderFilter

__all__ = [
    "ApiVersionFilter",
    "CacheControlFilter",
    "CustomHeaderFilter",
    "DEPARTMENT_ITEM",
    "DepartmentLocationActionFilter",
    "DepartmentLocationGate",
    "RequestSizeLimitFilter",
    "RoleAuthorizationFilter",
    "UrlSuffixGate",
    "ValidateDepartmentLocationFilter",
]
