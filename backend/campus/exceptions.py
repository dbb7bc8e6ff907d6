"""
Campus Portal Backend — Errors and Their Classification
=========================================================

What:  The portal's exception types and `classify_exception()`, which the
       exception boundary uses to turn any exception into a status code and
       a message that is safe to put in front of a client.
Who:   Raised by services, repositories and notification senders.

Categories:
    CampusError (base, unclassified → 500)
    ├── AccessDeniedError   → 403 unauthorized
    ├── NotFoundError       → 404 not_found
    ├── ValidationError     → 400 bad_input
    ├── DatabaseError       → 500 upstream_failure
    └── NotificationError   → 500 upstream_failure

    Builtins land in the same buckets: PermissionError is unauthorized,
    KeyError not_found, ValueError bad_input, SQLAlchemyError and
    httpx.HTTPError upstream_failure. Everything else stays unclassified.

An ordinary denial is not an exception: filters return a ShortCircuit. These
types are for faults raised while the handler or an after-hook runs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError


class ErrorCategory(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    BAD_INPUT = "bad_input"
    UPSTREAM_FAILURE = "upstream_failure"
    UNCLASSIFIED = "unclassified"


class CampusError(Exception):
    """
    Base of every portal error.

    `message` may reach the client (see classify_exception); `context` is for
    the server log only. Subclasses set the category, the status and a
    `default_message` used when none is passed.
    """

    category: ErrorCategory = ErrorCategory.UNCLASSIFIED
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.context = dict(context or {})
        super().__init__(self.message)


class AccessDeniedError(CampusError):
    """Caller lacks a role or the target lacks a required attribute."""

    category = ErrorCategory.UNAUTHORIZED
    status_code = 403
    default_message = "You don't have permission to access this resource."


class NotFoundError(CampusError):
    """
    A row looked up by id does not exist.

    Repositories return None for missing rows; services turn that None into
    this error, naming the resource and the id in the message.
    """

    category = ErrorCategory.NOT_FOUND
    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        details = {"resource": resource, **(context or {})}
        if resource_id is None:
            text = f"The requested {resource} was not found"
        else:
            text = f"{resource} with ID '{resource_id}' was not found"
            details["resource_id"] = resource_id
        super().__init__(text, details)


class ValidationError(CampusError):
    """Client input violates a rule; the wording is shown in development only."""

    category = ErrorCategory.BAD_INPUT
    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        details = dict(context or {})
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class DatabaseError(CampusError):
    """
    A query or flush failed. The message stays generic outside development;
    SQL and constraint names are only logged.
    """

    category = ErrorCategory.UPSTREAM_FAILURE
    default_message = "A database error occurred. Please try again later."


class NotificationError(CampusError):
    """An outbound email or WhatsApp call failed hard."""

    category = ErrorCategory.UPSTREAM_FAILURE
    default_message = "The notification service is temporarily unavailable."


# ══════════════════════════════════════════════════════════════════════════
# Classification
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ErrorClassification:
    """Status, title and client-safe message for one caught exception."""

    category: ErrorCategory
    status_code: int
    title: str
    message: str


_TITLES = {
    ErrorCategory.UNAUTHORIZED: "Access Denied",
    ErrorCategory.NOT_FOUND: "Not Found",
    ErrorCategory.BAD_INPUT: "Bad Request",
    ErrorCategory.UPSTREAM_FAILURE: "Service Error",
    ErrorCategory.UNCLASSIFIED: "Error",
}

_SAFE_MESSAGES = {
    ErrorCategory.UNAUTHORIZED: "You don't have permission to access this resource.",
    ErrorCategory.NOT_FOUND: "The requested resource was not found.",
    ErrorCategory.BAD_INPUT: "Invalid request parameters.",
    ErrorCategory.UPSTREAM_FAILURE: "A database error occurred. Please try again later.",
    ErrorCategory.UNCLASSIFIED: "An unexpected error occurred. Please try again later.",
}


def _category_for(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, CampusError):
        return exc.category
    if isinstance(exc, PermissionError):
        return ErrorCategory.UNAUTHORIZED
    if isinstance(exc, KeyError):
        return ErrorCategory.NOT_FOUND
    if isinstance(exc, (SQLAlchemyError, httpx.HTTPError)):
        return ErrorCategory.UPSTREAM_FAILURE
    if isinstance(exc, ValueError):
        return ErrorCategory.BAD_INPUT
    return ErrorCategory.UNCLASSIFIED


_STATUS = {
    ErrorCategory.UNAUTHORIZED: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.BAD_INPUT: 400,
    ErrorCategory.UPSTREAM_FAILURE: 500,
    ErrorCategory.UNCLASSIFIED: 500,
}


def classify_exception(exc: BaseException, development: bool = False) -> ErrorClassification:
    """
    Map an exception to its category, status code and client-safe message.

    Message policy:
        - unauthorized / not_found: our own messages are safe to show as-is;
          builtin exceptions get the fixed category message.
        - bad_input / upstream_failure: detail only in development.
        - unclassified: "<Type>: <message>" in development, generic otherwise.
    """
    category = _category_for(exc)
    message = _SAFE_MESSAGES[category]
    detail = str(exc)

    if category in (ErrorCategory.UNAUTHORIZED, ErrorCategory.NOT_FOUND):
        if isinstance(exc, CampusError):
            message = exc.message
    elif category is ErrorCategory.UNCLASSIFIED:
        if development:
            message = f"{type(exc).__name__}: {detail}"
    elif development and detail:
        message = detail
    elif category is ErrorCategory.UPSTREAM_FAILURE:
        if isinstance(exc, CampusError):
            message = exc.message
        elif isinstance(exc, httpx.HTTPError):
            message = "An upstream service is unavailable. Please try again later."

    return ErrorClassification(
        category=category,
        status_code=_STATUS[category],
        title=_TITLES[category],
        message=message,
    )
