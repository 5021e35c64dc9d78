"""
Chirpline Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and routes; caught by global handlers.

Exception Hierarchy:
    ChirplineError (base)
    ├── ValidationError          → 422 Unprocessable Entity
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class ChirplineError(Exception):
    """
    Base exception for all Chirpline application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Debug info for the server log. Only ValidationError
                  returns it to the client, as the per-field errors.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ChirplineError):
    """
    Raised when a write fails one or more field rules.

    What:    The client sent attributes that cannot be persisted as given.
    When:    Blank tweet, content over the length limit, unsupported or
             oversized media, a like/bookmark for a tweet that does not exist.
    HTTP:    422 Unprocessable Entity

    Example response:
        {
            "error": "validation_error",
            "message": "Validation failed: Media is not a supported media type",
            "details": {"errors": {"media": ["is not a supported media type"]}}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, List[str]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors = errors or {}
        ctx = context or {}
        if self.errors:
            ctx["errors"] = self.errors
        super().__init__(message=message, context=ctx)


class NotFoundError(ChirplineError):
    """
    Raised when a requested resource does not exist.

    When:    /tweets/{id} for an id with no row.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing records; the service layer converts
    that None into this exception.
    """

    def __init__(
        self,
        resource: str = "Tweet",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=f"{resource} not found", context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class FileStorageError(ChirplineError):
    """Media could not be written to the storage root (→ 500)."""

    def __init__(self, message: str = "Media storage failed", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class DatabaseError(ChirplineError):
    """
    A query or flush failed underneath a service call (→ 500).

    Clients only ever see a generic message; the SQLAlchemy error type and
    ids go into `context` for the server log.
    """

    def __init__(self, message: str = "Database operation failed", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)
