"""
Drone Routes Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for the different failure scenarios.
Why:   Typed failures let the global handlers in main.py pick the HTTP status
       code while services stay free of HTTP concerns.
How:   Each exception carries a user-facing message and an optional context
       dict. The context is logged server-side and never returned verbatim.

Exception Hierarchy:
    DroneRoutesError (base)
    ├── ValidationError     → 400 Bad Request (client can fix)
    ├── CsvParseError       → 400 Bad Request (CSV structure violation)
    ├── NotFoundError       → 404 Not Found
    ├── ConflictError       → 409 Conflict (duplicate unique field)
    ├── StorageError        → 500 Internal Server Error (object store)
    └── DatabaseError       → 500 Internal Server Error

Note that a StorageError raised for a single photo during an upload batch
never reaches the handlers: the route service records it and keeps going.
"""

from typing import Any, Dict, Optional


class DroneRoutesError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DroneRoutesError):
    """
    Raised when client input fails validation.

    When:    Missing CSV, CSV that yields no points, no photos supplied,
             out-of-range drone attributes, deleting a drone that still
             has routes.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class CsvParseError(DroneRoutesError):
    """
    Raised by the CSV parser on a structural violation.

    What:    Header mismatch (count or name/order) or an unreadable byte stream.
    HTTP:    400 Bad Request. The route service re-raises it as a
             ValidationError prefixed with "CSV parsing failed:".

    Attributes:
        column:  1-based index of the first offending header column, if any
    """

    def __init__(
        self,
        message: str = "CSV could not be parsed",
        column: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if column is not None:
            ctx["column"] = column
        super().__init__(message=message, context=ctx)
        self.column = column


class NotFoundError(DroneRoutesError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown route id, unknown drone reference.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(DroneRoutesError):
    """
    Raised when a write would violate a unique field.

    When:    Creating a drone whose drone_id or serial_number already exists.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        field: str,
        value: Any,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"field": field, "value": value})
        super().__init__(message=f"{field} already exists: {value}", context=ctx)
        self.field = field


class StorageError(DroneRoutesError):
    """
    Raised when an object store operation fails.

    What:    put/stat/presign failed, timed out, or the object is missing
             where it was expected to exist.
    HTTP:    500 Internal Server Error (only when it escapes a request)

    Recovery:
        Callers must not assume a failed put left a visible partial object.
        Re-uploading the same (route, file name) pair overwrites.
    """

    def __init__(
        self,
        message: str = "Object storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(DroneRoutesError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; details are
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
