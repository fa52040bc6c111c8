"""
Fieldbook Backend — Custom Exception Hierarchy
================================================

What:  Defines the error taxonomy of the record service.
How:   Each exception class carries a client-safe message, an optional context
       dict, and the HTTP status it maps to. Global exception handlers
       (registered in main.py) turn them into `{"error": message}` responses.
Who:   Raised by the locator, the shape merger, the file-backed source, and
       the framework error adapters; caught by global handlers.

Exception Hierarchy:
    FieldbookError (base)
    ├── BadRequestError          → 400 Bad Request (missing/invalid input)
    ├── NotFoundError            → 404 Not Found (nothing visible to this viewer)
    ├── CorruptRecordError       → 500 Internal Server Error (document won't decode)
    ├── StoreUnavailableError    → 500 Internal Server Error (store operation failed)
    └── MethodNotAllowedError    → 405 Method Not Allowed (+ Allow header)

None of these are retried by the service.
"""

from typing import Any, Dict, Iterable, Optional


class FieldbookError(Exception):
    """
    Base exception for all Fieldbook application errors.

    Attributes:
        message:  Client-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class BadRequestError(FieldbookError):
    """
    Raised when the request is missing a required parameter or carries an
    invalid one.

    When:    Blank slug, missing owner identity for file-backed records,
             a record path that escapes the storage root.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Bad request",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(FieldbookError):
    """
    Raised when no record is visible under the visibility rules.

    A private record requested anonymously is reported exactly like a record
    that does not exist, so the response never reveals that it exists.

    HTTP:    404 Not Found
    """

    status_code = 404

    def __init__(
        self,
        message: str = "Record not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CorruptRecordError(FieldbookError):
    """
    Raised when a stored document cannot be decoded into a mapping.

    What:    The `json` column (or a JSON file) holds invalid JSON, a JSON value
             that is not an object, or a value of an unsupported type.
    HTTP:    500 Internal Server Error

    The decode error is kept in `context["reason"]` for the server log.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Failed to read record",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(FieldbookError):
    """
    Raised when the underlying record store operation fails for any reason.

    When:    Connection refused, pool timeout, query error, unreadable file.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always the short per-kind
        message. The original error type is logged server-side only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Failed to read record",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MethodNotAllowedError(FieldbookError):
    """
    Raised when a route exists for the path but not for the request method.

    HTTP:    405 Method Not Allowed, with an `Allow` header listing the
             methods the route does support.
    """

    status_code = 405

    def __init__(
        self,
        method: str,
        allowed: Iterable[str] = ("GET",),
        context: Optional[Dict[str, Any]] = None,
    ):
        self.method = method.upper()
        self.allowed = sorted({m.upper() for m in allowed})
        ctx = context or {}
        ctx["allowed"] = self.allowed
        super().__init__(message=f"Method {self.method} Not Allowed", context=ctx)

    @property
    def allow_header(self) -> str:
        return ", ".join(self.allowed)
