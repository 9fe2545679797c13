"""
CoupleJournal Backend - Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching HTTP status.
Who:   Raised by services and the auth guard; caught by global handlers.

Exception Hierarchy:
    CoupleJournalError (base)
    ├── ValidationError              → 400 Bad Request
    │   ├── ConflictError            → 400 (duplicate username / email)
    │   ├── UnsupportedMediaTypeError→ 400 (upload MIME type not allowed)
    │   └── PayloadTooLargeError     → 400 (upload exceeds size limit)
    ├── UnauthorizedError            → 401 Unauthorized
    ├── ForbiddenError               → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── FileStorageError             → 500 Internal Server Error
    └── DatabaseError                → 500 Internal Server Error

Upload violations answer 400 rather than 413/415: the mobile client only
distinguishes 400 and 401 and shows `message` to the user.
"""

from typing import Any, Dict, Optional


class CoupleJournalError(Exception):
    """
    Base exception for all CoupleJournal application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only echoed for 4xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CoupleJournalError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request
    When:    Missing fields, short password, blank comment, unknown entry type,
             bad credentials at login.

    `error_code` is the machine-stable value of the response's "error" field;
    subclasses override it so clients can tell the 400s apart.
    """

    error_code = "validation_error"

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


class ConflictError(ValidationError):
    """Raised when a unique user attribute (username, email) is already taken."""

    error_code = "conflict"

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"{field.capitalize()} already exists",
            field=field,
        )


class UnsupportedMediaTypeError(ValidationError):
    """Raised when an upload is not an image, video or audio file."""

    error_code = "unsupported_media_type"

    def __init__(self, content_type: Optional[str]):
        super().__init__(
            message="Only images, videos, and audio files are allowed!",
            field="file",
            context={"content_type": content_type},
        )


class PayloadTooLargeError(ValidationError):
    """Raised when an upload exceeds the configured maximum size."""

    error_code = "payload_too_large"

    def __init__(self, max_size: int):
        super().__init__(
            message="File too large",
            field="file",
            context={"max_size_bytes": max_size},
        )
        self.max_size = max_size


class UnauthorizedError(CoupleJournalError):
    """
    Raised by the auth guard.

    HTTP:    401 Unauthorized
    When:    Missing, malformed, invalid or expired bearer token; token subject
             unknown or deactivated. The client clears its stored credentials
             and returns to the login screen on this status.
    """

    def __init__(
        self,
        message: str = "Please authenticate.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(CoupleJournalError):
    """
    Raised when an authenticated user may not mutate a resource.

    HTTP:    403 Forbidden
    When:    Deleting someone else's entry, or a comment that is neither the
             requester's nor on the requester's entry.
    """

    def __init__(
        self,
        message: str = "Not authorized to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CoupleJournalError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    When:    Entry or comment id unknown (or not a valid id at all).
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(CoupleJournalError):
    """
    Raised when file system operations fail.

    HTTP:    500 Internal Server Error
    When:    Disk full, permission denied, upload directory not writable.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(CoupleJournalError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info (SQL, constraint names) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
