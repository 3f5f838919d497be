"""
BranchRelay Backend — Custom Exception Hierarchy
==================================================

What:  Defines application-specific exceptions for each failure scenario.
Why:   Each failure maps to a distinct HTTP response (an upload failure and a
       sheet failure are reported differently), so the type carries the routing.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    BranchRelayError (base)
    ├── ConfigurationError       → raised before any provider call
    ├── ValidationError          → 400 Bad Request (missing required fields)
    ├── NotFoundError            → 404 Not Found
    ├── StorageError             → 500 Internal Server Error
    │   └── UploadError          → 500 "Failed to upload images to S3"
    └── SheetError               → 500 "Failed to append branch data to sheet"

Provider errors (botocore, googleapiclient) never cross a service boundary
unwrapped: they are chained as `__cause__` of one of the errors above so the
server log keeps the original traceback.
"""

from typing import Any, Dict, List, Optional


class BranchRelayError(Exception):
    """
    Base exception for all BranchRelay application errors.

    Attributes:
        message:  Human-readable error description (returned as `details`)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = dict(context or {})
        super().__init__(self.message)


class ConfigurationError(BranchRelayError):
    """
    Raised when required environment configuration is missing.

    When:    Checked eagerly by StorageService and SheetsService before they
             build a client, so no network call is ever attempted without
             credentials.
    """

    def __init__(
        self,
        missing: List[str],
        service: str = "application",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"Missing required {service} environment variables: {', '.join(missing)}"
        ctx = dict(context or {})
        ctx["missing"] = list(missing)
        super().__init__(message=message, context=ctx)
        self.missing = list(missing)
        self.service = service


class ValidationError(BranchRelayError):
    """
    Raised when a branch submission lacks required fields.

    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "Missing required fields",
            "required": ["branchId", "branchName", "latitude", "longitude"],
            "missing": ["latitude"]
        }
    """

    def __init__(
        self,
        required: List[str],
        missing: List[str],
        message: str = "Missing required fields",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        ctx["missing"] = list(missing)
        super().__init__(message=message, context=ctx)
        self.required = list(required)
        self.missing = list(missing)


class NotFoundError(BranchRelayError):
    """
    Raised when a requested resource does not exist.

    When:    Metadata lookup for an object key that is not in the bucket.
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
            message = f"{resource} '{resource_id}' was not found"
        ctx = dict(context or {})
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StorageError(BranchRelayError):
    """
    Raised when an object-store operation fails.

    What:    S3 listing or HEAD request failed (credentials, network, bucket).
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Object storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UploadError(StorageError):
    """
    Raised when one image could not be decoded or uploaded.

    What:    Tagged with the branch and role so the log line alone identifies
             which of the (up to three) concurrent uploads failed.
    HTTP:    500 with error "Failed to upload images to S3"
    """

    def __init__(
        self,
        role: str,
        branch_id: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"Failed to upload {role} for branch {branch_id} to S3: {reason}"
        ctx = dict(context or {})
        ctx.update({"role": role, "branch_id": branch_id})
        super().__init__(message=message, context=ctx)
        self.role = role
        self.branch_id = branch_id


class SheetError(BranchRelayError):
    """
    Raised when appending to the Google Sheet fails.

    What:    Credential construction or the values.append call failed.
    HTTP:    500 with error "Failed to append branch data to sheet"
    """

    def __init__(
        self,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=f"Failed to append to sheet: {reason}", context=context)
