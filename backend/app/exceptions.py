"""
RemitDesk - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Workflow services do not raise these across component boundaries: they
return them inside a TransitionResult, and only the HTTP layer raises the
carried error so the global handler can render it.

Usage:
    from app.exceptions import NotFoundError, MissingReasonError

    raise NotFoundError("Order", order_id)
    return TransitionResult.failure(MissingReasonError(action="cancel"))
"""
from typing import Any, Dict, List, Optional


class RemitDeskException(Exception):
    """
    Base exception for all RemitDesk errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "INVALID_TRANSITION")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "REMITDESK_ERROR"
    status_code: int = 500
    headers: Optional[Dict[str, str]] = None

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(RemitDeskException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class MissingReasonError(ValidationError):
    """Cancel / reject without a usable reason."""

    error_code = "MISSING_REASON"

    def __init__(self, *, action: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        if action:
            details["action"] = action
        super().__init__("A reason is required for this action", field="reason", details=details)


class MissingTrackingInfoError(ValidationError):
    """Dispatch without tracking information."""

    error_code = "MISSING_TRACKING_INFO"

    def __init__(self, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Tracking information is required to dispatch",
            field="tracking_info",
            details=details,
        )


class MissingProofError(ValidationError):
    """Delivery (or payment) confirmation without a proof image."""

    error_code = "MISSING_PROOF"

    def __init__(self, proof: str = "delivery", *, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details["proof"] = proof
        super().__init__(
            f"A {proof} proof image is required for this action",
            field=f"{proof}_proof",
            details=details,
        )


class InvalidFileTypeError(ValidationError):
    """Uploaded proof is not an accepted image type."""

    error_code = "INVALID_FILE_TYPE"
    status_code = 415

    def __init__(
        self,
        content_type: Optional[str],
        *,
        allowed: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if allowed:
            details["allowed_types"] = allowed
        super().__init__(
            f"File type '{content_type or 'unknown'}' is not an accepted image type",
            field="file",
            value=content_type,
            details=details,
        )


class FileTooLargeError(ValidationError):
    """Uploaded proof exceeds the size ceiling."""

    error_code = "FILE_TOO_LARGE"
    status_code = 413

    def __init__(self, size: int, max_size: int, *, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details["size_bytes"] = size
        details["max_bytes"] = max_size
        super().__init__(
            f"File is {size} bytes; the limit is {max_size} bytes",
            field="file",
            details=details,
        )


# ===================
# 401 Unauthorized Errors
# ===================


class AuthenticationError(RemitDeskException):
    """Raised when authentication fails."""

    error_code = "AUTHENTICATION_ERROR"
    status_code = 401
    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(
        self,
        message: str = "Authentication required",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class InvalidCredentialsError(AuthenticationError):
    """Raised when credentials are invalid."""

    error_code = "INVALID_CREDENTIALS"

    def __init__(
        self,
        message: str = "Invalid email or password",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 403 Forbidden Errors
# ===================


class PermissionDeniedError(RemitDeskException):
    """Raised when user lacks permission for an action."""

    error_code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if action:
            details["action"] = action
        if resource:
            details["resource"] = resource
        super().__init__(message, details=details)


class UnauthorizedError(PermissionDeniedError):
    """Actor lacks the admin capability needed for a workflow action."""

    error_code = "UNAUTHORIZED"

    def __init__(
        self,
        *,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            "Admin access required for this action",
            action=action,
            resource=resource,
            details=details,
        )


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(RemitDeskException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(RemitDeskException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate resource."""

    error_code = "DUPLICATE_ERROR"

    def __init__(
        self,
        resource: str = "Resource",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        message = f"{resource} already exists"
        if field and value:
            message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, details=details)


class InvalidTransitionError(ConflictError):
    """
    Requested transition is not in the status table, or the entity is no
    longer in the expected ``from`` state.
    """

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        entity: str,
        current: Optional[str],
        requested: Optional[str],
        *,
        action: Optional[str] = None,
        allowed: Optional[List[str]] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["entity"] = entity
        details["current_state"] = current
        details["requested_state"] = requested
        if action:
            details["action"] = action
        if allowed is not None:
            details["allowed_states"] = allowed
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Invalid {entity} status transition: '{current}' -> '{requested}'",
            details=details,
        )


class ConcurrentModificationError(ConflictError):
    """Raised when the entity was modified by another admin mid-transition."""

    error_code = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        message: str = "Resource was modified by another user; reload and retry",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class ActionInProgressError(ConflictError):
    """A submission for the same entity has not resolved yet."""

    error_code = "ACTION_IN_PROGRESS"

    def __init__(self, entity: str, entity_id: Any, *, details: Optional[Dict[str, Any]] = None):
        details = details or {}
        details["entity"] = entity
        details["entity_id"] = str(entity_id)
        super().__init__(
            f"Another action on {entity} {entity_id} is still being submitted",
            details=details,
        )


# ===================
# 5xx Infrastructure Errors
# ===================


class StoreError(RemitDeskException):
    """Raised when a database operation fails."""

    error_code = "STORE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class UploadError(RemitDeskException):
    """Raised when the proof blob store rejects or fails a write."""

    error_code = "UPLOAD_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str = "File storage operation failed",
        *,
        filename: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if filename:
            details["filename"] = filename
        super().__init__(message, details=details)
