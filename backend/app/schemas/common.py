"""
Common API Response Schemas

Standard error envelope and pagination models shared by every endpoint.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400)
        - MISSING_REASON / MISSING_TRACKING_INFO / MISSING_PROOF: Required input absent (400)
        - AUTHENTICATION_ERROR / INVALID_CREDENTIALS: Login required or failed (401)
        - UNAUTHORIZED / PERMISSION_DENIED: Admin capability required (403)
        - NOT_FOUND: Resource not found (404)
        - INVALID_TRANSITION: Status change not allowed from the current state (409)
        - CONCURRENT_MODIFICATION: Entity changed by someone else; reload (409)
        - ACTION_IN_PROGRESS: Another submission for the entity is running (409)
        - DUPLICATE_ERROR: Duplicate resource (409)
        - FILE_TOO_LARGE: Proof image over the size limit (413)
        - INVALID_FILE_TYPE: Proof is not an accepted image (415)
        - STORE_ERROR: Database operation failed (500)
        - UPLOAD_ERROR: Proof storage failed (502)

    Example:
        {
            "error": "INVALID_TRANSITION",
            "message": "Invalid order status transition: 'pending' -> 'dispatched'",
            "details": {"entity": "order", "current_state": "pending"},
            "timestamp": "2025-12-23T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context for debugging"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


# ============================================================================
# Pagination Models
# ============================================================================

class PaginationParams(BaseModel):
    """Offset-based pagination parameters for list endpoints."""
    offset: int = Field(default=0, ge=0, description="Number of records to skip")
    limit: int = Field(default=50, ge=1, le=500, description="Maximum number of records to return (1-500)")


class PaginationMeta(BaseModel):
    """Pagination metadata included in list responses."""
    total: int = Field(..., description="Total number of records matching the query")
    offset: int = Field(..., description="Current offset (number of records skipped)")
    limit: int = Field(..., description="Maximum records per page")
    returned: int = Field(..., description="Number of records in this response")


T = TypeVar('T')


class ListResponse(BaseModel, Generic[T]):
    """
    Standardized list response wrapper with pagination.

    The generic type T represents the item type in the list.
    """
    items: List[T] = Field(..., description="List of items")
    pagination: PaginationMeta = Field(..., description="Pagination metadata")


class MessageResponse(BaseModel):
    """Simple message response for operations that don't return data."""
    message: str = Field(..., description="Operation result message")
