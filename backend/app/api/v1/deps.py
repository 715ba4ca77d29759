"""
API Dependencies

Authentication dependencies and common query parameter dependencies
that can be safely imported without triggering rate limiter initialization issues.
"""
from typing import Annotated, Optional

from fastapi import Depends, Query, UploadFile
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.user import User
from app.core.security import get_user_from_token
from app.exceptions import AuthenticationError, PermissionDeniedError
from app.schemas.common import PaginationParams
from app.services.workflow_controller import WorkflowController
from app.services.workflow_types import Actor, ProofFile

# OAuth2 scheme for token authentication; a missing token is reported by get_current_user
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from access token

    Raises:
        AuthenticationError (401) if the token is missing or invalid, or
            the user no longer exists
        PermissionDeniedError (403) if the account is inactive
    """
    if not token:
        raise AuthenticationError("Not authenticated")

    user_id = get_user_from_token(token, expected_type="access")
    if user_id is None:
        raise AuthenticationError("Could not validate credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AuthenticationError("Could not validate credentials")

    if not user.is_active:
        raise PermissionDeniedError("User account is inactive", resource="user")

    return user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """
    Dependency to require admin access (admin or super_admin).

    Raises:
        PermissionDeniedError (403) if user is not an admin
    """
    if not current_user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return current_user


async def get_current_actor(
    current_user: Annotated[User, Depends(get_current_user)]
) -> Actor:
    """The authenticated user as a workflow actor; authorization happens in the workflow."""
    return Actor.from_user(current_user)


def get_workflow_controller(db: Session = Depends(get_db)) -> WorkflowController:
    return WorkflowController(db)


async def read_proof_upload(file: Optional[UploadFile]) -> Optional[ProofFile]:
    """Buffer an uploaded proof image; None when no file was sent."""
    if file is None or not file.filename:
        return None
    content = await file.read()
    return ProofFile(filename=file.filename, content_type=file.content_type, content=content)


def get_pagination_params(
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of records to skip (for pagination)"
    ),
    limit: int = Query(
        default=50,
        ge=1,
        le=500,
        description="Maximum number of records to return (1-500)"
    )
) -> PaginationParams:
    """Dependency for standardized pagination parameters."""
    return PaginationParams(offset=offset, limit=limit)
