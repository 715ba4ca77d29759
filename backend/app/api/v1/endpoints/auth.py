"""
Authentication endpoints

Handles login and profile retrieval for admins and customers
"""
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_user
from app.core.config import settings
from app.core.limiter import limiter
from app.core.security import create_access_token, verify_password
from app.db.session import get_db
from app.exceptions import InvalidCredentialsError, PermissionDeniedError
from app.logging_config import get_logger
from app.models.user import User
from app.schemas.auth import TokenResponse, UserResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============================================================================
# ENDPOINT: Login
# ============================================================================

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)  # type: ignore
async def login_user(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Session = Depends(get_db)
):
    """
    Login with email and password

    Uses OAuth2 password flow (username field contains email).

    Returns:
        Access token and the user profile

    Raises:
        InvalidCredentialsError (401) if the email or password is wrong
        PermissionDeniedError (403) if the account is inactive
    """
    user = db.query(User).filter(User.email == form_data.username.strip().lower()).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        logger.info(f"Failed login for {form_data.username}")
        raise InvalidCredentialsError("Incorrect email or password")

    if not user.is_active:
        raise PermissionDeniedError("User account is inactive", resource="user")

    user.last_login_at = datetime.utcnow()
    db.commit()
    db.refresh(user)

    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        "user": user,
    }


# ============================================================================
# ENDPOINT: Current User
# ============================================================================

@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: Annotated[User, Depends(get_current_user)]
):
    """
    Get current user profile

    Requires valid access token in Authorization header.
    """
    return current_user
