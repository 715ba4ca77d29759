"""
Pydantic schemas for authentication endpoints
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class UserResponse(BaseModel):
    """Schema for user data response"""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    status: str
    account_type: str
    is_admin: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Schema for token response (login)"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
