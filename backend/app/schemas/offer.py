"""
Offer / Coupon Pydantic Schemas
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal


class OfferBase(BaseModel):
    description: Optional[str] = Field(None, max_length=2000)
    discount_type: str = Field("percentage", description="percentage or fixed")
    discount_value: Decimal = Field(..., gt=0)
    min_purchase_amount: Optional[Decimal] = Field(None, ge=0)
    max_usage_global: Optional[int] = Field(None, ge=1)
    max_usage_per_user: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True

    @field_validator("discount_type")
    @classmethod
    def validate_discount_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("percentage", "fixed"):
            raise ValueError("discount_type must be 'percentage' or 'fixed'")
        return v

    @model_validator(mode="after")
    def check_values(self):
        if self.discount_type == "percentage" and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        return self


class OfferCreate(OfferBase):
    """Create a coupon"""
    code: str = Field(..., min_length=3, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v.replace("-", "").replace("_", "").isalnum():
            raise ValueError("Code may only contain letters, digits, '-' and '_'")
        return v


class OfferUpdate(BaseModel):
    """Partial update; omitted fields are left alone"""
    description: Optional[str] = Field(None, max_length=2000)
    discount_value: Optional[Decimal] = Field(None, gt=0)
    min_purchase_amount: Optional[Decimal] = Field(None, ge=0)
    max_usage_global: Optional[int] = Field(None, ge=1)
    max_usage_per_user: Optional[int] = Field(None, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class OfferResponse(BaseModel):
    id: int
    code: str
    description: Optional[str] = None
    discount_type: str
    discount_value: Decimal
    min_purchase_amount: Optional[Decimal] = None
    max_usage_global: Optional[int] = None
    max_usage_per_user: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool
    usage_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OfferValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: Decimal = Field(..., ge=0)
    user_id: Optional[int] = None


class OfferValidateResponse(BaseModel):
    valid: bool
    code: str
    reason: Optional[str] = None
    discount_amount: Decimal = Decimal("0")
    offer: Optional[OfferResponse] = None
    details: Optional[Dict[str, Any]] = None
