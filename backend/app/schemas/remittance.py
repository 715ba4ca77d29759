"""
Remittance Pydantic Schemas
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class RemittanceListResponse(BaseModel):
    """Remittance row for the admin list view"""
    id: int
    remittance_number: str
    user_id: int
    status: str
    status_label: Optional[str] = None
    delivery_method: str
    amount_sent: Decimal
    currency_sent: str
    amount_to_deliver: Decimal
    currency_delivered: str
    recipient_name: str
    remittance_type_id: Optional[int] = None
    max_delivery_date: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RemittanceResponse(RemittanceListResponse):
    """Full remittance detail"""
    exchange_rate: Decimal
    commission_total: Decimal
    discount_amount: Decimal

    recipient_phone: str
    recipient_province: Optional[str] = None
    recipient_municipality: Optional[str] = None
    recipient_address: Optional[str] = None
    recipient_bank_account: Optional[str] = None

    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    delivery_proof_url: Optional[str] = None

    payment_validation_notes: Optional[str] = None
    payment_rejection_reason: Optional[str] = None
    processing_notes: Optional[str] = None
    delivery_notes: Optional[str] = None
    completion_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None

    payment_proof_uploaded_at: Optional[datetime] = None
    payment_validated_by: Optional[int] = None
    payment_validated_at: Optional[datetime] = None
    payment_rejected_by: Optional[int] = None
    payment_rejected_at: Optional[datetime] = None
    processing_started_by: Optional[int] = None
    processing_started_at: Optional[datetime] = None
    delivered_by: Optional[int] = None
    delivered_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None

    available_actions: List[str] = []


class DeliveryAlert(BaseModel):
    """Time-to-deadline indicator for a remittance"""
    level: str  # success, info, warning, error
    message: str
    hours_remaining: Optional[float] = None


class RemittanceAlertResponse(BaseModel):
    """Remittance close to (or past) its delivery deadline"""
    remittance: RemittanceListResponse
    alert: DeliveryAlert


# ===================
# Remittance types
# ===================

DELIVERY_METHODS = ("cash", "transfer", "card", "mobile_wallet")


class RemittanceTypeBase(BaseModel):
    description: Optional[str] = Field(None, max_length=2000)
    currency_code: str = Field("USD", min_length=3, max_length=3)
    delivery_currency: str = Field(..., min_length=3, max_length=3)
    exchange_rate: Decimal = Field(..., gt=0)
    commission_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    commission_fixed: Decimal = Field(Decimal("0"), ge=0)
    min_amount: Decimal = Field(Decimal("1"), gt=0)
    max_amount: Optional[Decimal] = Field(None, gt=0)
    delivery_method: str = "cash"
    max_delivery_days: int = Field(3, ge=1, le=60)
    is_active: bool = True
    display_order: int = 0

    @field_validator("delivery_method")
    @classmethod
    def validate_delivery_method(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in DELIVERY_METHODS:
            raise ValueError(f"delivery_method must be one of: {', '.join(DELIVERY_METHODS)}")
        return v

    @field_validator("currency_code", "delivery_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_limits(self):
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise ValueError("max_amount must be at least min_amount")
        return self


class RemittanceTypeCreate(RemittanceTypeBase):
    name: str = Field(..., min_length=3, max_length=100)


class RemittanceTypeUpdate(BaseModel):
    """Partial update; currencies and delivery method are fixed once created"""
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    commission_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    commission_fixed: Optional[Decimal] = Field(None, ge=0)
    min_amount: Optional[Decimal] = Field(None, gt=0)
    max_amount: Optional[Decimal] = Field(None, gt=0)
    max_delivery_days: Optional[int] = Field(None, ge=1, le=60)
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class RemittanceTypeResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    currency_code: str
    delivery_currency: str
    exchange_rate: Decimal
    commission_percentage: Decimal
    commission_fixed: Decimal
    min_amount: Decimal
    max_amount: Optional[Decimal] = None
    delivery_method: str
    max_delivery_days: int
    is_active: bool
    display_order: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ===================
# Customer requests
# ===================

class RemittanceQuoteRequest(BaseModel):
    remittance_type_id: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class RemittanceQuoteResponse(BaseModel):
    remittance_type_id: int
    amount_sent: Decimal
    currency_sent: str
    exchange_rate: Decimal
    commission_total: Decimal
    amount_to_deliver: Decimal
    currency_delivered: str
    max_delivery_days: int


class RemittanceCreate(RemittanceQuoteRequest):
    """Customer remittance request"""
    recipient_name: str = Field(..., min_length=2, max_length=200)
    recipient_phone: str = Field(..., min_length=6, max_length=30)
    recipient_province: Optional[str] = Field(None, max_length=100)
    recipient_municipality: Optional[str] = Field(None, max_length=100)
    recipient_address: Optional[str] = None
    recipient_bank_account: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)
