"""
Order Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.core.status_config import OrderType


class OrderItemResponse(BaseModel):
    """Order line"""
    id: int
    item_type: str
    item_id: Optional[int] = None
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    model_config = {"from_attributes": True}


class OrderListResponse(BaseModel):
    """Order row for the admin list view"""
    id: int
    order_number: str
    user_id: int
    order_type: str
    status: str
    status_label: Optional[str] = None
    payment_status: str
    total_amount: Decimal
    currency_code: str
    payment_method: Optional[str] = None
    tracking_info: Optional[str] = None
    days_in_processing: Optional[int] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderResponse(OrderListResponse):
    """Full order detail"""
    offer_id: Optional[int] = None
    subtotal: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    payment_proof_uploaded_at: Optional[datetime] = None
    delivery_proof_url: Optional[str] = None
    cancellation_reason: Optional[str] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None

    validated_by: Optional[int] = None
    validated_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    processing_started_by: Optional[int] = None
    processing_started_at: Optional[datetime] = None
    dispatched_by: Optional[int] = None
    dispatched_at: Optional[datetime] = None
    delivered_by: Optional[int] = None
    delivered_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None

    items: List[OrderItemResponse] = []
    available_actions: List[str] = []


class OrderItemCreate(BaseModel):
    """One line of a checkout"""
    item_type: str = Field("product", max_length=20)
    item_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, ge=1)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)


class OrderCreate(BaseModel):
    """Customer checkout"""
    order_type: OrderType = OrderType.PRODUCT
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shipping_cost: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    currency_code: str = Field("USD", min_length=3, max_length=3)
    payment_method: str = Field("zelle", max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=255)
    offer_code: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
