"""
Dashboard Pydantic Schemas
"""
from pydantic import BaseModel
from typing import Dict
from decimal import Decimal


class OrderStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_payment_status: Dict[str, int]
    completed_revenue: Decimal
    awaiting_payment_validation: int


class RemittanceStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    total_amount: Decimal
    completed_amount: Decimal
    avg_processing_hours: float


class DashboardResponse(BaseModel):
    orders: OrderStats
    remittances: RemittanceStats
    remittances_needing_alert: int
