"""Database models"""
from app.models.user import User
from app.models.offer import Offer, OfferUsage
from app.models.order import Order, OrderItem
from app.models.remittance import Remittance
from app.models.remittance_type import RemittanceType
from app.models.activity_log import ActivityLog
from app.models.status_history import StatusHistory

__all__ = [
    # Accounts
    "User",
    # Sales
    "Order",
    "OrderItem",
    "Offer",
    "OfferUsage",
    # Remittances
    "Remittance",
    "RemittanceType",
    # Audit
    "ActivityLog",
    "StatusHistory",
]
