"""
Remittance Type Model

A corridor customers can send money through: source and delivery currency,
exchange rate, commission, amount limits and the delivery window promised
once the payment is validated.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, Text
from datetime import datetime

from app.db.base import Base


class RemittanceType(Base):
    """Remittance Type - pricing and limits for one delivery corridor"""
    __tablename__ = "remittance_types"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), unique=True, nullable=False)  # "USD to CUP (cash)"
    description = Column(Text, nullable=True)

    # Currencies
    currency_code = Column(String(3), nullable=False, default="USD")  # what the customer pays
    delivery_currency = Column(String(3), nullable=False)  # what the recipient gets
    exchange_rate = Column(Numeric(12, 4), nullable=False)

    # Commission: percentage of the amount plus a fixed fee
    commission_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    commission_fixed = Column(Numeric(12, 2), nullable=False, default=0)

    # Limits (NULL max = unlimited)
    min_amount = Column(Numeric(12, 2), nullable=False, default=1)
    max_amount = Column(Numeric(12, 2), nullable=True)

    delivery_method = Column(String(20), nullable=False, default="cash")
    # Days from payment validation to delivery
    max_delivery_days = Column(Integer, nullable=False, default=3)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    display_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<RemittanceType {self.name} ({self.currency_code}->{self.delivery_currency})>"
