"""
Offer / Coupon Models

Discount codes with usage caps and a validity window. No workflow; eligibility
is checked when the code is applied (see offer_service).
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Boolean, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class Offer(Base):
    """Offer - discount code"""
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, index=True)

    code = Column(String(50), unique=True, nullable=False, index=True)  # stored upper-case
    description = Column(Text, nullable=True)

    discount_type = Column(String(20), nullable=False, default="percentage")  # percentage, fixed
    discount_value = Column(Numeric(12, 2), nullable=False)
    min_purchase_amount = Column(Numeric(12, 2), nullable=True)

    # Usage caps (NULL = unlimited)
    max_usage_global = Column(Integer, nullable=True)
    max_usage_per_user = Column(Integer, nullable=True)

    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    usages = relationship("OfferUsage", back_populates="offer", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Offer {self.code} ({self.discount_type} {self.discount_value})>"


class OfferUsage(Base):
    """One redemption of an offer by a user"""
    __tablename__ = "offer_usage"

    id = Column(Integer, primary_key=True, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    used_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    offer = relationship("Offer", back_populates="usages")

    def __repr__(self):
        return f"<OfferUsage offer={self.offer_id} user={self.user_id}>"
