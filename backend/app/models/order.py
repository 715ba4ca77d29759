"""
Order Model

Represents a customer checkout (products, combos and/or a remittance line).
Status moves only through the admin workflow; orders are never deleted.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
import math
from datetime import datetime

from app.db.base import Base


class Order(Base):
    """Order - customer order driven through the admin workflow"""
    __tablename__ = "orders"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Foreign Keys
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="SET NULL"), nullable=True, index=True)

    # Order Identification
    order_number = Column(String(50), unique=True, nullable=False, index=True)  # ORD-20250101-00001
    order_type = Column(String(20), nullable=False, default="product", index=True)  # product, remittance, mixed

    # Status
    # Lifecycle: pending -> processing -> dispatched -> delivered -> completed
    # Alternative path: cancelled (from any non-terminal state)
    status = Column(String(30), nullable=False, default="pending", index=True)
    # pending, validated, rejected
    payment_status = Column(String(30), nullable=False, default="pending", index=True)

    # Money
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency_code = Column(String(3), nullable=False, default="USD")

    # Payment
    payment_method = Column(String(50), nullable=True)  # zelle, transfer, cash
    payment_reference = Column(String(255), nullable=True)
    payment_proof_url = Column(String(500), nullable=True)
    payment_proof_uploaded_at = Column(DateTime, nullable=True)

    # Workflow fields
    tracking_info = Column(String(255), nullable=True)
    delivery_proof_url = Column(String(500), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Workflow audit (actor + timestamp per transition)
    validated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    validated_at = Column(DateTime, nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    processing_started_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    processing_started_at = Column(DateTime, nullable=True)
    dispatched_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    dispatched_at = Column(DateTime, nullable=True)
    delivered_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    completed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Optimistic concurrency: bumped on every transition
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    offer = relationship("Offer")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    def __repr__(self):
        return f"<Order {self.order_number} ({self.status}/{self.payment_status})>"

    @property
    def number(self) -> str:
        return self.order_number

    @property
    def days_in_processing(self):
        """Whole days (rounded up) since processing started; None outside processing."""
        if self.status != "processing" or self.processing_started_at is None:
            return None
        elapsed = abs((datetime.utcnow() - self.processing_started_at).total_seconds())
        return math.ceil(elapsed / 86400)


class OrderItem(Base):
    """Order Item - one line of an order"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    item_type = Column(String(20), nullable=False, default="product")  # product, combo, remittance
    item_id = Column(Integer, nullable=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.name} x{self.quantity}>"
