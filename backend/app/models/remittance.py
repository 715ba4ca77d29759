"""
Remittance Model

A money-transfer request: the customer pays (and uploads a payment proof),
an admin validates it, processes the transfer and confirms delivery to the
recipient with a delivery proof.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class Remittance(Base):
    """Remittance - money transfer driven through the admin workflow"""
    __tablename__ = "remittances"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Foreign Keys
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    remittance_type_id = Column(
        Integer, ForeignKey("remittance_types.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Identification
    remittance_number = Column(String(50), unique=True, nullable=False, index=True)  # REM-20250101-00001

    # Status
    # Lifecycle: payment_pending -> payment_proof_uploaded -> payment_validated
    #            -> processing -> delivered -> completed
    # Alternative paths: payment_rejected, cancelled
    status = Column(String(30), nullable=False, default="payment_pending", index=True)
    delivery_method = Column(String(20), nullable=False, default="cash")  # cash, transfer, card, mobile_wallet

    # Amounts
    amount_sent = Column(Numeric(12, 2), nullable=False)
    currency_sent = Column(String(3), nullable=False, default="USD")
    exchange_rate = Column(Numeric(12, 4), nullable=False, default=1)
    amount_to_deliver = Column(Numeric(12, 2), nullable=False)
    currency_delivered = Column(String(3), nullable=False, default="USD")
    commission_total = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Recipient
    recipient_name = Column(String(200), nullable=False)
    recipient_phone = Column(String(30), nullable=False)
    # Cash delivery address
    recipient_province = Column(String(100), nullable=True)
    recipient_municipality = Column(String(100), nullable=True)
    recipient_address = Column(Text, nullable=True)
    # Transfer / card / wallet
    recipient_bank_account = Column(String(100), nullable=True)

    # Proofs & references
    payment_reference = Column(String(255), nullable=True)
    payment_proof_url = Column(String(500), nullable=True)
    delivery_proof_url = Column(String(500), nullable=True)
    max_delivery_date = Column(DateTime, nullable=True)
    # Copied from the type at creation; the deadline is set when the payment is validated
    max_delivery_days = Column(Integer, nullable=False, default=3)

    # Notes
    payment_validation_notes = Column(Text, nullable=True)
    payment_rejection_reason = Column(Text, nullable=True)
    processing_notes = Column(Text, nullable=True)
    delivery_notes = Column(Text, nullable=True)
    completion_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Workflow audit
    payment_proof_uploaded_at = Column(DateTime, nullable=True)
    payment_validated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    payment_validated_at = Column(DateTime, nullable=True)
    payment_rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    payment_rejected_at = Column(DateTime, nullable=True)
    processing_started_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    processing_started_at = Column(DateTime, nullable=True)
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
    remittance_type = relationship("RemittanceType")

    def __repr__(self):
        return f"<Remittance {self.remittance_number} ({self.status})>"

    @property
    def number(self) -> str:
        return self.remittance_number
