"""
Status History Model

One row per applied workflow transition, written in the same transaction as
the status change itself.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from datetime import datetime

from app.db.base import Base


class StatusHistory(Base):
    """Status History - audit trail for order/remittance status fields"""
    __tablename__ = "status_history"

    id = Column(Integer, primary_key=True, index=True)

    entity_type = Column(String(30), nullable=False, index=True)  # order, remittance
    entity_id = Column(Integer, nullable=False, index=True)
    action = Column(String(50), nullable=False)

    # status or payment_status
    field = Column(String(30), nullable=False, default="status")
    old_value = Column(String(50), nullable=True)
    new_value = Column(String(50), nullable=False)

    changed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return (
            f"<StatusHistory {self.entity_type}:{self.entity_id} "
            f"{self.field} {self.old_value}->{self.new_value}>"
        )
