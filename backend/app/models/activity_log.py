"""
Activity Log Model

Append-only record of admin actions (who did what to which entity, and when).
Feeds the admin activity tab.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class ActivityLog(Base):
    """Activity Log - one admin action"""
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)

    # validate_payment, reject_payment, start_processing, mark_dispatched,
    # mark_delivered, confirm_delivery, complete, cancel, offer_created, ...
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(30), nullable=False, index=True)  # order, remittance, offer
    entity_id = Column(String(50), nullable=True, index=True)

    performed_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    description = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    user = relationship("User")

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.entity_type}:{self.entity_id}>"
