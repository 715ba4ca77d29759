"""
Event Service

Centralized helper functions for recording audit events: the admin activity
log and the per-transition status history.
"""
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog
from app.models.status_history import StatusHistory


def record_activity(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: Any = None,
    performed_by: Optional[int] = None,
    description: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """
    Record an admin activity log entry.

    Args:
        db: Database session
        action: What was done (validate_payment, cancel, offer_created, ...)
        entity_type: order, remittance, offer
        entity_id: ID of the affected entity
        performed_by: ID of the acting user
        description: Human-readable summary
        metadata: Additional JSON context (old/new status, reason, ...)

    Returns:
        The created ActivityLog instance
    """
    entry = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        performed_by=performed_by,
        description=description,
        details=metadata or {},
    )
    db.add(entry)
    # Don't commit - let the calling function handle the transaction
    return entry


def record_status_history(
    db: Session,
    entity_type: str,
    entity_id: int,
    action: str,
    new_value: str,
    old_value: Optional[str] = None,
    field: str = "status",
    changed_by: Optional[int] = None,
    notes: Optional[str] = None,
) -> StatusHistory:
    """
    Record one status change for an order or remittance.

    Args:
        db: Database session
        entity_type: order or remittance
        entity_id: ID of the entity
        action: Workflow action that caused the change
        new_value: Value after the change
        old_value: Value before the change
        field: Column that changed (status or payment_status)
        changed_by: ID of the acting user
        notes: Reason / tracking / proof reference, if any

    Returns:
        The created StatusHistory instance
    """
    row = StatusHistory(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        field=field,
        old_value=old_value,
        new_value=new_value,
        changed_by=changed_by,
        notes=notes,
    )
    db.add(row)
    # Don't commit - written in the same transaction as the transition
    return row
