"""
Dashboard Stats

Read-side aggregates for the admin dashboard: order and remittance counts,
money totals, processing time, and remittances close to their delivery
deadline.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import OrderStatus, PaymentStatus, RemittanceStatus
from app.models.order import Order
from app.models.remittance import Remittance


def _date_filtered(query, column, start_date: Optional[datetime], end_date: Optional[datetime]):
    if start_date:
        query = query.filter(column >= start_date)
    if end_date:
        query = query.filter(column <= end_date)
    return query


def get_order_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Counts by status / payment status, completed revenue, payments awaiting validation."""
    by_status_rows = _date_filtered(
        db.query(Order.status, func.count(Order.id)), Order.created_at, start_date, end_date
    ).group_by(Order.status).all()
    by_payment_rows = _date_filtered(
        db.query(Order.payment_status, func.count(Order.id)), Order.created_at, start_date, end_date
    ).group_by(Order.payment_status).all()

    revenue = _date_filtered(
        db.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
            Order.status == OrderStatus.COMPLETED.value
        ),
        Order.created_at, start_date, end_date,
    ).scalar()

    awaiting = _date_filtered(
        db.query(func.count(Order.id)).filter(
            Order.payment_status == PaymentStatus.PENDING.value,
            Order.status == OrderStatus.PENDING.value,
        ),
        Order.created_at, start_date, end_date,
    ).scalar()

    by_status = {s: c for s, c in by_status_rows}
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "by_payment_status": {s: c for s, c in by_payment_rows},
        "completed_revenue": Decimal(str(revenue or 0)),
        "awaiting_payment_validation": awaiting or 0,
    }


def get_remittance_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Totals and average processing time for remittances.

    Processing time is created_at -> completed_at over completed remittances,
    reported in hours.
    """
    rows = _date_filtered(
        db.query(
            Remittance.status,
            Remittance.amount_sent,
            Remittance.created_at,
            Remittance.completed_at,
        ),
        Remittance.created_at, start_date, end_date,
    ).all()

    by_status: Dict[str, int] = {}
    total_amount = Decimal("0")
    completed_amount = Decimal("0")
    processing_seconds = 0.0
    timed = 0

    for status, amount, created_at, completed_at in rows:
        by_status[status] = by_status.get(status, 0) + 1
        amount = Decimal(str(amount or 0))
        total_amount += amount
        if status == RemittanceStatus.COMPLETED.value:
            completed_amount += amount
            if created_at and completed_at:
                processing_seconds += (completed_at - created_at).total_seconds()
                timed += 1

    return {
        "total": len(rows),
        "by_status": by_status,
        "total_amount": total_amount,
        "completed_amount": completed_amount,
        "avg_processing_hours": round(processing_seconds / timed / 3600, 2) if timed else 0.0,
    }


def delivery_alert(remittance: Remittance, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Deadline indicator for one remittance.

    Levels: success (already delivered), info (not validated yet, or more
    than 48 h left), warning (under 48 h), error (under 24 h or overdue).
    """
    now = now or datetime.utcnow()
    if remittance.status in (RemittanceStatus.DELIVERED.value, RemittanceStatus.COMPLETED.value):
        return {"level": "success", "message": "Delivered", "hours_remaining": None}
    if not remittance.payment_validated_at or not remittance.max_delivery_date:
        return {"level": "info", "message": "Awaiting validation", "hours_remaining": None}

    hours_remaining = (remittance.max_delivery_date - now).total_seconds() / 3600
    if hours_remaining < 0:
        return {"level": "error", "message": "Delivery overdue", "hours_remaining": round(hours_remaining, 1)}
    if hours_remaining < 24:
        return {
            "level": "error",
            "message": f"{round(hours_remaining)} hours left",
            "hours_remaining": round(hours_remaining, 1),
        }
    if hours_remaining < 48:
        return {
            "level": "warning",
            "message": f"{round(hours_remaining / 24)} days left",
            "hours_remaining": round(hours_remaining, 1),
        }
    return {
        "level": "info",
        "message": f"{round(hours_remaining / 24)} days left",
        "hours_remaining": round(hours_remaining, 1),
    }


def remittances_needing_alert(
    db: Session, now: Optional[datetime] = None, hours: Optional[int] = None
) -> List[Remittance]:
    """Validated / processing remittances due within ``hours`` (or overdue), soonest first."""
    now = now or datetime.utcnow()
    threshold = now + timedelta(hours=hours if hours is not None else settings.REMITTANCE_ALERT_HOURS)
    return (
        db.query(Remittance)
        .filter(
            Remittance.status.in_([
                RemittanceStatus.PAYMENT_VALIDATED.value,
                RemittanceStatus.PROCESSING.value,
            ]),
            Remittance.max_delivery_date.isnot(None),
            Remittance.max_delivery_date <= threshold,
        )
        .order_by(Remittance.max_delivery_date.asc())
        .all()
    )
