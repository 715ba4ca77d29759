"""
Order Helpers - numbering and totals for orders and remittances

Numbers look like ``ORD-20250107-00012`` / ``REM-20250107-00003``: a prefix,
the UTC date and a per-day sequence.
"""
import random
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.order import Order, OrderItem
from app.models.remittance import Remittance


def _next_number(db: Session, column, prefix: str, today: Optional[datetime] = None) -> str:
    """
    Next ``PREFIX-YYYYMMDD-NNNNN`` for the day.

    Falls back to a random suffix if the computed number is somehow taken
    (e.g. two checkouts racing on the same sequence).
    """
    day = (today or datetime.utcnow()).strftime("%Y%m%d")
    day_prefix = f"{prefix}-{day}-"
    last = (
        db.query(column)
        .filter(column.like(f"{day_prefix}%"))
        .order_by(desc(column))
        .first()
    )
    next_num = 1
    if last:
        try:
            next_num = int(last[0].rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            next_num = 1

    number = f"{day_prefix}{next_num:05d}"
    if db.query(column).filter(column == number).first():
        number = f"{day_prefix}{random.randint(0, 99999):05d}"
    return number


def generate_order_number(db: Session, today: Optional[datetime] = None) -> str:
    return _next_number(db, Order.order_number, "ORD", today)


def generate_remittance_number(db: Session, today: Optional[datetime] = None) -> str:
    return _next_number(db, Remittance.remittance_number, "REM", today)


def calculate_order_totals(
    items: Iterable[OrderItem],
    shipping_cost: Decimal = Decimal("0"),
    discount_amount: Decimal = Decimal("0"),
) -> dict:
    """
    Subtotal / total for a set of order items.

    Args:
        items: Order items (total_price already set)
        shipping_cost: Shipping charge
        discount_amount: Offer discount, already capped at the subtotal

    Returns:
        Dict with subtotal, shipping_cost, discount_amount and total_amount
    """
    subtotal = sum((Decimal(str(i.total_price)) for i in items), Decimal("0"))
    shipping_cost = Decimal(str(shipping_cost or 0))
    discount_amount = min(Decimal(str(discount_amount or 0)), subtotal)
    total = subtotal + shipping_cost - discount_amount
    return {
        "subtotal": subtotal,
        "shipping_cost": shipping_cost,
        "discount_amount": discount_amount,
        "total_amount": max(total, Decimal("0")),
    }
