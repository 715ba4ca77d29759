"""
Order Service

Customer checkout: builds the order lines, applies an offer code, numbers
the order and writes it together with the offer redemption in one commit.
New orders start at pending / payment pending; everything after that goes
through the workflow.
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from app.core.status_config import OrderStatus, PaymentStatus
from app.exceptions import ValidationError
from app.logging_config import get_logger
from app.models.order import Order, OrderItem
from app.models.user import User
from app.schemas.order import OrderCreate
from app.services.event_service import record_activity
from app.services.offer_service import record_offer_usage, validate_offer
from app.services.order_helpers import calculate_order_totals, generate_order_number

logger = get_logger(__name__)


def build_order_items(request: OrderCreate) -> list:
    items = []
    for line in request.items:
        unit_price = Decimal(str(line.unit_price))
        items.append(OrderItem(
            item_type=line.item_type,
            item_id=line.item_id,
            name=line.name.strip(),
            quantity=line.quantity,
            unit_price=unit_price,
            total_price=unit_price * line.quantity,
        ))
    return items


def create_order(db: Session, user: User, request: OrderCreate) -> Order:
    """
    Create a customer order.

    Args:
        db: Database session
        user: The customer placing the order
        request: Lines, shipping, payment method and optional offer code

    Returns:
        The committed Order

    Raises:
        ValidationError: The offer code cannot be applied to this cart
    """
    items = build_order_items(request)
    totals = calculate_order_totals(items, request.shipping_cost)

    offer = None
    if request.offer_code:
        check = validate_offer(db, request.offer_code, totals["subtotal"], user_id=user.id)
        if not check.valid:
            raise ValidationError(
                check.reason, field="offer_code", value=check.code, details=check.details
            )
        offer = check.offer
        totals = calculate_order_totals(items, request.shipping_cost, check.discount_amount)

    order = Order(
        order_number=generate_order_number(db),
        user_id=user.id,
        order_type=request.order_type.value,
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        currency_code=request.currency_code.upper(),
        payment_method=request.payment_method,
        payment_reference=request.payment_reference,
        offer_id=offer.id if offer else None,
        notes=request.notes,
        items=items,
        **totals,
    )
    db.add(order)
    db.flush()

    if offer:
        record_offer_usage(db, offer.id, user.id, order_id=order.id)

    record_activity(
        db, "order_created", "order", order.id,
        performed_by=user.id,
        description=f"Order {order.order_number} created",
        metadata={
            "total_amount": str(order.total_amount),
            "items": len(items),
            "offer_code": offer.code if offer else None,
        },
    )
    db.commit()
    db.refresh(order)

    logger.info(
        "Order created",
        extra={
            "order_id": order.id,
            "order_number": order.order_number,
            "user_id": user.id,
            "total_amount": str(order.total_amount),
        },
    )
    return order
