"""
Offer Service

Coupon eligibility and discount calculation. Offers have no workflow; a
code is checked when it is applied and a usage row is written when the
order that used it is created.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models.offer import Offer, OfferUsage

logger = get_logger(__name__)

CENT = Decimal("0.01")


@dataclass
class OfferValidation:
    """Result of checking a code against a cart."""
    valid: bool
    code: str
    reason: Optional[str] = None
    offer: Optional[Offer] = None
    discount_amount: Decimal = Decimal("0")
    details: Optional[Dict[str, Any]] = None


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def calculate_discount(offer: Offer, subtotal: Decimal) -> Decimal:
    """
    Discount for a subtotal.

    Percentage offers take ``value``% of the subtotal; fixed offers take
    ``value`` but never more than the subtotal.
    """
    subtotal = Decimal(str(subtotal))
    value = Decimal(str(offer.discount_value))
    if subtotal <= 0 or value <= 0:
        return Decimal("0.00")
    if offer.discount_type == "percentage":
        discount = subtotal * value / Decimal("100")
    else:
        discount = value
    return min(discount, subtotal).quantize(CENT, rounding=ROUND_HALF_UP)


def count_usage(db: Session, offer_id: int, user_id: Optional[int] = None) -> int:
    query = db.query(func.count(OfferUsage.id)).filter(OfferUsage.offer_id == offer_id)
    if user_id is not None:
        query = query.filter(OfferUsage.user_id == user_id)
    return query.scalar() or 0


def validate_offer(
    db: Session,
    code: str,
    subtotal: Decimal,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> OfferValidation:
    """
    Check whether a code can be applied.

    Checks, in order: exists and active, validity window, minimum purchase,
    global usage cap, per-user usage cap.
    """
    code = normalize_code(code)
    now = now or datetime.utcnow()
    subtotal = Decimal(str(subtotal))

    offer = db.query(Offer).filter(Offer.code == code, Offer.is_active.is_(True)).first()
    if not offer:
        return OfferValidation(False, code, "Offer code not found or inactive")

    if offer.valid_from and offer.valid_from > now:
        return OfferValidation(
            False, code, "Offer is not active yet", offer,
            details={"valid_from": offer.valid_from.isoformat()},
        )
    if offer.valid_until and offer.valid_until < now:
        return OfferValidation(
            False, code, "Offer has expired", offer,
            details={"valid_until": offer.valid_until.isoformat()},
        )

    if offer.min_purchase_amount and subtotal < Decimal(str(offer.min_purchase_amount)):
        return OfferValidation(
            False, code,
            f"Minimum purchase amount required: {offer.min_purchase_amount}",
            offer,
            details={
                "required_amount": str(offer.min_purchase_amount),
                "current_amount": str(subtotal),
            },
        )

    if offer.max_usage_global:
        used = count_usage(db, offer.id)
        if used >= offer.max_usage_global:
            return OfferValidation(False, code, "Offer has reached its usage limit", offer)

    if user_id is not None and offer.max_usage_per_user:
        used = count_usage(db, offer.id, user_id)
        if used >= offer.max_usage_per_user:
            return OfferValidation(
                False, code,
                f"You have already used this offer {used} times (limit: {offer.max_usage_per_user})",
                offer,
                details={"user_usage_count": used},
            )

    return OfferValidation(True, code, offer=offer, discount_amount=calculate_discount(offer, subtotal))


def record_offer_usage(
    db: Session, offer_id: int, user_id: int, order_id: Optional[int] = None
) -> OfferUsage:
    """Record one redemption. Don't commit - part of the order's transaction."""
    usage = OfferUsage(offer_id=offer_id, user_id=user_id, order_id=order_id)
    db.add(usage)
    logger.info(f"Offer {offer_id} used by user {user_id} (order {order_id})")
    return usage
