"""
Remittance Service

Quotes and customer-created remittances. The remittance type supplies the
exchange rate, commission, amount limits and delivery window; the new
remittance starts at payment_pending and waits for the customer's proof.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

from sqlalchemy.orm import Session

from app.core.status_config import RemittanceStatus
from app.exceptions import NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.remittance import Remittance
from app.models.remittance_type import RemittanceType
from app.models.user import User
from app.schemas.remittance import RemittanceCreate
from app.services.event_service import record_activity
from app.services.order_helpers import generate_remittance_number

logger = get_logger(__name__)

CENT = Decimal("0.01")


def get_active_type(db: Session, remittance_type_id: int) -> RemittanceType:
    """An active remittance type; inactive ones are treated as missing."""
    remittance_type = (
        db.query(RemittanceType)
        .filter(RemittanceType.id == remittance_type_id, RemittanceType.is_active.is_(True))
        .first()
    )
    if not remittance_type:
        raise NotFoundError("Remittance type", remittance_type_id)
    return remittance_type


def calculate_remittance(remittance_type: RemittanceType, amount: Decimal) -> Dict[str, Decimal]:
    """
    Commission and delivered amount for ``amount`` sent through a type.

    Commission is ``amount * percentage / 100 + fixed`` in the sending
    currency; the recipient gets what is left, converted at the type's rate.

    Raises:
        ValidationError: Amount outside the type's limits, or nothing left
            to deliver after commission
    """
    amount = Decimal(str(amount))
    min_amount = Decimal(str(remittance_type.min_amount or 0))
    if amount < min_amount:
        raise ValidationError(
            f"Minimum amount: {min_amount} {remittance_type.currency_code}",
            field="amount", value=amount, details={"min_amount": str(min_amount)},
        )
    if remittance_type.max_amount is not None:
        max_amount = Decimal(str(remittance_type.max_amount))
        if amount > max_amount:
            raise ValidationError(
                f"Maximum amount: {max_amount} {remittance_type.currency_code}",
                field="amount", value=amount, details={"max_amount": str(max_amount)},
            )

    rate = Decimal(str(remittance_type.exchange_rate))
    percentage = Decimal(str(remittance_type.commission_percentage or 0))
    fixed = Decimal(str(remittance_type.commission_fixed or 0))
    commission = (amount * percentage / Decimal("100") + fixed).quantize(CENT, rounding=ROUND_HALF_UP)
    to_deliver = ((amount - commission) * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    if to_deliver <= 0:
        raise ValidationError(
            "Amount does not cover the commission", field="amount", value=amount,
            details={"commission_total": str(commission)},
        )
    return {
        "amount_sent": amount,
        "exchange_rate": rate,
        "commission_total": commission,
        "amount_to_deliver": to_deliver,
    }


def create_remittance(db: Session, user: User, request: RemittanceCreate) -> Remittance:
    """Create a remittance for ``user``; committed before returning."""
    remittance_type = get_active_type(db, request.remittance_type_id)
    amounts = calculate_remittance(remittance_type, request.amount)

    remittance = Remittance(
        remittance_number=generate_remittance_number(db),
        user_id=user.id,
        remittance_type_id=remittance_type.id,
        status=RemittanceStatus.PAYMENT_PENDING.value,
        delivery_method=remittance_type.delivery_method,
        currency_sent=remittance_type.currency_code,
        currency_delivered=remittance_type.delivery_currency,
        max_delivery_days=remittance_type.max_delivery_days,
        recipient_name=request.recipient_name,
        recipient_phone=request.recipient_phone,
        recipient_province=request.recipient_province,
        recipient_municipality=request.recipient_municipality,
        recipient_address=request.recipient_address,
        recipient_bank_account=request.recipient_bank_account,
        delivery_notes=request.notes,
        **amounts,
    )
    db.add(remittance)
    db.flush()

    record_activity(
        db, "remittance_created", "remittance", remittance.id,
        performed_by=user.id,
        description=f"Remittance {remittance.remittance_number} created",
        metadata={
            "remittance_type": remittance_type.name,
            "amount_sent": str(remittance.amount_sent),
            "amount_to_deliver": str(remittance.amount_to_deliver),
        },
    )
    db.commit()
    db.refresh(remittance)

    logger.info(
        "Remittance created",
        extra={
            "remittance_id": remittance.id,
            "remittance_number": remittance.remittance_number,
            "user_id": user.id,
            "amount_sent": str(remittance.amount_sent),
        },
    )
    return remittance
