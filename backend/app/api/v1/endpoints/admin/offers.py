"""
Admin Offers - discount code management
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_admin_user
from app.db.session import get_db
from app.exceptions import DuplicateError, NotFoundError
from app.logging_config import get_logger
from app.models.offer import Offer
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.offer import (
    OfferCreate,
    OfferResponse,
    OfferUpdate,
    OfferValidateRequest,
    OfferValidateResponse,
)
from app.services.event_service import record_activity
from app.services.offer_service import count_usage, normalize_code, validate_offer

logger = get_logger(__name__)

router = APIRouter(prefix="/offers", tags=["Admin - Offers"])


def _offer_response(db: Session, offer: Offer) -> OfferResponse:
    response = OfferResponse.model_validate(offer)
    response.usage_count = count_usage(db, offer.id)
    return response


def _get_offer(db: Session, offer_id: int) -> Offer:
    offer = db.query(Offer).filter(Offer.id == offer_id).first()
    if not offer:
        raise NotFoundError("Offer", offer_id)
    return offer


@router.get("", response_model=List[OfferResponse])
async def list_offers(
    active_only: bool = Query(False, description="Only offers that are switched on"),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """List offers, newest first."""
    query = db.query(Offer)
    if active_only:
        query = query.filter(Offer.is_active.is_(True))
    offers = query.order_by(Offer.created_at.desc(), Offer.id.desc()).all()
    return [_offer_response(db, o) for o in offers]


@router.post("", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(
    request: OfferCreate,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Create a discount code. Codes are stored upper-case and must be unique."""
    if db.query(Offer.id).filter(Offer.code == request.code).first():
        raise DuplicateError("Offer", field="code", value=request.code)

    offer = Offer(**request.model_dump(), created_by=current_admin.id)
    db.add(offer)
    db.flush()
    record_activity(
        db, "offer_created", "offer", offer.id,
        performed_by=current_admin.id,
        description=f"Offer {offer.code} created",
        metadata={"discount_type": offer.discount_type, "discount_value": str(offer.discount_value)},
    )
    db.commit()
    db.refresh(offer)

    logger.info(
        "Offer created",
        extra={"offer_id": offer.id, "code": offer.code, "created_by_id": current_admin.id},
    )
    return _offer_response(db, offer)


@router.post("/validate", response_model=OfferValidateResponse)
async def check_offer(
    request: OfferValidateRequest,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Check a code against a subtotal (and optionally a customer's usage)."""
    result = validate_offer(db, request.code, request.subtotal, user_id=request.user_id)
    return {
        "valid": result.valid,
        "code": result.code,
        "reason": result.reason,
        "discount_amount": result.discount_amount,
        "offer": _offer_response(db, result.offer) if result.offer else None,
        "details": result.details,
    }


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: int,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    return _offer_response(db, _get_offer(db, offer_id))


@router.patch("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: int,
    request: OfferUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Partial update. The code and discount type cannot change."""
    offer = _get_offer(db, offer_id)
    changes = request.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(offer, key, value)

    record_activity(
        db, "offer_updated", "offer", offer.id,
        performed_by=current_admin.id,
        description=f"Offer {offer.code} updated",
        metadata={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(offer)

    logger.info(
        "Offer updated",
        extra={"offer_id": offer.id, "fields": sorted(changes), "updated_by_id": current_admin.id},
    )
    return _offer_response(db, offer)


@router.delete("/{offer_id}", response_model=MessageResponse)
async def delete_offer(
    offer_id: int,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """
    Delete an offer.

    An offer that has been redeemed is deactivated instead, so its usage
    history stays attached to the orders that used it.
    """
    offer = _get_offer(db, offer_id)
    code = offer.code
    used = count_usage(db, offer.id)

    if used:
        offer.is_active = False
        message = f"Offer {code} has been deactivated ({used} redemptions kept)"
    else:
        db.delete(offer)
        message = f"Offer {code} has been deleted"

    record_activity(
        db, "offer_deleted", "offer", offer_id,
        performed_by=current_admin.id,
        description=message,
        metadata={"code": code, "soft": bool(used)},
    )
    db.commit()

    logger.info("Offer removed", extra={"offer_id": offer_id, "code": code, "soft": bool(used)})
    return {"message": message}


@router.get("/by-code/{code}", response_model=OfferResponse)
async def get_offer_by_code(
    code: str,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    offer = db.query(Offer).filter(Offer.code == normalize_code(code)).first()
    if not offer:
        raise NotFoundError("Offer", code)
    return _offer_response(db, offer)
