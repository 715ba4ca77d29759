"""
Admin Remittance Types - corridors, rates, commissions and limits
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import get_current_admin_user
from app.db.session import get_db
from app.exceptions import DuplicateError, NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.remittance_type import RemittanceType
from app.models.user import User
from app.schemas.remittance import (
    RemittanceTypeCreate,
    RemittanceTypeResponse,
    RemittanceTypeUpdate,
)
from app.services.event_service import record_activity

logger = get_logger(__name__)

router = APIRouter(prefix="/remittance-types", tags=["Admin - Remittance Types"])


def _get_type(db: Session, type_id: int) -> RemittanceType:
    remittance_type = db.query(RemittanceType).filter(RemittanceType.id == type_id).first()
    if not remittance_type:
        raise NotFoundError("Remittance type", type_id)
    return remittance_type


def _check_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(RemittanceType.id).filter(RemittanceType.name == name)
    if exclude_id is not None:
        query = query.filter(RemittanceType.id != exclude_id)
    if query.first():
        raise DuplicateError("Remittance type", field="name", value=name)


@router.get("", response_model=List[RemittanceTypeResponse])
async def list_remittance_types(
    active_only: bool = Query(False, description="Only types customers can pick"),
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    query = db.query(RemittanceType)
    if active_only:
        query = query.filter(RemittanceType.is_active.is_(True))
    return query.order_by(RemittanceType.display_order, RemittanceType.id).all()


@router.post("", response_model=RemittanceTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_remittance_type(
    request: RemittanceTypeCreate,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Create a remittance type. Names must be unique."""
    _check_name(db, request.name)

    remittance_type = RemittanceType(**request.model_dump())
    db.add(remittance_type)
    db.flush()
    record_activity(
        db, "remittance_type_created", "remittance_type", remittance_type.id,
        performed_by=current_admin.id,
        description=f"Remittance type {remittance_type.name} created",
        metadata={
            "exchange_rate": str(remittance_type.exchange_rate),
            "delivery_currency": remittance_type.delivery_currency,
        },
    )
    db.commit()
    db.refresh(remittance_type)

    logger.info(
        "Remittance type created",
        extra={"remittance_type_id": remittance_type.id, "created_by_id": current_admin.id},
    )
    return remittance_type


@router.get("/{type_id}", response_model=RemittanceTypeResponse)
async def get_remittance_type(
    type_id: int,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    return _get_type(db, type_id)


@router.patch("/{type_id}", response_model=RemittanceTypeResponse)
async def update_remittance_type(
    type_id: int,
    request: RemittanceTypeUpdate,
    current_admin: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """
    Partial update. Rate and commission changes apply to new remittances
    only; existing ones keep the amounts they were created with.
    """
    remittance_type = _get_type(db, type_id)
    changes = request.model_dump(exclude_unset=True)
    if "name" in changes:
        _check_name(db, changes["name"], exclude_id=type_id)

    min_amount = changes.get("min_amount", remittance_type.min_amount)
    max_amount = changes.get("max_amount", remittance_type.max_amount)
    if max_amount is not None and min_amount is not None and max_amount < min_amount:
        raise ValidationError("max_amount must be at least min_amount", field="max_amount")

    for key, value in changes.items():
        setattr(remittance_type, key, value)

    record_activity(
        db, "remittance_type_updated", "remittance_type", remittance_type.id,
        performed_by=current_admin.id,
        description=f"Remittance type {remittance_type.name} updated",
        metadata={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(remittance_type)

    logger.info(
        "Remittance type updated",
        extra={"remittance_type_id": type_id, "fields": sorted(changes), "updated_by_id": current_admin.id},
    )
    return remittance_type
