"""
Customer Remittances

A customer creates remittances, sees their own, uploads the proof of the
payment they made and may cancel one that has not been delivered yet;
everything else is done by admins.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.api.v1.deps import (
    get_current_actor,
    get_current_user,
    get_workflow_controller,
    read_proof_upload,
)
from app.core.status_config import EntityType, WorkflowAction, status_label
from app.db.session import get_db
from app.exceptions import NotFoundError
from app.models.remittance import Remittance
from app.models.remittance_type import RemittanceType
from app.models.user import User
from app.schemas.remittance import (
    RemittanceCreate,
    RemittanceListResponse,
    RemittanceQuoteRequest,
    RemittanceQuoteResponse,
    RemittanceResponse,
    RemittanceTypeResponse,
)
from app.schemas.workflow import ReasonRequest
from app.services.remittance_service import calculate_remittance, create_remittance, get_active_type
from app.services.workflow_controller import WorkflowController, entity_snapshot
from app.services.workflow_types import Actor, TransitionPayload

router = APIRouter(prefix="/remittances", tags=["Remittances"])

ENTITY = EntityType.REMITTANCE.value


@router.get("/types", response_model=List[RemittanceTypeResponse])
async def list_remittance_types(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active remittance types, in display order."""
    return (
        db.query(RemittanceType)
        .filter(RemittanceType.is_active.is_(True))
        .order_by(RemittanceType.display_order, RemittanceType.id)
        .all()
    )


@router.post("/quote", response_model=RemittanceQuoteResponse)
async def quote_remittance(
    request: RemittanceQuoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Commission and delivered amount for an amount, without creating anything."""
    remittance_type = get_active_type(db, request.remittance_type_id)
    amounts = calculate_remittance(remittance_type, request.amount)
    return RemittanceQuoteResponse(
        remittance_type_id=remittance_type.id,
        currency_sent=remittance_type.currency_code,
        currency_delivered=remittance_type.delivery_currency,
        max_delivery_days=remittance_type.max_delivery_days,
        **amounts,
    )


@router.post("", response_model=RemittanceResponse, status_code=status.HTTP_201_CREATED)
async def create_my_remittance(
    request: RemittanceCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a remittance; it waits at payment_pending for the payment proof."""
    remittance = create_remittance(db, current_user, request)
    return entity_snapshot(ENTITY, remittance, owner_view=True)


@router.get("", response_model=List[RemittanceListResponse])
async def list_my_remittances(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The current user's remittances, newest first."""
    remittances = (
        db.query(Remittance)
        .filter(Remittance.user_id == current_user.id)
        .order_by(desc(Remittance.created_at), desc(Remittance.id))
        .all()
    )
    items = []
    for remittance in remittances:
        item = RemittanceListResponse.model_validate(remittance)
        item.status_label = status_label(ENTITY, remittance.status)
        items.append(item)
    return items


@router.get("/{remittance_id}", response_model=RemittanceResponse)
async def get_my_remittance(
    remittance_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    remittance = (
        db.query(Remittance)
        .filter(Remittance.id == remittance_id, Remittance.user_id == current_user.id)
        .first()
    )
    if not remittance:
        raise NotFoundError("Remittance", remittance_id)
    return entity_snapshot(ENTITY, remittance, owner_view=True)


@router.post("/{remittance_id}/payment-proof", response_model=RemittanceResponse)
async def upload_payment_proof(
    remittance_id: int,
    file: Optional[UploadFile] = File(None),
    reference: Optional[str] = Form(None, max_length=100),
    notes: Optional[str] = Form(None),
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """
    Upload proof of payment (payment_pending -> payment_proof_uploaded).

    Only the owner of the remittance may do this. The image must be
    JPEG/PNG/WebP/GIF and at most 5 MB.
    """
    proof = await read_proof_upload(file)
    result = controller.perform(
        actor, ENTITY, remittance_id, WorkflowAction.SUBMIT_PAYMENT_PROOF.value,
        TransitionPayload(reference=reference, notes=notes),
        proof_file=proof,
    )
    return entity_snapshot(ENTITY, result.unwrap(), owner_view=True)


@router.post("/{remittance_id}/cancel", response_model=RemittanceResponse)
async def cancel_my_remittance(
    remittance_id: int,
    body: Optional[ReasonRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """Cancel your own remittance before it is delivered. A reason is required."""
    body = body or ReasonRequest()
    result = controller.perform(
        actor, ENTITY, remittance_id, WorkflowAction.CANCEL.value,
        TransitionPayload(reason=body.reason),
    )
    return entity_snapshot(ENTITY, result.unwrap(), owner_view=True)
