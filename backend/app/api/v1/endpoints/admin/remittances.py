"""
Admin Remittances - list, detail, deadline alerts and workflow actions
"""
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from app.api.v1.deps import (
    get_current_actor,
    get_current_admin_user,
    get_pagination_params,
    get_workflow_controller,
    read_proof_upload,
)
from app.core.status_config import EntityType, WorkflowAction, describe_transitions, status_label
from app.db.session import get_db
from app.exceptions import NotFoundError
from app.models.remittance import Remittance
from app.models.status_history import StatusHistory
from app.models.user import User
from app.schemas.common import ListResponse, PaginationParams
from app.schemas.remittance import (
    RemittanceAlertResponse,
    RemittanceListResponse,
    RemittanceResponse,
)
from app.schemas.workflow import (
    ActionRequest,
    ReasonRequest,
    StatusHistoryResponse,
    StatusTransitionsResponse,
)
from app.services.dashboard_stats import delivery_alert, remittances_needing_alert
from app.services.workflow_controller import WorkflowController, entity_snapshot
from app.services.workflow_types import Actor, ProofFile, TransitionPayload

router = APIRouter(prefix="/remittances", tags=["Admin - Remittances"])

ENTITY = EntityType.REMITTANCE.value


def _run(
    controller: WorkflowController,
    actor: Actor,
    remittance_id: int,
    action: WorkflowAction,
    payload: TransitionPayload,
    expected_version: Optional[int] = None,
    proof_file: Optional[ProofFile] = None,
) -> dict:
    result = controller.perform(
        actor, ENTITY, remittance_id, action.value, payload,
        proof_file=proof_file, expected_version=expected_version,
    )
    return entity_snapshot(ENTITY, result.unwrap())


def _list_item(remittance: Remittance) -> RemittanceListResponse:
    item = RemittanceListResponse.model_validate(remittance)
    item.status_label = status_label(ENTITY, remittance.status)
    return item


# ============================================================================
# READ
# ============================================================================

@router.get("", response_model=ListResponse[RemittanceListResponse])
async def list_remittances(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    status: Optional[str] = Query(None, description="Filter by remittance status"),
    delivery_method: Optional[str] = Query(None, description="cash, transfer, card, mobile_wallet"),
    search: Optional[str] = Query(None, description="Remittance number, recipient or customer email"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """List remittances, newest first."""
    query = db.query(Remittance)
    if status:
        query = query.filter(Remittance.status == status)
    if delivery_method:
        query = query.filter(Remittance.delivery_method == delivery_method)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.outerjoin(User, Remittance.user_id == User.id).filter(
            or_(
                Remittance.remittance_number.ilike(pattern),
                Remittance.recipient_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    total = query.count()
    remittances = (
        query.order_by(desc(Remittance.created_at), desc(Remittance.id))
        .offset(pagination.offset)
        .limit(pagination.limit)
        .all()
    )
    items = [_list_item(r) for r in remittances]

    return {
        "items": items,
        "pagination": {
            "total": total,
            "offset": pagination.offset,
            "limit": pagination.limit,
            "returned": len(items),
        },
    }


@router.get("/status-transitions", response_model=StatusTransitionsResponse)
async def get_remittance_status_transitions(
    current_user: User = Depends(get_current_admin_user),
):
    """Transition table for remittances."""
    return describe_transitions(ENTITY)


@router.get("/alerts", response_model=List[RemittanceAlertResponse])
async def get_remittance_alerts(
    hours: Optional[int] = Query(None, ge=1, le=24 * 14, description="Look-ahead window in hours"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Validated / processing remittances due soon (or overdue), soonest first."""
    return [
        {"remittance": _list_item(r), "alert": delivery_alert(r)}
        for r in remittances_needing_alert(db, hours=hours)
    ]


@router.get("/{remittance_id}", response_model=RemittanceResponse)
async def get_remittance(
    remittance_id: int,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Remittance detail with the actions available right now."""
    remittance = db.query(Remittance).filter(Remittance.id == remittance_id).first()
    if not remittance:
        raise NotFoundError("Remittance", remittance_id)
    return entity_snapshot(ENTITY, remittance)


@router.get("/{remittance_id}/history", response_model=List[StatusHistoryResponse])
async def get_remittance_history(
    remittance_id: int,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Status history for a remittance, oldest first."""
    if not db.query(Remittance.id).filter(Remittance.id == remittance_id).first():
        raise NotFoundError("Remittance", remittance_id)
    return (
        db.query(StatusHistory)
        .filter(StatusHistory.entity_type == ENTITY, StatusHistory.entity_id == remittance_id)
        .order_by(StatusHistory.created_at, StatusHistory.id)
        .all()
    )


# ============================================================================
# WORKFLOW ACTIONS
# ============================================================================

@router.post("/{remittance_id}/validate-payment", response_model=RemittanceResponse)
async def validate_remittance_payment(
    remittance_id: int,
    body: Optional[ActionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """payment_proof_uploaded -> payment_validated."""
    body = body or ActionRequest()
    return _run(
        controller, actor, remittance_id, WorkflowAction.VALIDATE_PAYMENT,
        TransitionPayload(notes=body.notes), body.expected_version,
    )


@router.post("/{remittance_id}/reject-payment", response_model=RemittanceResponse)
async def reject_remittance_payment(
    remittance_id: int,
    body: Optional[ReasonRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """payment_proof_uploaded -> payment_rejected; a reason is required."""
    body = body or ReasonRequest()
    return _run(
        controller, actor, remittance_id, WorkflowAction.REJECT_PAYMENT,
        TransitionPayload(reason=body.reason, notes=body.notes), body.expected_version,
    )


@router.post("/{remittance_id}/start-processing", response_model=RemittanceResponse)
async def start_remittance_processing(
    remittance_id: int,
    body: Optional[ActionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """payment_validated -> processing."""
    body = body or ActionRequest()
    return _run(
        controller, actor, remittance_id, WorkflowAction.START_PROCESSING,
        TransitionPayload(notes=body.notes), body.expected_version,
    )


@router.post("/{remittance_id}/confirm-delivery", response_model=RemittanceResponse)
async def confirm_remittance_delivery(
    remittance_id: int,
    file: Optional[UploadFile] = File(None),
    notes: Optional[str] = Form(None),
    expected_version: Optional[int] = Form(None),
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """
    processing -> delivered, with the delivery proof image.

    The image must be JPEG/PNG/WebP/GIF and at most 5 MB.
    """
    proof = await read_proof_upload(file)
    return _run(
        controller, actor, remittance_id, WorkflowAction.CONFIRM_DELIVERY,
        TransitionPayload(notes=notes), expected_version, proof_file=proof,
    )


@router.post("/{remittance_id}/complete", response_model=RemittanceResponse)
async def complete_remittance(
    remittance_id: int,
    body: Optional[ActionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """delivered -> completed."""
    body = body or ActionRequest()
    return _run(
        controller, actor, remittance_id, WorkflowAction.COMPLETE,
        TransitionPayload(notes=body.notes), body.expected_version,
    )


@router.post("/{remittance_id}/cancel", response_model=RemittanceResponse)
async def cancel_remittance(
    remittance_id: int,
    body: Optional[ReasonRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """Cancel a non-terminal remittance; a reason is required."""
    body = body or ReasonRequest()
    return _run(
        controller, actor, remittance_id, WorkflowAction.CANCEL,
        TransitionPayload(reason=body.reason, notes=body.notes), body.expected_version,
    )
