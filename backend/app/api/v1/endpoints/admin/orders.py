"""
Admin Orders - list, detail and workflow actions

Every action endpoint goes through the WorkflowController; a failed action
raises its typed error, which the global handler renders.
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
from app.models.order import Order
from app.models.status_history import StatusHistory
from app.models.user import User
from app.schemas.common import ListResponse, PaginationParams
from app.schemas.order import OrderListResponse, OrderResponse
from app.schemas.workflow import (
    ActionRequest,
    DispatchRequest,
    ReasonRequest,
    StatusHistoryResponse,
    StatusTransitionsResponse,
)
from app.services.workflow_controller import WorkflowController, entity_snapshot
from app.services.workflow_types import Actor, ProofFile, TransitionPayload

router = APIRouter(prefix="/orders", tags=["Admin - Orders"])

ENTITY = EntityType.ORDER.value


def _run(
    controller: WorkflowController,
    actor: Actor,
    order_id: int,
    action: WorkflowAction,
    payload: TransitionPayload,
    expected_version: Optional[int] = None,
    proof_file: Optional[ProofFile] = None,
) -> dict:
    result = controller.perform(
        actor, ENTITY, order_id, action.value, payload,
        proof_file=proof_file, expected_version=expected_version,
    )
    return entity_snapshot(ENTITY, result.unwrap())


# ============================================================================
# READ
# ============================================================================

@router.get("", response_model=ListResponse[OrderListResponse])
async def list_orders(
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    status: Optional[str] = Query(None, description="Filter by order status"),
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    search: Optional[str] = Query(None, description="Order number or customer email"),
    variant: Optional[str] = Query(None, description="Label variant (e.g. storefront)"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """List orders, newest first."""
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.outerjoin(User, Order.user_id == User.id).filter(
            or_(Order.order_number.ilike(pattern), User.email.ilike(pattern))
        )

    total = query.count()
    orders = (
        query.order_by(desc(Order.created_at), desc(Order.id))
        .offset(pagination.offset)
        .limit(pagination.limit)
        .all()
    )

    items = []
    for order in orders:
        item = OrderListResponse.model_validate(order)
        item.status_label = status_label(ENTITY, order.status, variant)
        items.append(item)

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
async def get_order_status_transitions(
    current_user: User = Depends(get_current_admin_user),
):
    """Transition table for orders (drives which buttons the admin UI shows)."""
    return describe_transitions(ENTITY)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    variant: Optional[str] = Query(None, description="Label variant (e.g. storefront)"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Order detail with its items and the actions available right now."""
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError("Order", order_id)
    return entity_snapshot(ENTITY, order, variant)


@router.get("/{order_id}/history", response_model=List[StatusHistoryResponse])
async def get_order_history(
    order_id: int,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Status history for an order, oldest first."""
    if not db.query(Order.id).filter(Order.id == order_id).first():
        raise NotFoundError("Order", order_id)
    return (
        db.query(StatusHistory)
        .filter(StatusHistory.entity_type == ENTITY, StatusHistory.entity_id == order_id)
        .order_by(StatusHistory.created_at, StatusHistory.id)
        .all()
    )


# ============================================================================
# WORKFLOW ACTIONS
# ============================================================================

@router.post("/{order_id}/validate-payment", response_model=OrderResponse)
async def validate_order_payment(
    order_id: int,
    body: Optional[ActionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """Mark the customer's payment as validated (payment_status pending -> validated)."""
    body = body or ActionRequest()
    return _run(
        controller, actor, order_id, WorkflowAction.VALIDATE_PAYMENT,
        TransitionPayload(notes=body.notes), body.expected_version,
    )


@router.post("/{order_id}/reject-payment", response_model=OrderResponse)
async def reject_order_payment(
    order_id: int,
    body: Optional[ReasonRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """Reject the payment; the order is cancelled with the same reason."""
    body = body or ReasonRequest()
    return _run(
        controller, actor, order_id, WorkflowAction.REJECT_PAYMENT,
        TransitionPayload(reason=body.reason, notes=body.notes), body.expected_version,
    )


@router.post("/{order_id}/start-processing", response_model=OrderResponse)
async def start_order_processing(
    order_id: int,
    body: Optional[ActionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """pending -> processing; requires a validated payment."""
    body = body or ActionRequest()
    return _run(
        controller, actor, order_id, WorkflowAction.START_PROCESSING,
        TransitionPayload(notes=body.notes), body.expected_version,
    )


@router.post("/{order_id}/dispatch", response_model=OrderResponse)
async def dispatch_order(
    order_id: int,
    body: Optional[DispatchRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """processing -> dispatched; tracking info is required."""
    body = body or DispatchRequest()
    return _run(
        controller, actor, order_id, WorkflowAction.MARK_DISPATCHED,
        TransitionPayload(tracking_info=body.tracking_info, notes=body.notes), body.expected_version,
    )


@router.post("/{order_id}/delivery-proof", response_model=OrderResponse)
async def upload_order_delivery_proof(
    order_id: int,
    file: Optional[UploadFile] = File(None),
    notes: Optional[str] = Form(None),
    expected_version: Optional[int] = Form(None),
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """
    Upload the delivery proof image and mark the order delivered.

    The image must be JPEG/PNG/WebP/GIF and at most 5 MB. Without a file the
    call only succeeds if a proof is already stored (or proofs are optional).
    """
    proof = await read_proof_upload(file)
    return _run(
        controller, actor, order_id, WorkflowAction.MARK_DELIVERED,
        TransitionPayload(notes=notes), expected_version, proof_file=proof,
    )


@router.post("/{order_id}/complete", response_model=OrderResponse)
async def complete_order(
    order_id: int,
    body: Optional[ActionRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """delivered -> completed."""
    body = body or ActionRequest()
    return _run(
        controller, actor, order_id, WorkflowAction.COMPLETE,
        TransitionPayload(notes=body.notes), body.expected_version,
    )


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    body: Optional[ReasonRequest] = None,
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """Cancel a non-terminal order; a reason is required."""
    body = body or ReasonRequest()
    return _run(
        controller, actor, order_id, WorkflowAction.CANCEL,
        TransitionPayload(reason=body.reason, notes=body.notes), body.expected_version,
    )
