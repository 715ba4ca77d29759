"""
Customer Orders

Checkout, the customer's own orders and the payment proof upload. Payment
validation and fulfilment are admin actions.
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
from app.models.order import Order
from app.models.user import User
from app.schemas.order import OrderCreate, OrderListResponse, OrderResponse
from app.services.order_service import create_order
from app.services.workflow_controller import WorkflowController, entity_snapshot
from app.services.workflow_types import Actor, TransitionPayload

router = APIRouter(prefix="/orders", tags=["Orders"])

ENTITY = EntityType.ORDER.value
# Customers see the storefront wording ("Shipped", "Preparing")
VARIANT = "storefront"


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    request: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Place an order; an offer code, if given, must be valid for this cart."""
    order = create_order(db, current_user, request)
    return entity_snapshot(ENTITY, order, VARIANT, owner_view=True)


@router.get("", response_model=List[OrderListResponse])
async def list_my_orders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The current user's orders, newest first."""
    orders = (
        db.query(Order)
        .filter(Order.user_id == current_user.id)
        .order_by(desc(Order.created_at), desc(Order.id))
        .all()
    )
    items = []
    for order in orders:
        item = OrderListResponse.model_validate(order)
        item.status_label = status_label(ENTITY, order.status, VARIANT)
        items.append(item)
    return items


@router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = (
        db.query(Order)
        .filter(Order.id == order_id, Order.user_id == current_user.id)
        .first()
    )
    if not order:
        raise NotFoundError("Order", order_id)
    return entity_snapshot(ENTITY, order, VARIANT, owner_view=True)


@router.post("/{order_id}/payment-proof", response_model=OrderResponse)
async def upload_order_payment_proof(
    order_id: int,
    file: Optional[UploadFile] = File(None),
    reference: Optional[str] = Form(None, max_length=100),
    notes: Optional[str] = Form(None),
    actor: Actor = Depends(get_current_actor),
    controller: WorkflowController = Depends(get_workflow_controller),
):
    """
    Attach proof of payment to your pending order.

    The order stays pending until an admin validates the payment; a new
    upload replaces the previous proof.
    """
    proof = await read_proof_upload(file)
    result = controller.perform(
        actor, ENTITY, order_id, WorkflowAction.SUBMIT_PAYMENT_PROOF.value,
        TransitionPayload(reference=reference, notes=notes),
        proof_file=proof,
    )
    return entity_snapshot(ENTITY, result.unwrap(), VARIANT, owner_view=True)
