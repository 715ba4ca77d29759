"""
Test data scenarios.

Each scenario creates a complete set of orders / remittances spread across
the workflow, for tests that look at lists, stats or alerts.

Scenarios:
    - empty: Just an admin user
    - order-pipeline: One order in every order state
    - remittance-pipeline: Remittances in every state, some near their deadline
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.orm import Session

from tests.factories import (
    create_test_user,
    create_test_order,
    create_test_remittance,
    create_validated_remittance,
    reset_sequences,
)


def seed_empty(db: Session) -> Dict[str, Any]:
    """Empty scenario - just an admin user for login."""
    user = create_test_user(
        db,
        email="admin@remitdesk.test",
        account_type="admin",
        first_name="Admin",
        last_name="User",
    )
    db.commit()
    return {"scenario": "empty", "admin_id": user.id}


def seed_order_pipeline(db: Session) -> Dict[str, Any]:
    """
    One order per state:
    - pending / payment pending (awaiting validation)
    - pending / payment validated
    - processing, dispatched, delivered
    - completed (total 100.00), cancelled (payment rejected)
    """
    customer = create_test_user(db, email="buyer@remitdesk.test")
    now = datetime.utcnow()

    orders = {
        "awaiting_payment": create_test_order(db, user=customer),
        "validated": create_test_order(db, user=customer, payment_status="validated"),
        "processing": create_test_order(
            db, user=customer, status="processing", payment_status="validated"
        ),
        "dispatched": create_test_order(
            db, user=customer, status="dispatched", payment_status="validated",
            tracking_info="TRK-001",
        ),
        "delivered": create_test_order(
            db, user=customer, status="delivered", payment_status="validated",
            tracking_info="TRK-002", delivery_proof_url="/uploads/proofs/orders/delivery/d.png",
        ),
        "completed": create_test_order(
            db, user=customer, status="completed", payment_status="validated",
            total_amount=Decimal("100.00"), completed_at=now,
        ),
        "rejected": create_test_order(
            db, user=customer, status="cancelled", payment_status="rejected",
            rejection_reason="Transfer not received", cancellation_reason="Transfer not received",
        ),
    }
    db.commit()
    return {
        "scenario": "order-pipeline",
        "customer_id": customer.id,
        "orders": {key: order.id for key, order in orders.items()},
    }


def seed_remittance_pipeline(db: Session) -> Dict[str, Any]:
    """
    Remittances across the workflow:
    - payment_pending, payment_proof_uploaded
    - payment_validated due in 12 h (error), processing due in 36 h (warning)
    - processing due in 5 days (no alert), processing overdue by 2 h
    - completed after 10 h of processing (amount 200.00)
    """
    customer = create_test_user(db, email="sender@remitdesk.test")
    now = datetime.utcnow()

    remittances = {
        "pending": create_test_remittance(db, user=customer),
        "proof_uploaded": create_test_remittance(
            db, user=customer, status="payment_proof_uploaded",
            payment_proof_url="/uploads/proofs/remittances/payment/p.png",
        ),
        "due_soon": create_validated_remittance(db, user=customer, hours_left=12),
        "due_in_36h": create_validated_remittance(
            db, user=customer, hours_left=36, status="processing"
        ),
        "due_later": create_validated_remittance(
            db, user=customer, hours_left=24 * 5, status="processing"
        ),
        "overdue": create_validated_remittance(
            db, user=customer, hours_left=-2, status="processing"
        ),
        "completed": create_test_remittance(
            db, user=customer, status="completed", amount_sent=Decimal("200.00"),
            created_at=now - timedelta(hours=10), completed_at=now,
        ),
    }
    db.commit()
    return {
        "scenario": "remittance-pipeline",
        "customer_id": customer.id,
        "remittances": {key: r.id for key, r in remittances.items()},
    }


# =============================================================================
# SCENARIO REGISTRY
# =============================================================================

SCENARIOS = {
    "empty": seed_empty,
    "order-pipeline": seed_order_pipeline,
    "remittance-pipeline": seed_remittance_pipeline,
}


def seed_scenario(db: Session, scenario_name: str) -> Dict[str, Any]:
    """
    Seed a test scenario by name.

    Raises:
        ValueError: If scenario name is unknown
    """
    if scenario_name not in SCENARIOS:
        available = ", ".join(sorted(SCENARIOS.keys()))
        raise ValueError(f"Unknown scenario: {scenario_name}. Available: {available}")

    reset_sequences()
    return SCENARIOS[scenario_name](db)
