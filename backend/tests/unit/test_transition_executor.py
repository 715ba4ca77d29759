"""
Unit tests for TransitionExecutor and WorkflowStore.

Uses the in-memory SQLite session from conftest; every call goes through the
same conditional UPDATE the API uses.
"""
import pytest

from app.core.config import settings
from app.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    MissingReasonError,
    NotFoundError,
    UnauthorizedError,
)
from app.models.status_history import StatusHistory
from app.services.transition_executor import TransitionExecutor
from app.services.workflow_store import WorkflowStore
from app.services.workflow_types import Actor, TransitionPayload

from tests.factories import create_test_order, create_test_remittance, create_test_user


def _history(db, entity_type, entity_id):
    return (
        db.query(StatusHistory)
        .filter(StatusHistory.entity_type == entity_type, StatusHistory.entity_id == entity_id)
        .order_by(StatusHistory.id)
        .all()
    )


class TestAuthorization:

    @pytest.mark.unit
    def test_customer_cannot_run_admin_actions(self, db, customer_actor):
        order = create_test_order(db)
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "order", order.id, "validate_payment", customer_actor
        )

        assert not result.ok
        assert isinstance(result.error, UnauthorizedError)
        assert result.error.status_code == 403
        db.refresh(order)
        assert order.payment_status == "pending"

    @pytest.mark.unit
    def test_owner_may_submit_payment_proof(self, db, customer_user, customer_actor):
        remittance = create_test_remittance(db, user=customer_user)
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "remittance", remittance.id, "submit_payment_proof", customer_actor,
            TransitionPayload(proof_url="/uploads/proofs/p.png", reference="ZELLE-42"),
        )

        assert result.ok, result.error
        assert result.entity.status == "payment_proof_uploaded"
        assert result.entity.payment_reference == "ZELLE-42"
        assert result.entity.payment_proof_uploaded_at is not None

    @pytest.mark.unit
    def test_other_customer_cannot_submit_payment_proof(self, db, customer_actor):
        stranger = create_test_user(db, email="stranger@example.com")
        remittance = create_test_remittance(db, user=stranger)
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "remittance", remittance.id, "submit_payment_proof", customer_actor,
            TransitionPayload(proof_url="/uploads/proofs/p.png"),
        )

        assert isinstance(result.error, UnauthorizedError)

    @pytest.mark.unit
    def test_owner_may_cancel_own_remittance_before_delivery(self, db, customer_user, customer_actor):
        remittance = create_test_remittance(db, user=customer_user, status="payment_proof_uploaded")
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "remittance", remittance.id, "cancel", customer_actor,
            TransitionPayload(reason="Paid twice by mistake"),
        )

        assert result.ok, result.error
        assert result.entity.status == "cancelled"
        assert result.entity.cancelled_by == customer_actor.id

    @pytest.mark.unit
    def test_owner_cannot_cancel_delivered_remittance(self, db, customer_user, customer_actor):
        remittance = create_test_remittance(db, user=customer_user, status="delivered")
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "remittance", remittance.id, "cancel", customer_actor,
            TransitionPayload(reason="Never arrived"),
        )

        assert isinstance(result.error, UnauthorizedError)
        db.refresh(remittance)
        assert remittance.status == "delivered"

    @pytest.mark.unit
    def test_owner_cannot_cancel_an_order(self, db, customer_user, customer_actor):
        order = create_test_order(db, user=customer_user)
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "order", order.id, "cancel", customer_actor, TransitionPayload(reason="Changed my mind"),
        )

        assert isinstance(result.error, UnauthorizedError)


class TestApplyTransition:

    @pytest.mark.unit
    def test_validate_payment_stamps_audit_and_bumps_version(self, db, admin_actor):
        order = create_test_order(db)
        db.commit()
        assert order.version == 1

        result = TransitionExecutor(db).apply_transition("order", order.id, "validate_payment", admin_actor)

        assert result.ok, result.error
        assert result.entity.payment_status == "validated"
        assert result.entity.status == "pending"
        assert result.entity.validated_by == admin_actor.id
        assert result.entity.validated_at is not None
        assert result.entity.version == 2

        history = _history(db, "order", order.id)
        assert [(h.field, h.old_value, h.new_value) for h in history] == [
            ("payment_status", "pending", "validated")
        ]
        assert history[0].changed_by == admin_actor.id

    @pytest.mark.unit
    def test_reject_payment_also_cancels(self, db, admin_actor):
        order = create_test_order(db)
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "order", order.id, "reject_payment", admin_actor,
            TransitionPayload(reason="  Transfer never arrived  "),
        )

        assert result.ok, result.error
        entity = result.entity
        assert entity.payment_status == "rejected"
        assert entity.status == "cancelled"
        assert entity.rejection_reason == "Transfer never arrived"
        assert entity.cancellation_reason == "Transfer never arrived"
        assert entity.rejected_by == admin_actor.id
        assert entity.cancelled_by == admin_actor.id

        changes = [(h.field, h.old_value, h.new_value) for h in _history(db, "order", order.id)]
        assert changes == [
            ("payment_status", "pending", "rejected"),
            ("status", "pending", "cancelled"),
        ]

    @pytest.mark.unit
    def test_blank_reason_writes_nothing(self, db, admin_actor):
        order = create_test_order(db, status="processing", payment_status="validated")
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "order", order.id, "cancel", admin_actor, TransitionPayload(reason="   ")
        )

        assert isinstance(result.error, MissingReasonError)
        db.refresh(order)
        assert order.status == "processing"
        assert order.version == 1
        assert _history(db, "order", order.id) == []

    @pytest.mark.unit
    def test_missing_entity(self, db, admin_actor):
        result = TransitionExecutor(db).apply_transition("order", 9999, "complete", admin_actor)
        assert isinstance(result.error, NotFoundError)
        assert result.error_code == "NOT_FOUND"

    @pytest.mark.unit
    def test_unknown_action(self, db, admin_actor):
        order = create_test_order(db)
        db.commit()
        result = TransitionExecutor(db).apply_transition("order", order.id, "refund", admin_actor)
        assert isinstance(result.error, InvalidTransitionError)

    @pytest.mark.unit
    def test_auto_complete_on_delivery(self, db, admin_actor, monkeypatch):
        monkeypatch.setattr(settings, "AUTO_COMPLETE_ON_DELIVERY", True)
        order = create_test_order(db, status="dispatched", payment_status="validated")
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "order", order.id, "mark_delivered", admin_actor,
            TransitionPayload(proof_url="/uploads/proofs/orders/delivery/d.png"),
        )

        assert result.ok, result.error
        assert result.entity.status == "completed"
        assert result.entity.delivered_at is not None
        assert result.entity.completed_at is not None
        assert result.entity.version == 2
        changes = [(h.old_value, h.new_value) for h in _history(db, "order", order.id)]
        assert changes == [("dispatched", "delivered"), ("delivered", "completed")]

    @pytest.mark.unit
    def test_manual_completion_by_default(self, db, admin_actor):
        remittance = create_test_remittance(db, status="processing")
        db.commit()

        result = TransitionExecutor(db).apply_transition(
            "remittance", remittance.id, "confirm_delivery", admin_actor,
            TransitionPayload(proof_url="/uploads/proofs/r.png", notes="Handed to recipient"),
        )

        assert result.entity.status == "delivered"
        assert result.entity.delivery_notes == "Handed to recipient"
        assert result.entity.completed_at is None


class TestWriteTransition:

    @pytest.mark.unit
    def test_pair_not_in_table_is_refused_before_writing(self, db, admin_user):
        order = create_test_order(db)
        db.commit()

        result = WorkflowStore(db).write_transition(
            "order", order.id, "pending", "delivered", admin_user.id, action="mark_delivered"
        )

        assert isinstance(result.error, InvalidTransitionError)
        db.refresh(order)
        assert order.status == "pending"
        assert order.version == 1
        assert _history(db, "order", order.id) == []

    @pytest.mark.unit
    def test_second_write_with_same_version_loses(self, db, admin_user, second_admin):
        order = create_test_order(db)
        db.commit()
        store = WorkflowStore(db)

        first = store.write_transition(
            "order", order.id, "pending", "cancelled", admin_user.id,
            action="cancel", expected_version=1, changes={"cancellation_reason": "dup"},
        )
        second = store.write_transition(
            "order", order.id, "pending", "cancelled", second_admin.id,
            action="cancel", expected_version=1, changes={"cancellation_reason": "other"},
        )

        assert first.ok
        assert isinstance(second.error, InvalidTransitionError)
        assert second.error.details["current_state"] == "cancelled"
        db.refresh(order)
        assert order.cancellation_reason == "dup"
        assert len(_history(db, "order", order.id)) == 1

    @pytest.mark.unit
    def test_stale_version_with_same_status(self, db, admin_actor):
        order = create_test_order(db)
        db.commit()
        executor = TransitionExecutor(db)

        assert executor.apply_transition("order", order.id, "validate_payment", admin_actor).ok

        # status is still pending, but the admin is looking at version 1
        result = executor.apply_transition(
            "order", order.id, "start_processing", admin_actor, expected_version=1
        )

        assert isinstance(result.error, ConcurrentModificationError)
        assert result.error.details["version"] == 2
        db.refresh(order)
        assert order.status == "pending"
