"""
Unit tests for the WorkflowController state machine and its side effects.
"""
import os
from datetime import datetime, timedelta

import pytest

from app.core.config import settings
from app.models.activity_log import ActivityLog
from app.services.change_feed import ChangeFeed
from app.services.notification_service import NotificationService
from app.services.proof_storage import ProofStorage
from app.services.workflow_controller import ActionState, WorkflowController, entity_snapshot
from app.services.workflow_types import ProofFile, TransitionPayload

from tests.factories import create_test_order, create_test_remittance

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _stored_files(root):
    if not os.path.isdir(root):
        return []
    return [os.path.join(d, f) for d, _, files in os.walk(root) for f in files]


@pytest.fixture
def feed():
    return ChangeFeed(max_size=10)


@pytest.fixture
def notifier():
    return NotificationService(max_per_user=10)


@pytest.fixture
def controller(db, feed, notifier):
    return WorkflowController(db, notifier=notifier, feed=feed)


class _BrokenNotifier:
    def notify(self, *args, **kwargs):
        raise RuntimeError("queue unavailable")


class TestBegin:

    @pytest.mark.unit
    def test_action_without_input_stays_idle(self, db, controller, admin_actor):
        order = create_test_order(db)
        db.commit()

        pending = controller.begin(admin_actor, "order", order.id, "validate_payment")

        assert pending.state == ActionState.IDLE
        assert pending.required_inputs == ()

    @pytest.mark.unit
    def test_action_needing_input_awaits_it(self, db, controller, admin_actor):
        order = create_test_order(db, status="processing", payment_status="validated")
        db.commit()

        pending = controller.begin(admin_actor, "order", order.id, "mark_dispatched")

        assert pending.state == ActionState.AWAITING_INPUT
        assert pending.required_inputs == ("tracking_info",)

    @pytest.mark.unit
    def test_dismiss_writes_nothing(self, db, controller, admin_actor, feed):
        order = create_test_order(db)
        db.commit()

        pending = controller.begin(admin_actor, "order", order.id, "cancel")
        controller.dismiss(pending)

        assert pending.state == ActionState.IDLE
        db.refresh(order)
        assert order.status == "pending"
        assert feed.since(0) == []

    @pytest.mark.unit
    def test_unauthorized_fails_immediately(self, db, controller, customer_actor, notifier):
        order = create_test_order(db)
        db.commit()

        pending = controller.begin(customer_actor, "order", order.id, "cancel")

        assert pending.state == ActionState.FAILED
        assert pending.result.error_code == "UNAUTHORIZED"
        assert notifier.peek(customer_actor.id)[0]["severity"] == "error"


class TestSubmit:

    @pytest.mark.unit
    def test_success_reports_once(self, db, controller, admin_actor, feed, notifier):
        order = create_test_order(db, status="processing", payment_status="validated")
        db.commit()

        pending = controller.begin(admin_actor, "order", order.id, "mark_dispatched")
        result = controller.submit(pending, TransitionPayload(tracking_info="1Z999AA1"))

        assert result.ok, result.error
        assert pending.state == ActionState.SUCCEEDED

        notes = notifier.peek(admin_actor.id)
        assert len(notes) == 1
        assert notes[0]["severity"] == "success"
        assert notes[0]["message"] == f"{order.order_number} marked as dispatched"

        logs = db.query(ActivityLog).filter(ActivityLog.action == "mark_dispatched").all()
        assert len(logs) == 1
        assert logs[0].performed_by == admin_actor.id
        assert logs[0].details["tracking_info"] == "1Z999AA1"

        changes = feed.since(0)
        assert len(changes) == 1
        assert changes[0]["entity"]["status"] == "dispatched"
        assert changes[0]["entity"]["version"] == 2

    @pytest.mark.unit
    def test_failure_only_notifies(self, db, controller, admin_actor, feed, notifier):
        order = create_test_order(db, status="processing", payment_status="validated")
        db.commit()

        result = controller.perform(
            admin_actor, "order", order.id, "mark_dispatched", TransitionPayload(tracking_info=" ")
        )

        assert result.error_code == "MISSING_TRACKING_INFO"
        assert [n["severity"] for n in notifier.peek(admin_actor.id)] == ["error"]
        assert db.query(ActivityLog).count() == 0
        assert feed.since(0) == []

    @pytest.mark.unit
    def test_side_effect_failure_keeps_success(self, db, admin_actor, feed):
        order = create_test_order(db)
        db.commit()
        controller = WorkflowController(db, notifier=_BrokenNotifier(), feed=feed)

        result = controller.perform(admin_actor, "order", order.id, "validate_payment")

        assert result.ok
        assert result.entity.payment_status == "validated"

    @pytest.mark.unit
    def test_same_entity_in_flight(self, db, controller, admin_actor):
        busy = create_test_order(db)
        other = create_test_order(db)
        db.commit()
        WorkflowController._in_flight.add(("order", busy.id))

        blocked = controller.perform(admin_actor, "order", busy.id, "validate_payment")
        allowed = controller.perform(admin_actor, "order", other.id, "validate_payment")

        assert blocked.error_code == "ACTION_IN_PROGRESS"
        assert allowed.ok
        db.refresh(busy)
        assert busy.payment_status == "pending"

    @pytest.mark.unit
    def test_in_flight_marker_is_released(self, db, controller, admin_actor):
        order = create_test_order(db)
        db.commit()

        controller.perform(admin_actor, "order", order.id, "cancel", TransitionPayload(reason=""))

        assert not WorkflowController.is_in_flight("order", order.id)


class TestProofUpload:

    @pytest.mark.unit
    def test_delivery_proof_is_stored_then_applied(self, db, controller, admin_actor):
        order = create_test_order(db, status="dispatched", payment_status="validated")
        db.commit()

        result = controller.perform(
            admin_actor, "order", order.id, "mark_delivered",
            proof_file=ProofFile("door.png", "image/png", PNG),
        )

        assert result.ok, result.error
        url = result.entity.delivery_proof_url
        assert url.startswith(f"{settings.PROOF_PUBLIC_BASE_URL}/orders/delivery/{order.order_number}_")
        assert url.endswith(".png")
        assert len(_stored_files(settings.PROOF_UPLOAD_DIR)) == 1

    @pytest.mark.unit
    def test_wrong_type_is_rejected_before_upload(self, db, controller, admin_actor):
        order = create_test_order(db, status="dispatched", payment_status="validated")
        db.commit()

        result = controller.perform(
            admin_actor, "order", order.id, "mark_delivered",
            proof_file=ProofFile("receipt.pdf", "application/pdf", b"%PDF-1.4"),
        )

        assert result.error_code == "INVALID_FILE_TYPE"
        assert _stored_files(settings.PROOF_UPLOAD_DIR) == []
        db.refresh(order)
        assert order.status == "dispatched"

    @pytest.mark.unit
    def test_oversized_file_is_rejected_before_upload(self, db, controller, admin_actor):
        remittance = create_test_remittance(db, status="processing")
        db.commit()

        result = controller.perform(
            admin_actor, "remittance", remittance.id, "confirm_delivery",
            proof_file=ProofFile("big.jpg", "image/jpeg", b"\xff" * (settings.PROOF_MAX_BYTES + 1)),
        )

        assert result.error_code == "FILE_TOO_LARGE"
        assert _stored_files(settings.PROOF_UPLOAD_DIR) == []

    @pytest.mark.unit
    def test_no_upload_for_an_action_that_will_be_refused(self, db, controller, admin_actor):
        order = create_test_order(db, status="processing", payment_status="validated")
        db.commit()

        result = controller.perform(
            admin_actor, "order", order.id, "mark_delivered",
            proof_file=ProofFile("door.png", "image/png", PNG),
        )

        assert result.error_code == "INVALID_TRANSITION"
        assert _stored_files(settings.PROOF_UPLOAD_DIR) == []

    @pytest.mark.unit
    def test_upload_failure_leaves_entity_untouched(self, db, admin_actor, tmp_path, feed, notifier):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        controller = WorkflowController(
            db, storage=ProofStorage(base_dir=str(blocker)), notifier=notifier, feed=feed
        )
        remittance = create_test_remittance(db, status="processing")
        db.commit()

        result = controller.perform(
            admin_actor, "remittance", remittance.id, "confirm_delivery",
            proof_file=ProofFile("cash.png", "image/png", PNG),
        )

        assert result.error_code == "UPLOAD_ERROR"
        db.refresh(remittance)
        assert remittance.status == "processing"
        assert remittance.delivery_proof_url is None

    @pytest.mark.unit
    def test_refused_write_removes_the_stored_proof(self, db, controller, admin_actor):
        order = create_test_order(db, status="dispatched", payment_status="validated")
        db.commit()

        result = controller.perform(
            admin_actor, "order", order.id, "mark_delivered",
            proof_file=ProofFile("door.png", "image/png", PNG),
            expected_version=order.version + 5,
        )

        assert result.error_code == "CONCURRENT_MODIFICATION"
        assert _stored_files(settings.PROOF_UPLOAD_DIR) == []
        db.refresh(order)
        assert order.status == "dispatched"
        assert order.delivery_proof_url is None

    @pytest.mark.unit
    def test_owner_submits_order_payment_proof(self, db, controller, customer_user, customer_actor):
        order = create_test_order(db, user=customer_user)
        db.commit()

        result = controller.perform(
            customer_actor, "order", order.id, "submit_payment_proof",
            TransitionPayload(reference="ZL-7781"),
            proof_file=ProofFile("zelle.png", "image/png", PNG),
        )

        assert result.ok, result.error
        order = result.entity
        assert order.payment_status == "pending"
        assert order.payment_reference == "ZL-7781"
        assert order.payment_proof_url.startswith(
            f"{settings.PROOF_PUBLIC_BASE_URL}/orders/payment/{order.order_number}_"
        )
        assert order.payment_proof_uploaded_at is not None
        assert order.version == 2


class TestSnapshot:

    @pytest.mark.unit
    def test_owner_view_hides_admin_actions(self, db, customer_user):
        remittance = create_test_remittance(db, user=customer_user, status="payment_pending")
        db.commit()

        admin_view = entity_snapshot("remittance", remittance)
        owner_view = entity_snapshot("remittance", remittance, owner_view=True)

        assert admin_view["available_actions"] == ["cancel"]
        assert owner_view["available_actions"] == ["submit_payment_proof", "cancel"]

    @pytest.mark.unit
    def test_owner_cannot_cancel_a_delivered_remittance(self, db, customer_user):
        remittance = create_test_remittance(db, user=customer_user, status="delivered")
        db.commit()

        assert entity_snapshot("remittance", remittance)["available_actions"] == ["complete", "cancel"]
        assert entity_snapshot("remittance", remittance, owner_view=True)["available_actions"] == []

    @pytest.mark.unit
    def test_order_in_processing_counts_days(self, db):
        order = create_test_order(
            db, status="processing", payment_status="validated",
            processing_started_at=datetime.utcnow() - timedelta(days=2, hours=3),
        )
        db.commit()

        assert entity_snapshot("order", order)["days_in_processing"] == 3

    @pytest.mark.unit
    def test_days_in_processing_only_while_processing(self, db):
        order = create_test_order(
            db, status="dispatched", payment_status="validated",
            processing_started_at=datetime.utcnow() - timedelta(days=4),
        )
        db.commit()

        assert entity_snapshot("order", order)["days_in_processing"] is None
