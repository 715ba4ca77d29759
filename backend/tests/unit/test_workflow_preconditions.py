"""
Unit tests for workflow precondition checks (no database needed).
"""
import pytest

from app.core.config import settings
from app.core.status_config import get_transition
from app.exceptions import (
    FileTooLargeError,
    InvalidFileTypeError,
    InvalidTransitionError,
    MissingProofError,
    MissingReasonError,
    MissingTrackingInfoError,
)
from app.services.workflow_preconditions import (
    check_preconditions,
    check_reason,
    check_tracking_info,
    delivery_proof_required,
    validate_proof_file,
)
from app.services.workflow_types import TransitionPayload


class _Entity:
    def __init__(self, **fields):
        self.delivery_proof_url = None
        self.payment_proof_url = None
        self.__dict__.update(fields)


class TestRequiredInputs:

    @pytest.mark.unit
    @pytest.mark.parametrize("reason", [None, "", "   ", "\n\t"])
    def test_blank_reason_is_missing(self, reason):
        assert isinstance(check_reason(reason, "cancel"), MissingReasonError)

    @pytest.mark.unit
    def test_reason_with_text(self):
        assert check_reason("  customer asked  ") is None

    @pytest.mark.unit
    def test_blank_tracking_is_missing(self):
        assert isinstance(check_tracking_info("  "), MissingTrackingInfoError)
        assert check_tracking_info("1Z999AA10123456784") is None


class TestProofFile:

    @pytest.mark.unit
    @pytest.mark.parametrize("mime", ["image/jpeg", "image/png", "image/webp", "image/gif"])
    def test_accepted_types(self, mime):
        assert validate_proof_file("proof", mime, 1024) is None

    @pytest.mark.unit
    def test_pdf_is_rejected(self):
        error = validate_proof_file("proof.pdf", "application/pdf", 1024)
        assert isinstance(error, InvalidFileTypeError)
        assert error.status_code == 415

    @pytest.mark.unit
    def test_missing_content_type_is_rejected(self):
        assert isinstance(validate_proof_file("proof", None, 10), InvalidFileTypeError)

    @pytest.mark.unit
    def test_size_limit_is_inclusive(self):
        limit = settings.PROOF_MAX_BYTES
        assert validate_proof_file("a.png", "image/png", limit) is None
        error = validate_proof_file("a.png", "image/png", limit + 1)
        assert isinstance(error, FileTooLargeError)
        assert error.status_code == 413

    @pytest.mark.unit
    def test_type_is_checked_before_size(self):
        error = validate_proof_file("a.txt", "text/plain", settings.PROOF_MAX_BYTES * 2)
        assert isinstance(error, InvalidFileTypeError)


class TestPreconditions:

    @pytest.mark.unit
    def test_wrong_state_reports_invalid_transition(self):
        order = _Entity(status="pending", payment_status="validated")
        error = check_preconditions(
            "order", get_transition("order", "mark_dispatched"), order,
            TransitionPayload(tracking_info="TRK-1"),
        )
        assert isinstance(error, InvalidTransitionError)
        assert error.details["current_state"] == "pending"
        assert error.details["requested_state"] == "dispatched"

    @pytest.mark.unit
    def test_state_is_checked_before_inputs(self):
        order = _Entity(status="completed", payment_status="validated")
        error = check_preconditions(
            "order", get_transition("order", "cancel"), order, TransitionPayload(reason=""),
        )
        assert isinstance(error, InvalidTransitionError)

    @pytest.mark.unit
    def test_failed_guard_is_named_in_message(self):
        order = _Entity(status="pending", payment_status="pending")
        error = check_preconditions(
            "order", get_transition("order", "start_processing"), order, TransitionPayload(),
        )
        assert isinstance(error, InvalidTransitionError)
        assert "payment_status is 'pending'" in error.message

    @pytest.mark.unit
    def test_dispatch_without_tracking(self):
        order = _Entity(status="processing", payment_status="validated")
        error = check_preconditions(
            "order", get_transition("order", "mark_dispatched"), order, TransitionPayload(),
        )
        assert isinstance(error, MissingTrackingInfoError)

    @pytest.mark.unit
    def test_delivery_without_proof(self):
        order = _Entity(status="dispatched", payment_status="validated")
        error = check_preconditions(
            "order", get_transition("order", "mark_delivered"), order, TransitionPayload(),
        )
        assert isinstance(error, MissingProofError)
        assert error.details["proof"] == "delivery"

    @pytest.mark.unit
    def test_delivery_with_pending_or_stored_proof(self):
        transition = get_transition("order", "mark_delivered")
        order = _Entity(status="dispatched", payment_status="validated")
        assert check_preconditions("order", transition, order, TransitionPayload(), proof_pending=True) is None

        order.delivery_proof_url = "/uploads/proofs/orders/delivery/x.png"
        assert check_preconditions("order", transition, order, TransitionPayload()) is None

    @pytest.mark.unit
    def test_payment_proof_submission_without_file(self):
        remittance = _Entity(status="payment_pending")
        error = check_preconditions(
            "remittance", get_transition("remittance", "submit_payment_proof"), remittance,
            TransitionPayload(reference="ZELLE-123"),
        )
        assert isinstance(error, MissingProofError)
        assert error.details["proof"] == "payment"


class TestDeliveryProofPolicy:

    @pytest.mark.unit
    def test_required_by_default(self):
        assert delivery_proof_required("remittance", _Entity(delivery_method="cash"))

    @pytest.mark.unit
    def test_policy_switch(self, monkeypatch):
        monkeypatch.setattr(settings, "DELIVERY_PROOF_REQUIRED", False)
        remittance = _Entity(status="processing", delivery_method="cash")
        assert check_preconditions(
            "remittance", get_transition("remittance", "confirm_delivery"), remittance,
            TransitionPayload(),
        ) is None

    @pytest.mark.unit
    def test_exempt_delivery_method(self, monkeypatch):
        monkeypatch.setattr(settings, "PROOF_EXEMPT_DELIVERY_METHODS", ["transfer"])
        assert not delivery_proof_required("remittance", _Entity(delivery_method="transfer"))
        assert delivery_proof_required("remittance", _Entity(delivery_method="cash"))
        assert delivery_proof_required("order", _Entity(delivery_method="transfer"))
