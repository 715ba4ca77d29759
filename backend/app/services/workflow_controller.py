"""
Workflow Controller

Turns one admin intent ("dispatch this order") into a pending action with a
small state machine:

    IDLE -> AWAITING_INPUT -> SUBMITTING -> SUCCEEDED | FAILED

AWAITING_INPUT is only entered for actions that need a reason, tracking info
or a proof file, and can be dismissed back to IDLE. While a submission for an
entity is in flight, a second one for the same entity is refused with
ActionInProgress; other entities are unaffected.

After the executor answers, the controller is the one place that reports the
outcome: a notification to the actor, and on success an activity-log entry
plus a change-feed entry. Failures of those side effects are logged and
never change the result of the transition.
"""
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.status_config import (
    EntityType,
    Transition,
    get_available_actions,
    get_transition,
    status_label,
)
from app.exceptions import ActionInProgressError, InvalidTransitionError
from app.logging_config import get_logger
from app.schemas.order import OrderResponse
from app.schemas.remittance import RemittanceResponse
from app.services import event_service
from app.services.change_feed import ChangeFeed, change_feed as default_change_feed
from app.services.notification_service import (
    NotificationService,
    notifications as default_notifications,
)
from app.services.proof_storage import ProofStorage
from app.services.transition_executor import TransitionExecutor
from app.services.workflow_preconditions import check_preconditions, validate_proof_file
from app.services.workflow_types import Actor, ProofFile, TransitionPayload, TransitionResult

logger = get_logger(__name__)


class ActionState(str, Enum):
    IDLE = "idle"
    AWAITING_INPUT = "awaiting_input"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PendingAction:
    """One admin action from intent to outcome."""
    actor: Actor
    entity_type: str
    entity_id: int
    action: str
    transition: Optional[Transition] = None
    state: ActionState = ActionState.IDLE
    result: Optional[TransitionResult] = None
    # What the admin still has to provide: reason, tracking_info, delivery_proof, payment_proof
    required_inputs: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.entity_type, self.entity_id)


_SUCCESS_MESSAGES = {
    "submit_payment_proof": "payment proof submitted",
    "validate_payment": "payment validated",
    "reject_payment": "payment rejected",
    "start_processing": "moved to processing",
    "mark_dispatched": "marked as dispatched",
    "mark_delivered": "marked as delivered",
    "confirm_delivery": "delivery confirmed",
    "complete": "completed",
    "cancel": "cancelled",
}

_PROOF_FOLDERS = {
    "submit_payment_proof": "payment",
    "mark_delivered": "delivery",
    "confirm_delivery": "delivery",
}


def entity_snapshot(
    entity_type: str, entity: Any, variant: Optional[str] = None, owner_view: bool = False
) -> Dict[str, Any]:
    """
    JSON-ready view of an entity, as sent to list views and the change feed.

    ``owner_view`` lists the actions open to the entity's owner instead of
    the admin workflow actions.
    """
    schema = OrderResponse if entity_type == EntityType.ORDER.value else RemittanceResponse
    data = schema.model_validate(entity)
    data.status_label = status_label(entity_type, entity.status, variant)
    data.available_actions = get_available_actions(entity_type, entity, owner_view=owner_view)
    return data.model_dump(mode="json")


class WorkflowController:
    """Drives pending admin actions through the executor."""

    # Shared across controllers so concurrent requests see each other
    _in_flight: Set[Tuple[str, int]] = set()
    _in_flight_lock = threading.Lock()

    def __init__(
        self,
        db: Session,
        executor: Optional[TransitionExecutor] = None,
        storage: Optional[ProofStorage] = None,
        notifier: Optional[NotificationService] = None,
        feed: Optional[ChangeFeed] = None,
    ):
        self.db = db
        self.executor = executor or TransitionExecutor(db)
        self.storage = storage or ProofStorage()
        self.notifier = notifier or default_notifications
        self.feed = feed or default_change_feed

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def begin(self, actor: Actor, entity_type: str, entity_id: int, action: str) -> PendingAction:
        """
        Start an action. Unknown or unauthorized actions fail immediately;
        actions needing input wait in AWAITING_INPUT.
        """
        entity_type = getattr(entity_type, "value", entity_type)
        action = getattr(action, "value", action)
        pending = PendingAction(actor, entity_type, entity_id, action)

        error = self.executor.authorize(actor, entity_type, action)
        if error:
            return self._fail(pending, error)

        transition = get_transition(entity_type, action)
        if transition is None:
            return self._fail(
                pending,
                InvalidTransitionError(
                    entity_type, None, None, action=action,
                    message=f"Unknown {entity_type} action '{action}'",
                ),
            )
        pending.transition = transition

        required = []
        if transition.requires_reason:
            required.append("reason")
        if transition.requires_tracking:
            required.append("tracking_info")
        if transition.requires_delivery_proof:
            required.append("delivery_proof")
        if transition.requires_payment_proof:
            required.append("payment_proof")
        pending.required_inputs = tuple(required)
        pending.state = ActionState.AWAITING_INPUT if required else ActionState.IDLE
        return pending

    def dismiss(self, pending: PendingAction) -> PendingAction:
        """Abandon an action before submitting; nothing is written."""
        if pending.state in (ActionState.AWAITING_INPUT, ActionState.IDLE):
            pending.state = ActionState.IDLE
            pending.required_inputs = ()
        return pending

    def submit(
        self,
        pending: PendingAction,
        payload: Optional[TransitionPayload] = None,
        proof_file: Optional[ProofFile] = None,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        """
        Validate any proof file, store it, then run the transition.

        Returns the executor's result, or ActionInProgress if the same entity
        already has a submission running.
        """
        if pending.state in (ActionState.SUCCEEDED, ActionState.FAILED) and pending.result:
            return pending.result
        payload = payload or TransitionPayload()

        if not self._acquire(pending.key):
            error = ActionInProgressError(pending.entity_type, pending.entity_id)
            self._notify_failure(pending, error)
            return TransitionResult.failure(error)

        pending.state = ActionState.SUBMITTING
        try:
            if proof_file is not None:
                error = validate_proof_file(proof_file.filename, proof_file.content_type, proof_file.size)
                if error:
                    return self._finish(pending, TransitionResult.failure(error))
                current = self.executor.store.read_entity(pending.entity_type, pending.entity_id)
                if not current.ok:
                    return self._finish(pending, current)
                # Don't store a proof for an action that is going to be refused
                error = self._precheck(pending, current.entity, payload)
                if error:
                    return self._finish(pending, TransitionResult.failure(error))
                ok, stored = self._store_proof(pending, current.entity, proof_file)
                if not ok:
                    return self._finish(pending, TransitionResult.failure(stored))
                payload.proof_url = stored

            result = self.executor.apply_transition(
                pending.entity_type,
                pending.entity_id,
                pending.action,
                pending.actor,
                payload,
                expected_version=expected_version,
            )
            if not result.ok and proof_file is not None:
                # Nothing references the stored proof once the write is refused
                self.storage.delete(payload.proof_url)
            return self._finish(pending, result, payload)
        finally:
            self._release(pending.key)

    def perform(
        self,
        actor: Actor,
        entity_type: str,
        entity_id: int,
        action: str,
        payload: Optional[TransitionPayload] = None,
        proof_file: Optional[ProofFile] = None,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        """begin + submit in one call (HTTP endpoints)."""
        pending = self.begin(actor, entity_type, entity_id, action)
        if pending.state == ActionState.FAILED:
            return pending.result
        return self.submit(pending, payload, proof_file, expected_version)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @classmethod
    def _acquire(cls, key: Tuple[str, int]) -> bool:
        with cls._in_flight_lock:
            if key in cls._in_flight:
                return False
            cls._in_flight.add(key)
            return True

    @classmethod
    def _release(cls, key: Tuple[str, int]) -> None:
        with cls._in_flight_lock:
            cls._in_flight.discard(key)

    @classmethod
    def is_in_flight(cls, entity_type: str, entity_id: int) -> bool:
        with cls._in_flight_lock:
            return (entity_type, entity_id) in cls._in_flight

    def _precheck(self, pending: PendingAction, entity: Any, payload: TransitionPayload):
        error = self.executor.owner_refusal(
            pending.actor, pending.entity_type, pending.transition, entity
        )
        if error:
            return error
        return check_preconditions(
            pending.entity_type, pending.transition, entity, payload, proof_pending=True
        )

    def _store_proof(self, pending: PendingAction, entity: Any, proof_file: ProofFile):
        folder = f"{pending.entity_type}s/{_PROOF_FOLDERS.get(pending.action, 'other')}"
        return self.storage.upload(proof_file, folder, entity.number)

    def _fail(self, pending: PendingAction, error) -> PendingAction:
        pending.state = ActionState.FAILED
        pending.result = TransitionResult.failure(error)
        self._notify_failure(pending, error)
        return pending

    def _finish(
        self,
        pending: PendingAction,
        result: TransitionResult,
        payload: Optional[TransitionPayload] = None,
    ) -> TransitionResult:
        pending.result = result
        if not result.ok:
            pending.state = ActionState.FAILED
            self._notify_failure(pending, result.error)
            return result

        pending.state = ActionState.SUCCEEDED
        entity = result.entity
        self._record_activity(pending, entity, payload or TransitionPayload())
        self._publish(pending, entity)
        self._notify(
            pending.actor.id,
            f"{entity.number} {_SUCCESS_MESSAGES.get(pending.action, pending.action)}",
            "success",
            entity_type=pending.entity_type,
            entity_id=pending.entity_id,
            action=pending.action,
        )
        return result

    def _notify(self, user_id: int, message: str, severity: str, **context) -> None:
        try:
            self.notifier.notify(user_id, message, severity, **context)
        except Exception as e:
            logger.warning(f"Notification to user {user_id} failed: {e}")

    def _notify_failure(self, pending: PendingAction, error) -> None:
        self._notify(
            pending.actor.id,
            error.message,
            "error",
            entity_type=pending.entity_type,
            entity_id=pending.entity_id,
            action=pending.action,
            error=error.error_code,
        )

    def _record_activity(self, pending: PendingAction, entity: Any, payload: TransitionPayload) -> None:
        transition = pending.transition or get_transition(pending.entity_type, pending.action)
        metadata = {
            "number": entity.number,
            "field": transition.field if transition else "status",
            "new_value": getattr(entity, transition.field) if transition else entity.status,
            "status": entity.status,
        }
        for key in ("reason", "tracking_info", "proof_url", "notes"):
            value = getattr(payload, key)
            if value:
                metadata[key] = value
        try:
            event_service.record_activity(
                self.db,
                action=pending.action,
                entity_type=pending.entity_type,
                entity_id=pending.entity_id,
                performed_by=pending.actor.id,
                description=f"{entity.number} {_SUCCESS_MESSAGES.get(pending.action, pending.action)}",
                metadata=metadata,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                f"Activity log write failed for {pending.entity_type} {pending.entity_id}: {e}",
                extra={"action": pending.action},
            )

    def _publish(self, pending: PendingAction, entity: Any) -> None:
        try:
            self.feed.publish(
                pending.entity_type,
                pending.entity_id,
                pending.action,
                entity_snapshot(pending.entity_type, entity),
            )
        except Exception as e:
            logger.warning(f"Change feed publish failed for {pending.entity_type} {pending.entity_id}: {e}")
