"""
Transition Executor

Single entry point for every order/remittance status change:

    result = TransitionExecutor(db).apply_transition(
        "order", order_id, "mark_dispatched", actor,
        TransitionPayload(tracking_info="1Z999AA10123456784"),
    )
    if not result.ok:
        ...  # result.error is a typed RemitDeskException

Order of checks: actor authorization, fresh read of the entity, state and
required-input preconditions, then one conditional write. Failures come back
as values; nothing is raised across this boundary.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import (
    DELIVERY_ACTIONS,
    EntityType,
    Transition,
    WorkflowAction,
    get_transition,
    owner_may_run,
)
from app.exceptions import InvalidTransitionError, UnauthorizedError
from app.logging_config import get_logger
from app.services.workflow_preconditions import check_preconditions
from app.services.workflow_store import WorkflowStore
from app.services.workflow_types import Actor, TransitionPayload, TransitionResult

logger = get_logger(__name__)

_O = EntityType.ORDER.value
_R = EntityType.REMITTANCE.value
_A = WorkflowAction

# (entity_type, action) -> (actor column, timestamp column)
AUDIT_COLUMNS: Dict[Tuple[str, str], Tuple[Optional[str], str]] = {
    (_O, _A.SUBMIT_PAYMENT_PROOF.value): (None, "payment_proof_uploaded_at"),
    (_O, _A.VALIDATE_PAYMENT.value): ("validated_by", "validated_at"),
    (_O, _A.REJECT_PAYMENT.value): ("rejected_by", "rejected_at"),
    (_O, _A.START_PROCESSING.value): ("processing_started_by", "processing_started_at"),
    (_O, _A.MARK_DISPATCHED.value): ("dispatched_by", "dispatched_at"),
    (_O, _A.MARK_DELIVERED.value): ("delivered_by", "delivered_at"),
    (_O, _A.COMPLETE.value): ("completed_by", "completed_at"),
    (_O, _A.CANCEL.value): ("cancelled_by", "cancelled_at"),
    (_R, _A.SUBMIT_PAYMENT_PROOF.value): (None, "payment_proof_uploaded_at"),
    (_R, _A.VALIDATE_PAYMENT.value): ("payment_validated_by", "payment_validated_at"),
    (_R, _A.REJECT_PAYMENT.value): ("payment_rejected_by", "payment_rejected_at"),
    (_R, _A.START_PROCESSING.value): ("processing_started_by", "processing_started_at"),
    (_R, _A.CONFIRM_DELIVERY.value): ("delivered_by", "delivered_at"),
    (_R, _A.COMPLETE.value): ("completed_by", "completed_at"),
    (_R, _A.CANCEL.value): ("cancelled_by", "cancelled_at"),
}

# (entity_type, action) -> {column: payload attribute}
PAYLOAD_COLUMNS: Dict[Tuple[str, str], Dict[str, str]] = {
    (_O, _A.SUBMIT_PAYMENT_PROOF.value): {
        "payment_proof_url": "proof_url",
        "payment_reference": "reference",
    },
    (_O, _A.REJECT_PAYMENT.value): {"rejection_reason": "reason", "cancellation_reason": "reason"},
    (_O, _A.MARK_DISPATCHED.value): {"tracking_info": "tracking_info"},
    (_O, _A.MARK_DELIVERED.value): {"delivery_proof_url": "proof_url"},
    (_O, _A.CANCEL.value): {"cancellation_reason": "reason"},
    (_R, _A.SUBMIT_PAYMENT_PROOF.value): {
        "payment_proof_url": "proof_url",
        "payment_reference": "reference",
    },
    (_R, _A.VALIDATE_PAYMENT.value): {"payment_validation_notes": "notes"},
    (_R, _A.REJECT_PAYMENT.value): {"payment_rejection_reason": "reason"},
    (_R, _A.START_PROCESSING.value): {"processing_notes": "notes"},
    (_R, _A.CONFIRM_DELIVERY.value): {"delivery_proof_url": "proof_url", "delivery_notes": "notes"},
    (_R, _A.COMPLETE.value): {"completion_notes": "notes"},
    (_R, _A.CANCEL.value): {"cancellation_reason": "reason"},
}

# Reject on an order also cancels it, so it is stamped as a cancellation too
EXTRA_AUDIT_COLUMNS: Dict[Tuple[str, str], Tuple[str, str]] = {
    (_O, _A.REJECT_PAYMENT.value): ("cancelled_by", "cancelled_at"),
}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class TransitionExecutor:
    """Authorize, re-validate and write one transition."""

    def __init__(self, db: Session, store: Optional[WorkflowStore] = None):
        self.db = db
        self.store = store or WorkflowStore(db)

    def authorize(self, actor: Actor, entity_type: str, action: str) -> Optional[UnauthorizedError]:
        """Admin-only actions need an admin; owner actions are checked after the read."""
        transition = get_transition(entity_type, action)
        if actor.is_admin:
            return None
        if transition is None or (transition.admin_only and not transition.owner_from_states):
            return UnauthorizedError(action=action, resource=entity_type)
        return None

    def owner_refusal(
        self, actor: Actor, entity_type: str, transition: Transition, entity: Any
    ) -> Optional[UnauthorizedError]:
        """
        Checks for a non-admin acting on a freshly read entity: it must be
        their own, and an admin action is only open to them from the states
        the row lists in ``owner_from_states``. A state outside the row's
        ``from_states`` is left to the precondition check.
        """
        if actor.is_admin:
            return None
        action = transition.action.value
        if entity.user_id != actor.id:
            return UnauthorizedError(action=action, resource=entity_type)
        current = getattr(entity, transition.field)
        if current in transition.from_states and not owner_may_run(transition, current):
            return UnauthorizedError(action=action, resource=entity_type)
        return None

    def build_changes(
        self,
        entity_type: str,
        transition: Transition,
        actor: Actor,
        payload: TransitionPayload,
        auto_complete: bool = False,
        entity: Any = None,
    ) -> Dict[str, Any]:
        """Audit and transition-specific columns written with the status."""
        key = (entity_type, transition.action.value)
        now = datetime.utcnow()
        changes: Dict[str, Any] = dict(transition.extra_changes)

        by_col, at_col = AUDIT_COLUMNS[key]
        if by_col:
            changes[by_col] = actor.id
        changes[at_col] = now

        extra = EXTRA_AUDIT_COLUMNS.get(key)
        if extra:
            changes[extra[0]] = actor.id
            changes[extra[1]] = now

        for column, attr in PAYLOAD_COLUMNS.get(key, {}).items():
            value = _clean(getattr(payload, attr))
            if value is not None:
                changes[column] = value

        if auto_complete:
            changes["completed_by"] = actor.id
            changes["completed_at"] = now

        # The delivery window starts when the payment is accepted
        if key == (_R, _A.VALIDATE_PAYMENT.value):
            days = getattr(entity, "max_delivery_days", None) or settings.DEFAULT_MAX_DELIVERY_DAYS
            changes["max_delivery_date"] = now + timedelta(days=days)
        return changes

    def apply_transition(
        self,
        entity_type: str,
        entity_id: int,
        action: str,
        actor: Actor,
        payload: Optional[TransitionPayload] = None,
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        """
        Apply one admin action to one entity.

        Args:
            entity_type: order or remittance
            entity_id: ID of the entity
            action: WorkflowAction value
            actor: Acting user
            payload: Reason / tracking / proof reference / notes
            expected_version: Version the caller last saw; when given, a
                write against a newer version reports ConcurrentModification

        Returns:
            TransitionResult.success(entity) or TransitionResult.failure(error)
        """
        entity_type = getattr(entity_type, "value", entity_type)
        action = getattr(action, "value", action)
        payload = payload or TransitionPayload()

        error = self.authorize(actor, entity_type, action)
        if error:
            logger.warning(
                f"User {actor.id} denied {action} on {entity_type} {entity_id}",
                extra={"actor_id": actor.id, "entity_type": entity_type, "action": action},
            )
            return TransitionResult.failure(error)

        transition = get_transition(entity_type, action)
        if transition is None:
            return TransitionResult.failure(
                InvalidTransitionError(
                    entity_type, None, None, action=action,
                    message=f"Unknown {entity_type} action '{action}'",
                )
            )

        current = self.store.read_entity(entity_type, entity_id)
        if not current.ok:
            return current
        entity = current.entity

        error = self.owner_refusal(actor, entity_type, transition, entity)
        if error:
            return TransitionResult.failure(error)

        error = check_preconditions(entity_type, transition, entity, payload)
        if error:
            return TransitionResult.failure(error)

        auto_complete = (
            settings.AUTO_COMPLETE_ON_DELIVERY
            and DELIVERY_ACTIONS.get(entity_type) == transition.action.value
        )
        changes = self.build_changes(
            entity_type, transition, actor, payload, auto_complete, entity=entity
        )
        from_status = getattr(entity, transition.field)

        return self.store.write_transition(
            entity_type,
            entity_id,
            from_status,
            transition.to_state,
            actor.id,
            action=transition.action.value,
            field=transition.field,
            guards=dict(transition.guards),
            changes=changes,
            expected_version=expected_version if expected_version is not None else entity.version,
            follow_on="completed" if auto_complete else None,
            notes=_clean(payload.reason) or _clean(payload.tracking_info) or _clean(payload.notes),
        )
