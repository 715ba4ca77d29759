"""
Workflow precondition checks.

Every check returns the typed error that blocks the action, or None when the
action may proceed. Nothing here touches the database or the blob store, so
a failed check never leaves anything half-written.
"""
from typing import Any, Optional

from app.core.config import settings
from app.core.status_config import EntityType, Transition, guards_hold
from app.exceptions import (
    FileTooLargeError,
    InvalidFileTypeError,
    InvalidTransitionError,
    MissingProofError,
    MissingReasonError,
    MissingTrackingInfoError,
    RemitDeskException,
)
from app.services.workflow_types import TransitionPayload


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def check_reason(reason: Optional[str], action: Optional[str] = None) -> Optional[MissingReasonError]:
    """Cancel / reject need a non-empty trimmed reason."""
    if _blank(reason):
        return MissingReasonError(action=action)
    return None


def check_tracking_info(tracking_info: Optional[str]) -> Optional[MissingTrackingInfoError]:
    if _blank(tracking_info):
        return MissingTrackingInfoError()
    return None


def validate_proof_file(
    filename: Optional[str], content_type: Optional[str], size: int
) -> Optional[RemitDeskException]:
    """
    Type and size checks for a proof image.

    Runs before any upload attempt. The MIME type must be one of
    PROOF_ALLOWED_MIME_TYPES and the file at most PROOF_MAX_BYTES.
    """
    allowed = settings.PROOF_ALLOWED_MIME_TYPES
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in allowed:
        return InvalidFileTypeError(content_type, allowed=list(allowed))
    if size > settings.PROOF_MAX_BYTES:
        return FileTooLargeError(size, settings.PROOF_MAX_BYTES)
    return None


def delivery_proof_required(entity_type: str, entity: Any) -> bool:
    """Whether delivery confirmation must carry a proof for this entity."""
    if not settings.DELIVERY_PROOF_REQUIRED:
        return False
    if entity_type == EntityType.REMITTANCE.value:
        method = getattr(entity, "delivery_method", None)
        if method and method in settings.PROOF_EXEMPT_DELIVERY_METHODS:
            return False
    return True


def check_state(entity_type: str, transition: Transition, entity: Any) -> Optional[InvalidTransitionError]:
    """The entity's current value must be a legal ``from`` and every guard must hold."""
    current = getattr(entity, transition.field, None)
    if current not in transition.from_states:
        return InvalidTransitionError(
            entity_type,
            current,
            transition.to_state,
            action=transition.action.value,
        )
    if not guards_hold(transition, entity):
        failed = {
            col: getattr(entity, col, None)
            for col, val in transition.guards.items()
            if getattr(entity, col, None) != val
        }
        return InvalidTransitionError(
            entity_type,
            current,
            transition.to_state,
            action=transition.action.value,
            message=(
                f"Cannot {transition.action.value.replace('_', ' ')} {entity_type}: "
                + ", ".join(f"{col} is '{val}'" for col, val in failed.items())
            ),
            details={"guards": dict(transition.guards)},
        )
    return None


def check_inputs(
    entity_type: str,
    transition: Transition,
    entity: Any,
    payload: TransitionPayload,
    proof_pending: bool = False,
) -> Optional[RemitDeskException]:
    """
    Required-input checks for one action.

    ``proof_pending`` is True when a validated proof file accompanies the
    call but has not been stored yet.
    """
    if transition.requires_reason:
        error = check_reason(payload.reason, transition.action.value)
        if error:
            return error
    if transition.requires_tracking:
        error = check_tracking_info(payload.tracking_info)
        if error:
            return error
    if transition.requires_delivery_proof and delivery_proof_required(entity_type, entity):
        has_proof = proof_pending or not _blank(payload.proof_url) or not _blank(
            getattr(entity, "delivery_proof_url", None)
        )
        if not has_proof:
            return MissingProofError("delivery")
    if transition.requires_payment_proof:
        has_proof = proof_pending or not _blank(payload.proof_url) or not _blank(
            getattr(entity, "payment_proof_url", None)
        )
        if not has_proof:
            return MissingProofError("payment")
    return None


def check_preconditions(
    entity_type: str,
    transition: Transition,
    entity: Any,
    payload: TransitionPayload,
    proof_pending: bool = False,
) -> Optional[RemitDeskException]:
    """State first, then required input."""
    return check_state(entity_type, transition, entity) or check_inputs(
        entity_type, transition, entity, payload, proof_pending
    )
