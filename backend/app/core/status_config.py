"""Status Configuration and Transition Rules

This module defines valid status values and the legal admin actions for
Orders and Remittances. Every admin action is one row in a flat table;
adding a state or an edge means adding a row here.

Presentation labels ("Shipped" vs "Dispatched") are a lookup on top of the
same status values, not separate code paths.
"""
from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


# =============================================================================
# Entity Types & Actions
# =============================================================================

class EntityType(str, Enum):
    """Entities driven by the admin workflow"""
    ORDER = "order"
    REMITTANCE = "remittance"


class WorkflowAction(str, Enum):
    """Admin (or owner) actions that move an entity between states"""
    SUBMIT_PAYMENT_PROOF = "submit_payment_proof"
    VALIDATE_PAYMENT = "validate_payment"
    REJECT_PAYMENT = "reject_payment"
    START_PROCESSING = "start_processing"
    MARK_DISPATCHED = "mark_dispatched"
    MARK_DELIVERED = "mark_delivered"
    CONFIRM_DELIVERY = "confirm_delivery"
    COMPLETE = "complete"
    CANCEL = "cancel"


# =============================================================================
# Order Status
# =============================================================================

class OrderStatus(str, Enum):
    """Valid status values for Orders"""
    PENDING = "pending"
    PROCESSING = "processing"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Valid payment status values for Orders"""
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class OrderType(str, Enum):
    PRODUCT = "product"
    REMITTANCE = "remittance"
    MIXED = "mixed"


# =============================================================================
# Remittance Status
# =============================================================================

class RemittanceStatus(str, Enum):
    """Valid status values for Remittances"""
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_PROOF_UPLOADED = "payment_proof_uploaded"
    PAYMENT_VALIDATED = "payment_validated"
    PAYMENT_REJECTED = "payment_rejected"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeliveryMethod(str, Enum):
    """How a remittance reaches the recipient"""
    CASH = "cash"
    TRANSFER = "transfer"
    CARD = "card"
    MOBILE_WALLET = "mobile_wallet"


# =============================================================================
# Transition Table
# =============================================================================

@dataclass(frozen=True)
class Transition:
    """
    One legal admin action.

    Attributes:
        entity_type: Which workflow the row belongs to
        action: The admin action that triggers it
        from_states: Legal current values of ``field``
        to_state: Value written to ``field``
        field: Column changed (``status`` or ``payment_status``)
        guards: Other columns that must hold these values at write time
        extra_changes: Other columns set in the same write
        requires_reason: Non-empty reason text is mandatory
        requires_tracking: Non-empty tracking info is mandatory
        requires_delivery_proof: A delivery proof reference is mandatory
        requires_payment_proof: A payment proof reference is mandatory
        admin_only: Only admins may run it (otherwise the owner may too)
        owner_from_states: States from which the owner may run an admin_only
            action on their own entity (remittance self-cancel)
    """
    entity_type: EntityType
    action: WorkflowAction
    from_states: FrozenSet[str]
    to_state: str
    field: str = "status"
    guards: Dict[str, str] = dc_field(default_factory=dict)
    extra_changes: Dict[str, str] = dc_field(default_factory=dict)
    requires_reason: bool = False
    requires_tracking: bool = False
    requires_delivery_proof: bool = False
    requires_payment_proof: bool = False
    admin_only: bool = True
    owner_from_states: FrozenSet[str] = frozenset()

    @property
    def needs_input(self) -> bool:
        """True when the admin has to supply something before submitting."""
        return (
            self.requires_reason
            or self.requires_tracking
            or self.requires_delivery_proof
            or self.requires_payment_proof
        )


_ORDER = EntityType.ORDER
_REMITTANCE = EntityType.REMITTANCE

ORDER_TERMINAL_STATES = frozenset({OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value})
REMITTANCE_TERMINAL_STATES = frozenset(
    {RemittanceStatus.COMPLETED.value, RemittanceStatus.CANCELLED.value}
)

TRANSITIONS: Tuple[Transition, ...] = (
    # ----- Order -----
    Transition(
        _ORDER, WorkflowAction.SUBMIT_PAYMENT_PROOF,
        from_states=frozenset({PaymentStatus.PENDING.value}),
        to_state=PaymentStatus.PENDING.value,
        field="payment_status",
        guards={"status": OrderStatus.PENDING.value},
        requires_payment_proof=True,
        admin_only=False,
    ),
    Transition(
        _ORDER, WorkflowAction.VALIDATE_PAYMENT,
        from_states=frozenset({PaymentStatus.PENDING.value}),
        to_state=PaymentStatus.VALIDATED.value,
        field="payment_status",
        guards={"status": OrderStatus.PENDING.value},
    ),
    Transition(
        _ORDER, WorkflowAction.REJECT_PAYMENT,
        from_states=frozenset({PaymentStatus.PENDING.value}),
        to_state=PaymentStatus.REJECTED.value,
        field="payment_status",
        guards={"status": OrderStatus.PENDING.value},
        extra_changes={"status": OrderStatus.CANCELLED.value},
        requires_reason=True,
    ),
    Transition(
        _ORDER, WorkflowAction.START_PROCESSING,
        from_states=frozenset({OrderStatus.PENDING.value}),
        to_state=OrderStatus.PROCESSING.value,
        guards={"payment_status": PaymentStatus.VALIDATED.value},
    ),
    Transition(
        _ORDER, WorkflowAction.MARK_DISPATCHED,
        from_states=frozenset({OrderStatus.PROCESSING.value}),
        to_state=OrderStatus.DISPATCHED.value,
        requires_tracking=True,
    ),
    Transition(
        _ORDER, WorkflowAction.MARK_DELIVERED,
        from_states=frozenset({OrderStatus.DISPATCHED.value}),
        to_state=OrderStatus.DELIVERED.value,
        requires_delivery_proof=True,
    ),
    Transition(
        _ORDER, WorkflowAction.COMPLETE,
        from_states=frozenset({OrderStatus.DELIVERED.value}),
        to_state=OrderStatus.COMPLETED.value,
    ),
    Transition(
        _ORDER, WorkflowAction.CANCEL,
        from_states=frozenset({
            OrderStatus.PENDING.value,
            OrderStatus.PROCESSING.value,
            OrderStatus.DISPATCHED.value,
            OrderStatus.DELIVERED.value,
        }),
        to_state=OrderStatus.CANCELLED.value,
        requires_reason=True,
    ),
    # ----- Remittance -----
    Transition(
        _REMITTANCE, WorkflowAction.SUBMIT_PAYMENT_PROOF,
        from_states=frozenset({RemittanceStatus.PAYMENT_PENDING.value}),
        to_state=RemittanceStatus.PAYMENT_PROOF_UPLOADED.value,
        requires_payment_proof=True,
        admin_only=False,
    ),
    Transition(
        _REMITTANCE, WorkflowAction.VALIDATE_PAYMENT,
        from_states=frozenset({RemittanceStatus.PAYMENT_PROOF_UPLOADED.value}),
        to_state=RemittanceStatus.PAYMENT_VALIDATED.value,
    ),
    Transition(
        _REMITTANCE, WorkflowAction.REJECT_PAYMENT,
        from_states=frozenset({RemittanceStatus.PAYMENT_PROOF_UPLOADED.value}),
        to_state=RemittanceStatus.PAYMENT_REJECTED.value,
        requires_reason=True,
    ),
    Transition(
        _REMITTANCE, WorkflowAction.START_PROCESSING,
        from_states=frozenset({RemittanceStatus.PAYMENT_VALIDATED.value}),
        to_state=RemittanceStatus.PROCESSING.value,
    ),
    Transition(
        _REMITTANCE, WorkflowAction.CONFIRM_DELIVERY,
        from_states=frozenset({RemittanceStatus.PROCESSING.value}),
        to_state=RemittanceStatus.DELIVERED.value,
        requires_delivery_proof=True,
    ),
    Transition(
        _REMITTANCE, WorkflowAction.COMPLETE,
        from_states=frozenset({RemittanceStatus.DELIVERED.value}),
        to_state=RemittanceStatus.COMPLETED.value,
    ),
    Transition(
        _REMITTANCE, WorkflowAction.CANCEL,
        from_states=frozenset(
            s.value for s in RemittanceStatus
            if s.value not in REMITTANCE_TERMINAL_STATES
        ),
        to_state=RemittanceStatus.CANCELLED.value,
        requires_reason=True,
        owner_from_states=frozenset(
            s.value for s in RemittanceStatus
            if s.value not in REMITTANCE_TERMINAL_STATES
            and s.value != RemittanceStatus.DELIVERED.value
        ),
    ),
)

_TRANSITION_INDEX: Dict[Tuple[str, str], Transition] = {
    (t.entity_type.value, t.action.value): t for t in TRANSITIONS
}

# Delivery actions per entity; used by the auto-complete policy
DELIVERY_ACTIONS = {
    EntityType.ORDER.value: WorkflowAction.MARK_DELIVERED.value,
    EntityType.REMITTANCE.value: WorkflowAction.CONFIRM_DELIVERY.value,
}


def _value(v: Any) -> str:
    return v.value if isinstance(v, Enum) else str(v)


def get_transition(entity_type: str, action: str) -> Optional[Transition]:
    """Look up the table row for an action, or None if the action is unknown."""
    return _TRANSITION_INDEX.get((_value(entity_type), _value(action)))


def get_transitions(entity_type: str) -> List[Transition]:
    """All table rows for one entity type, in table order."""
    et = _value(entity_type)
    return [t for t in TRANSITIONS if t.entity_type.value == et]


def is_valid_transition(
    entity_type: str, current_status: str, new_status: str, field: str = "status"
) -> bool:
    """Check if ``current -> new`` on ``field`` is an edge in the table"""
    current_status, new_status = _value(current_status), _value(new_status)
    return any(
        t.field == field and current_status in t.from_states and t.to_state == new_status
        for t in get_transitions(entity_type)
    )


def get_allowed_transitions(
    entity_type: str, current_status: str, field: str = "status"
) -> List[str]:
    """Get list of allowed next values of ``field`` from ``current_status``"""
    current_status = _value(current_status)
    allowed: List[str] = []
    for t in get_transitions(entity_type):
        if t.field == field and current_status in t.from_states and t.to_state not in allowed:
            allowed.append(t.to_state)
    return allowed


def guards_hold(transition: Transition, entity: Any) -> bool:
    """True when every guard column on ``entity`` has its required value."""
    return all(getattr(entity, col, None) == val for col, val in transition.guards.items())


def owner_may_run(transition: Transition, current_status: str) -> bool:
    """True when the entity's owner (not only an admin) may run ``transition`` from here."""
    return not transition.admin_only or _value(current_status) in transition.owner_from_states


def get_available_actions(entity_type: str, entity: Any, owner_view: bool = False) -> List[str]:
    """
    Actions whose ``from`` state and guards match the entity right now.

    The admin view lists the admin workflow actions; ``owner_view`` lists
    what the entity's owner may do instead (submit a proof, self-cancel).
    The executor re-checks the same conditions at write time.
    """
    actions = []
    for t in get_transitions(entity_type):
        current = getattr(entity, t.field, None)
        if current not in t.from_states or not guards_hold(t, entity):
            continue
        if owner_view:
            if owner_may_run(t, current):
                actions.append(t.action.value)
        elif t.admin_only:
            actions.append(t.action.value)
    return actions


def is_terminal(entity_type: str, status: str) -> bool:
    """Terminal states have no outgoing transitions"""
    status = _value(status)
    if _value(entity_type) == EntityType.ORDER.value:
        return status in ORDER_TERMINAL_STATES
    return status in REMITTANCE_TERMINAL_STATES


# =============================================================================
# Presentation Labels
# =============================================================================

_DEFAULT_LABELS: Dict[str, Dict[str, str]] = {
    EntityType.ORDER.value: {
        "pending": "Pending",
        "processing": "Processing",
        "dispatched": "Dispatched",
        "delivered": "Delivered",
        "completed": "Completed",
        "cancelled": "Cancelled",
    },
    EntityType.REMITTANCE.value: {
        "payment_pending": "Awaiting Payment",
        "payment_proof_uploaded": "Proof Uploaded",
        "payment_validated": "Payment Validated",
        "payment_rejected": "Payment Rejected",
        "processing": "Processing",
        "delivered": "Delivered",
        "completed": "Completed",
        "cancelled": "Cancelled",
    },
}

# Storefront wording differs from the admin wording for a few states
_VARIANT_LABELS: Dict[str, Dict[str, Dict[str, str]]] = {
    "storefront": {
        EntityType.ORDER.value: {
            "dispatched": "Shipped",
            "processing": "Preparing",
        },
    },
}

PAYMENT_STATUS_LABELS = {
    "pending": "Payment Pending",
    "validated": "Payment Validated",
    "rejected": "Payment Rejected",
}


def status_label(entity_type: str, status: str, variant: Optional[str] = None) -> str:
    """Human label for a status; unknown values fall back to a title-cased key."""
    et, status = _value(entity_type), _value(status)
    if variant:
        label = _VARIANT_LABELS.get(variant, {}).get(et, {}).get(status)
        if label:
            return label
    label = _DEFAULT_LABELS.get(et, {}).get(status)
    return label or status.replace("_", " ").title()


def describe_transitions(entity_type: str) -> Dict[str, Any]:
    """Serializable view of one entity's transition table and labels."""
    et = _value(entity_type)
    terminal = ORDER_TERMINAL_STATES if et == EntityType.ORDER.value else REMITTANCE_TERMINAL_STATES
    return {
        "entity_type": et,
        "statuses": dict(_DEFAULT_LABELS.get(et, {})),
        "terminal_states": sorted(terminal),
        "transitions": [
            {
                "action": t.action.value,
                "field": t.field,
                "from_states": sorted(t.from_states),
                "to_state": t.to_state,
                "guards": dict(t.guards),
                "requires_reason": t.requires_reason,
                "requires_tracking": t.requires_tracking,
                "requires_delivery_proof": t.requires_delivery_proof,
                "requires_payment_proof": t.requires_payment_proof,
                "admin_only": t.admin_only,
                "owner_from_states": sorted(t.owner_from_states),
            }
            for t in get_transitions(et)
        ],
    }
