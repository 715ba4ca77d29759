"""
Workflow Store

Persistence for order/remittance transitions. A transition is one
conditional UPDATE (matching id, current value, guards and version) plus its
status_history rows, committed together. If the UPDATE matches nothing the
entity is re-read to tell a lost race on the status (InvalidTransition) from
a concurrent edit of anything else (ConcurrentModification).
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.status_config import EntityType, is_valid_transition
from app.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
)
from app.logging_config import get_logger
from app.models.order import Order
from app.models.remittance import Remittance
from app.services import event_service
from app.services.workflow_types import TransitionResult

logger = get_logger(__name__)

MODELS = {
    EntityType.ORDER.value: Order,
    EntityType.REMITTANCE.value: Remittance,
}

RESOURCE_NAMES = {
    EntityType.ORDER.value: "Order",
    EntityType.REMITTANCE.value: "Remittance",
}


class WorkflowStore:
    """Reads and conditionally writes workflow entities."""

    def __init__(self, db: Session):
        self.db = db

    def _model(self, entity_type: str):
        return MODELS[entity_type]

    def _fetch(self, entity_type: str, entity_id: int):
        model = self._model(entity_type)
        # populate_existing so a re-read sees rows changed by other sessions
        return (
            self.db.query(model)
            .populate_existing()
            .filter(model.id == entity_id)
            .first()
        )

    def read_entity(self, entity_type: str, entity_id: int) -> TransitionResult:
        """Current state of one entity, or NotFound."""
        try:
            entity = self._fetch(entity_type, entity_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to read {entity_type} {entity_id}: {e}")
            return TransitionResult.failure(StoreError(f"Failed to read {entity_type}"))
        if entity is None:
            return TransitionResult.failure(NotFoundError(RESOURCE_NAMES[entity_type], entity_id))
        return TransitionResult.success(entity)

    def write_transition(
        self,
        entity_type: str,
        entity_id: int,
        from_status: str,
        to_status: str,
        actor_id: Optional[int],
        *,
        action: str,
        field: str = "status",
        guards: Optional[Dict[str, str]] = None,
        changes: Optional[Dict[str, Any]] = None,
        expected_version: Optional[int] = None,
        follow_on: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Apply ``from_status -> to_status`` on ``field`` in one commit.

        Args:
            entity_type: order or remittance
            entity_id: ID of the entity
            from_status: Value ``field`` must hold right now
            to_status: Value to write
            actor_id: Acting user, recorded in status_history
            action: Workflow action name, recorded in status_history
            field: status or payment_status
            guards: Other columns that must still hold these values
            changes: Audit / transition-specific columns set in the same UPDATE
            expected_version: Version the caller read; None skips the check
            follow_on: A second legal step chained onto the first
                (delivered -> completed under auto-complete)
            notes: Free text stored on the history rows

        Returns:
            TransitionResult with the refreshed entity, or
            InvalidTransition / ConcurrentModification / NotFound / StoreError
        """
        if not is_valid_transition(entity_type, from_status, to_status, field):
            return TransitionResult.failure(
                InvalidTransitionError(entity_type, from_status, to_status, action=action)
            )
        final_status = to_status
        if follow_on:
            if not is_valid_transition(entity_type, to_status, follow_on, field):
                return TransitionResult.failure(
                    InvalidTransitionError(entity_type, to_status, follow_on, action=action)
                )
            final_status = follow_on

        model = self._model(entity_type)
        guards = guards or {}
        changes = dict(changes or {})

        try:
            query = self.db.query(model).filter(
                model.id == entity_id,
                getattr(model, field) == from_status,
            )
            for column, value in guards.items():
                query = query.filter(getattr(model, column) == value)
            if expected_version is not None:
                query = query.filter(model.version == expected_version)

            values = dict(changes)
            values[field] = final_status
            values["version"] = model.version + 1
            values["updated_at"] = datetime.utcnow()

            updated = query.update(values, synchronize_session=False)

            if updated == 0:
                self.db.rollback()
                return self._explain_miss(
                    entity_type, entity_id, field, from_status, to_status, guards, action
                )

            event_service.record_status_history(
                self.db, entity_type, entity_id, action, to_status,
                old_value=from_status, field=field, changed_by=actor_id, notes=notes,
            )
            if follow_on:
                event_service.record_status_history(
                    self.db, entity_type, entity_id, action, follow_on,
                    old_value=to_status, field=field, changed_by=actor_id, notes=notes,
                )
            # Secondary status columns moved by the same action (reject -> cancelled)
            for column in ("status", "payment_status"):
                if column != field and column in changes:
                    event_service.record_status_history(
                        self.db, entity_type, entity_id, action, changes[column],
                        old_value=guards.get(column), field=column,
                        changed_by=actor_id, notes=notes,
                    )

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to write {entity_type} {entity_id} transition {action}: {e}",
                extra={"entity_type": entity_type, "entity_id": entity_id, "action": action},
            )
            return TransitionResult.failure(StoreError(f"Failed to update {entity_type}"))

        refreshed = self.read_entity(entity_type, entity_id)
        if refreshed.ok:
            logger.info(
                f"{RESOURCE_NAMES[entity_type]} {refreshed.entity.number}: "
                f"{field} {from_status} → {final_status}",
                extra={
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "action": action,
                    "actor_id": actor_id,
                },
            )
        return refreshed

    def _explain_miss(
        self,
        entity_type: str,
        entity_id: int,
        field: str,
        from_status: str,
        to_status: str,
        guards: Dict[str, str],
        action: str,
    ) -> TransitionResult:
        """Zero rows matched: find out which condition no longer holds."""
        current = self.read_entity(entity_type, entity_id)
        if not current.ok:
            return current
        entity = current.entity
        current_value = getattr(entity, field)
        guards_ok = all(getattr(entity, col) == val for col, val in guards.items())
        if current_value != from_status or not guards_ok:
            logger.info(
                f"{RESOURCE_NAMES[entity_type]} {entity.number}: {action} lost to a concurrent "
                f"change ({field} is now {current_value})"
            )
            return TransitionResult.failure(
                InvalidTransitionError(entity_type, current_value, to_status, action=action)
            )
        logger.info(
            f"{RESOURCE_NAMES[entity_type]} {entity.number}: version moved to {entity.version} "
            f"during {action}"
        )
        return TransitionResult.failure(
            ConcurrentModificationError(
                details={"entity": entity_type, "entity_id": entity_id, "version": entity.version}
            )
        )
