"""
Unit tests for WorkflowStore writes that bypass the executor's checks:
every edge that is not in the transition table is refused at the store,
and two sessions racing on the same entity produce exactly one write.
"""
import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.status_config import (
    EntityType,
    OrderStatus,
    PaymentStatus,
    RemittanceStatus,
    is_valid_transition,
)
from app.db.base import Base
from app.models.status_history import StatusHistory
from app.services.transition_executor import TransitionExecutor
from app.services.workflow_store import WorkflowStore
from app.services.workflow_types import Actor, TransitionPayload

from tests.factories import create_test_order, create_test_remittance, create_test_user

_STATES = {
    (EntityType.ORDER.value, "status"): [s.value for s in OrderStatus],
    (EntityType.ORDER.value, "payment_status"): [s.value for s in PaymentStatus],
    (EntityType.REMITTANCE.value, "status"): [s.value for s in RemittanceStatus],
}

ILLEGAL_EDGES = [
    (entity_type, field, old, new)
    for (entity_type, field), states in _STATES.items()
    for old in states
    for new in states
    if not is_valid_transition(entity_type, old, new, field)
]


def _make(db, entity_type, field, value):
    if entity_type == EntityType.REMITTANCE.value:
        return create_test_remittance(db, status=value)
    if field == "payment_status":
        return create_test_order(db, status="pending", payment_status=value)
    return create_test_order(db, status=value, payment_status="validated")


class TestIllegalEdges:

    @pytest.mark.unit
    def test_sweep_covers_both_entities(self):
        assert len(ILLEGAL_EDGES) > 60
        assert ("order", "status", "pending", "dispatched") in ILLEGAL_EDGES
        assert ("remittance", "status", "completed", "cancelled") in ILLEGAL_EDGES

    @pytest.mark.unit
    @pytest.mark.parametrize("entity_type, field, old, new", ILLEGAL_EDGES)
    def test_store_refuses_edge(self, db, admin_user, entity_type, field, old, new):
        entity = _make(db, entity_type, field, old)
        db.commit()

        result = WorkflowStore(db).write_transition(
            entity_type, entity.id, old, new, admin_user.id, action="set_status", field=field,
        )

        assert result.error_code == "INVALID_TRANSITION"
        db.refresh(entity)
        assert getattr(entity, field) == old
        assert entity.version == 1
        assert db.query(StatusHistory).count() == 0


@pytest.fixture
def file_sessions(tmp_path):
    """Session factory on a SQLite file, so each thread gets its own connection."""
    import app.models  # noqa: F401

    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


def _race(session_factory, entity_type, entity_id, actor, attempts):
    """Run ``attempts`` [(action, payload)] at once, one session per thread."""
    barrier = threading.Barrier(len(attempts))
    outcomes = {}

    def run(index, action, payload):
        session = session_factory()
        try:
            executor = TransitionExecutor(session)
            barrier.wait()
            result = executor.apply_transition(entity_type, entity_id, action, actor, payload)
            outcomes[index] = "ok" if result.ok else result.error_code
        finally:
            session.close()

    threads = [
        threading.Thread(target=run, args=(i, action, payload))
        for i, (action, payload) in enumerate(attempts)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return [outcomes.get(i) for i in range(len(attempts))]


class TestConcurrentWrites:

    @pytest.mark.unit
    def test_same_action_twice_applies_once(self, file_sessions):
        setup = file_sessions()
        admin = create_test_user(setup, account_type="admin")
        order = create_test_order(setup, status="processing", payment_status="validated")
        setup.commit()
        actor, order_id = Actor.from_user(admin), order.id
        setup.close()

        outcomes = _race(file_sessions, "order", order_id, actor, [
            ("mark_dispatched", TransitionPayload(tracking_info="TRK-A")),
            ("mark_dispatched", TransitionPayload(tracking_info="TRK-B")),
        ])

        assert sorted(outcomes) == ["INVALID_TRANSITION", "ok"]
        check = file_sessions()
        try:
            order = WorkflowStore(check).read_entity("order", order_id).unwrap()
            assert order.status == "dispatched"
            assert order.version == 2
            assert order.tracking_info == ("TRK-A" if outcomes[0] == "ok" else "TRK-B")
            assert check.query(StatusHistory).count() == 1
        finally:
            check.close()

    @pytest.mark.unit
    def test_conflicting_actions_one_wins(self, file_sessions):
        setup = file_sessions()
        admin = create_test_user(setup, account_type="admin")
        order = create_test_order(setup)
        setup.commit()
        actor, order_id = Actor.from_user(admin), order.id
        setup.close()

        outcomes = _race(file_sessions, "order", order_id, actor, [
            ("validate_payment", TransitionPayload(notes="Matches the bank statement")),
            ("reject_payment", TransitionPayload(reason="Amount does not match")),
        ])

        assert sorted(outcomes) == ["INVALID_TRANSITION", "ok"]
        check = file_sessions()
        try:
            order = WorkflowStore(check).read_entity("order", order_id).unwrap()
            if outcomes[0] == "ok":
                assert (order.status, order.payment_status) == ("pending", "validated")
            else:
                assert (order.status, order.payment_status) == ("cancelled", "rejected")
            assert order.version == 2
        finally:
            check.close()
