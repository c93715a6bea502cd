"""
Tests for the audit trail fed by engine events.
"""
from datetime import datetime

import pytest

from communication.audit_trail import AuditEntry, AuditOperation, AuditTrail
from engines.balancing_engine import BalancingEngine
from engines.workflow_engine import ShiftWorkflowEngine
from models.balancing import (
    BalancingSuggestion,
    ProposedChanges,
    SuggestionImpact,
    SuggestionType,
)
from models.shift import ShiftValidationStatus as S


@pytest.fixture
def trail(bus):
    return AuditTrail(bus)


@pytest.fixture
def employees(make_employee):
    return [make_employee("A"), make_employee("B")]


def _redistribute(source, target, hours):
    return BalancingSuggestion(
        id="r1",
        type=SuggestionType.REDISTRIBUTE,
        source_employee_id=source,
        target_employee_id=target,
        proposed_changes=ProposedChanges(impact=SuggestionImpact(hours_change=hours)),
    )


def test_bulk_lock_is_audited(bus, trail, employees, make_shift, snapshot_factory):
    workflow = ShiftWorkflowEngine(bus, verbose=False)
    published = make_shift("A", validation_status=S.PUBLISHED)
    draft = make_shift("B", validation_status=S.DRAFT)

    workflow.execute_bulk_transition([published, draft], S.LOCKED_FINAL, "manager", "Max",
                                     reason="Week closed",
                                     snapshot=snapshot_factory(employees, [published, draft]))

    lock, rejected = trail.entries
    assert lock.operation == AuditOperation.LOCK
    assert lock.user == "Max"
    assert lock.shift_ids == [published.id]
    assert lock.employee_ids == ["A"]
    assert lock.reason == "Week closed"
    assert (lock.from_status, lock.to_status) == ("published", "locked_final")
    assert lock.success

    assert rejected.operation == AuditOperation.REJECTED
    assert not rejected.success
    assert "not allowed" in rejected.errors[0]
    assert lock.correlation_id == rejected.correlation_id

    stats = trail.statistics()
    assert stats["total_operations"] == 2
    assert stats["operations_by_user"] == {"Max": 2}
    assert stats["success_rate"] == 50.0


def test_unlock_is_audited(bus, trail, employees, make_shift, snapshot_factory):
    workflow = ShiftWorkflowEngine(bus, verbose=False)
    locked = make_shift("A", validation_status=S.LOCKED_FINAL, is_locked=True)

    workflow.execute_bulk_transition([locked], S.PUBLISHED, "admin", "Root",
                                     snapshot=snapshot_factory(employees, [locked]))

    assert trail.entries[0].operation == AuditOperation.UNLOCK


def test_failed_validation_is_audited(bus, trail, make_shift, snapshot_factory):
    workflow = ShiftWorkflowEngine(bus, verbose=False)
    shift = make_shift("ghost")

    workflow.execute_bulk_transition([shift], S.READY_REVIEW, "user", "Ann",
                                     snapshot=snapshot_factory([], [shift]))

    entry = trail.entries[0]
    assert entry.operation == AuditOperation.VALIDATION_FAILED
    assert entry.score == 80
    assert trail.statistics()["avg_validation_score"] == 80


def test_rebalance_is_audited(bus, trail, employees, make_shift, snapshot_factory):
    engine = BalancingEngine(bus, verbose=False)
    shift = make_shift("A", start="09:00", end="13:00", id="a1")
    snapshot = snapshot_factory(employees, [shift])

    engine.apply_multiple_suggestions([_redistribute("A", "B", 4),
                                       _redistribute("A", "Z", 4)], snapshot)

    applied, failed = trail.entries
    assert applied.operation == AuditOperation.REBALANCE
    assert applied.user == "system"
    assert applied.shift_ids == ["a1"]
    assert applied.employee_ids == ["A", "B"]
    assert applied.reason == "redistribute"

    assert failed.operation == AuditOperation.REBALANCE_FAILED
    assert failed.errors == ["Employees not found"]
    assert trail.history_for_employee("Z") == [failed]


def test_unrelated_events_are_ignored(bus, trail, make_employee, make_shift, stores,
                                      week_start):
    from engines.alert_detector import AlertDetector

    AlertDetector(bus, verbose=False).detect(
        [make_employee("A")], [make_shift("A", start="09:00", end="12:00")],
        stores, week_start,
    )

    assert len(trail) == 0


def test_retention_drops_oldest():
    trail = AuditTrail(max_entries=2)
    for n in range(3):
        trail.record(AuditEntry(AuditOperation.TRANSITION, "Ann", shift_ids=[f"s{n}"]))

    assert [e.shift_ids[0] for e in trail.entries] == ["s1", "s2"]


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        AuditTrail(max_entries=0)


def test_history_and_export_order():
    trail = AuditTrail()
    early = trail.record(AuditEntry(AuditOperation.LOCK, "Max", shift_ids=["s1"],
                                    timestamp=datetime(2024, 12, 9, 8, 0)))
    late = trail.record(AuditEntry(AuditOperation.UNLOCK, "Root", shift_ids=["s1"],
                                   timestamp=datetime(2024, 12, 10, 8, 0)))
    trail.record(AuditEntry(AuditOperation.TRANSITION, "Ann", shift_ids=["s2"],
                            timestamp=datetime(2024, 12, 11, 8, 0)))

    assert trail.history_for_shift("s1") == [late, early]
    assert trail.export(end=datetime(2024, 12, 10, 12, 0)) == [early, late]
    assert len(trail.export(start=datetime(2024, 12, 10, 0, 0))) == 2


def test_detach_stops_recording(bus, trail, employees, make_shift, snapshot_factory):
    workflow = ShiftWorkflowEngine(bus, verbose=False)
    shift = make_shift("A", validation_status=S.PUBLISHED)
    trail.detach()

    workflow.execute_bulk_transition([shift], S.LOCKED_FINAL, "manager", "Max",
                                     snapshot=snapshot_factory(employees, [shift]))

    assert len(trail) == 0


def test_to_dataframe():
    trail = AuditTrail()
    trail.record(AuditEntry(AuditOperation.LOCK, "Max", shift_ids=["s1"], store_id="S1"))
    trail.record(AuditEntry(AuditOperation.REJECTED, "Ann", shift_ids=["s2"]))

    df = trail.to_dataframe()

    assert len(df) == 2
    assert list(df["operation"]) == ["lock", "rejected"]
    assert list(df["success"]) == [True, False]
    assert str(df["timestamp"].dtype).startswith("datetime64")
