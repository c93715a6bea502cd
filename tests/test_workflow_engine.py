"""
Tests for the shift validation workflow state machine.
"""
from datetime import datetime

import pytest

from communication.message import MessageType
from config import AlertSettings, ValidationAdminSettings
from engines.workflow_engine import WORKFLOW_TRANSITIONS, ShiftWorkflowEngine
from models.shift import ShiftValidationStatus as S
from models.workflow import ActorRole


@pytest.fixture
def workflow():
    return ShiftWorkflowEngine(verbose=False)


@pytest.fixture
def employees(make_employee):
    return [make_employee("A"), make_employee("B")]


def test_transition_table():
    assert len(WORKFLOW_TRANSITIONS) == 11
    pairs = {(t.from_status, t.to_status) for t in WORKFLOW_TRANSITIONS}
    assert (S.LOCKED_FINAL, S.PUBLISHED) in pairs
    assert (S.DRAFT, S.PUBLISHED) not in pairs


@pytest.mark.parametrize(
    "status, role, targets",
    [
        (S.DRAFT, "user", {S.READY_REVIEW}),
        (S.DRAFT, "admin", {S.READY_REVIEW, S.VALIDATED}),
        (S.READY_REVIEW, "user", set()),
        (S.PUBLISHED, "manager", {S.LOCKED_FINAL}),
        (S.PUBLISHED, "admin", {S.LOCKED_FINAL, S.VALIDATED}),
        (None, "user", {S.READY_REVIEW}),
        (S.DRAFT, "guest", set()),
    ],
)
def test_available_transitions(workflow, status, role, targets):
    assert {t.to_status for t in workflow.available_transitions(status, role)} == targets


def test_submit_for_review(workflow, employees, make_shift, snapshot_factory):
    shift = make_shift("A")
    result = workflow.execute_transition(shift, S.READY_REVIEW, "user", "Ann",
                                         snapshot=snapshot_factory(employees, [shift]))

    assert result.success
    assert result.new_status == S.READY_REVIEW
    assert result.validation_result.score == 100
    assert result.update.id == shift.id
    assert result.update.data["validation_status"] == S.READY_REVIEW
    assert result.shift.validation_status == S.READY_REVIEW
    assert shift.validation_status == S.DRAFT


def test_missing_status_counts_as_draft(workflow, employees, make_shift, snapshot_factory):
    shift = make_shift("A", validation_status=None)
    result = workflow.execute_transition(shift, S.READY_REVIEW, "user", "Ann",
                                         snapshot=snapshot_factory(employees, [shift]))

    assert result.success


@pytest.mark.parametrize(
    "start, target, final",
    [
        (S.READY_REVIEW, S.UNDER_REVIEW, S.VALIDATED),
        (S.UNDER_REVIEW, S.VALIDATED, S.PUBLISHED),
    ],
)
def test_auto_transitions(workflow, employees, make_shift, snapshot_factory, start, target, final):
    shift = make_shift("A", validation_status=start)
    result = workflow.execute_transition(shift, target, "manager", "Max",
                                         snapshot=snapshot_factory(employees, [shift]))

    assert result.success
    assert result.auto_transitioned
    assert result.new_status == final


def test_unauthorized_role(workflow, employees, make_shift, snapshot_factory):
    shift = make_shift("A", validation_status=S.PUBLISHED)
    result = workflow.execute_transition(shift, S.LOCKED_FINAL, "user", "Ann",
                                         snapshot=snapshot_factory(employees, [shift]))

    assert not result.success
    assert result.error == "Transition not allowed from published to locked_final for role user"
    assert result.update is None


def test_string_target_status(workflow, employees, make_shift, snapshot_factory):
    validated = make_shift("A", validation_status=S.VALIDATED)
    draft = make_shift("B")
    snapshot = snapshot_factory(employees, [validated, draft])

    denied = workflow.execute_transition(validated, "locked_final", "user", "Ann", snapshot)
    moved = workflow.execute_transition(draft, "ready_review", "user", "Ann", snapshot)

    assert not denied.success
    assert denied.error == "Transition not allowed from validated to locked_final for role user"
    assert moved.success
    assert moved.new_status == S.READY_REVIEW


def test_unknown_target_status(workflow, employees, make_shift, snapshot_factory):
    shift = make_shift("A")
    result = workflow.execute_transition(shift, "archived", "admin", "Root",
                                         snapshot_factory(employees, [shift]))

    assert not result.success
    assert result.error == "Unknown validation status: archived"


def test_validation_failure_blocks(workflow, make_shift, snapshot_factory):
    shift = make_shift("ghost")
    result = workflow.execute_transition(shift, S.READY_REVIEW, "user", "Ann",
                                         snapshot=snapshot_factory([], [shift]))

    assert not result.success
    assert result.error == "Validation failed: Employee not found"
    assert result.validation_result.score == 80


def test_score_below_threshold_blocks(workflow, employees, make_shift, snapshot_factory):
    late = make_shift("A", day=0, start="14:00", end="23:00")
    early = make_shift("A", day=1, start="06:00", end="14:00")
    settings = ValidationAdminSettings(alert_settings=AlertSettings(score_threshold=99))

    result = workflow.execute_transition(early, S.READY_REVIEW, "user", "Ann",
                                         snapshot=snapshot_factory(employees, [late, early]),
                                         settings=settings)

    assert not result.success
    assert result.error == "Validation score 97 below threshold 99"


def test_lock_sets_lock_fields(workflow, employees, make_shift, snapshot_factory):
    now = datetime(2024, 12, 20, 18, 0)
    shift = make_shift("A", validation_status=S.PUBLISHED, notes="Closing shift")
    result = workflow.execute_transition(shift, S.LOCKED_FINAL, "manager", "Max",
                                         snapshot=snapshot_factory(employees, [shift]),
                                         reason="Payroll closed", now=now)

    locked = result.shift
    assert locked.validation_status == S.LOCKED_FINAL
    assert locked.is_locked
    assert locked.locked_by == "Max"
    assert locked.locked_at == now
    assert locked.notes == "Closing shift\n[Lock: Payroll closed]"


def test_lock_without_notes(workflow, employees, make_shift, snapshot_factory):
    shift = make_shift("A", validation_status=S.VALIDATED)
    result = workflow.execute_transition(shift, S.LOCKED_FINAL, "admin", "Root",
                                         snapshot=snapshot_factory(employees, [shift]),
                                         reason="Audit")

    assert result.shift.notes == "[Lock: Audit]"


def test_unlock_clears_lock(workflow, employees, make_shift, snapshot_factory):
    shift = make_shift("A", validation_status=S.LOCKED_FINAL, is_locked=True,
                       locked_at=datetime(2024, 12, 20), locked_by="Max")
    result = workflow.execute_transition(shift, S.PUBLISHED, ActorRole.ADMIN, "Root",
                                         snapshot=snapshot_factory(employees, [shift]))

    unlocked = result.shift
    assert unlocked.validation_status == S.PUBLISHED
    assert not unlocked.is_locked
    assert unlocked.locked_at is None and unlocked.locked_by is None


# ==================== Bulk ====================

def test_bulk_partial_failure(workflow, employees, make_shift, snapshot_factory):
    drafts = [make_shift("A", day=0), make_shift("B", day=0)]
    published = make_shift("A", day=1, validation_status=S.PUBLISHED)
    shifts = drafts + [published]

    result = workflow.execute_bulk_transition(shifts, S.READY_REVIEW, "user", "Ann",
                                              snapshot=snapshot_factory(employees, shifts))

    assert [s.id for s in result.successful] == [s.id for s in drafts]
    assert [u.id for u in result.updates] == [s.id for s in drafts]
    assert [f.shift for f in result.failed] == [published]
    assert "not allowed" in result.failed[0].error
    assert result.summary == {"total": 3, "successful": 2, "failed": 1,
                              "avg_validation_score": 100}


def test_unauthorized_bulk_lock_leaves_shift_unchanged(workflow, employees, make_shift,
                                                      snapshot_factory):
    shift = make_shift("A", validation_status=S.VALIDATED)

    result = workflow.execute_bulk_transition([shift], "locked_final", "user", "Ann",
                                              snapshot=snapshot_factory(employees, [shift]),
                                              reason="close month")

    assert result.successful == []
    assert result.failed[0].shift is shift
    assert result.failed[0].error
    assert shift.validation_status == S.VALIDATED
    assert not shift.is_locked


def test_bulk_unknown_status_is_rejected(bus, employees, make_shift, snapshot_factory):
    workflow = ShiftWorkflowEngine(bus, verbose=False)
    shift = make_shift("A")

    result = workflow.execute_bulk_transition([shift], "archived", "admin", "Root",
                                              snapshot=snapshot_factory(employees, [shift]))

    assert result.failed[0].error == "Unknown validation status: archived"
    rejected = bus.get_history(msg_type=MessageType.WORKFLOW_REJECTED)
    assert rejected[0].content["to_status"] == "archived"


def test_bulk_crash_is_isolated(workflow, employees, make_shift, snapshot_factory,
                                monkeypatch):
    shifts = [make_shift("A", day=0, id="ok"), make_shift("B", day=1, id="bad")]
    original = workflow.rule_validator.validate

    def flaky(shift, *args, **kwargs):
        if shift.id == "bad":
            raise KeyError("store index")
        return original(shift, *args, **kwargs)

    monkeypatch.setattr(workflow.rule_validator, "validate", flaky)
    result = workflow.execute_bulk_transition(shifts, S.READY_REVIEW, "user", "Ann",
                                              snapshot=snapshot_factory(employees, shifts))

    assert [s.id for s in result.successful] == ["ok"]
    assert result.failed[0].error.startswith("Internal error:")


def test_bulk_events(bus, employees, make_shift, snapshot_factory):
    workflow = ShiftWorkflowEngine(bus, verbose=False)
    shifts = [make_shift("A", validation_status=S.PUBLISHED),
              make_shift("B", validation_status=S.DRAFT)]

    workflow.execute_bulk_transition(shifts, S.LOCKED_FINAL, "manager", "Max",
                                     reason="Week closed",
                                     snapshot=snapshot_factory(employees, shifts))

    moved = bus.get_history(msg_type=MessageType.WORKFLOW_TRANSITION)
    rejected = bus.get_history(msg_type=MessageType.WORKFLOW_REJECTED)
    complete = bus.get_history(msg_type=MessageType.BULK_TRANSITION_COMPLETE)
    assert moved[0].content["to_status"] == "locked_final"
    assert moved[0].metadata == {"actor": "Max", "role": "manager", "reason": "Week closed"}
    assert rejected[0].content["from_status"] == "draft"
    assert not rejected[0].content["validation_failed"]
    assert complete[0].content["successful"] == 1


# ==================== Queries ====================

def test_statistics_and_grouping(workflow, make_shift):
    shifts = [make_shift("A"), make_shift("A", validation_status=None),
              make_shift("B", validation_status=S.VALIDATED),
              make_shift("B", validation_status=S.LOCKED_FINAL)]

    grouped = workflow.shifts_by_status(shifts)
    stats = workflow.workflow_statistics(shifts)

    assert len(grouped[S.DRAFT]) == 2
    assert grouped[S.PUBLISHED] == []
    assert stats["total_shifts"] == 4
    assert stats["by_status"]["draft"] == 2
    assert stats["locked_percentage"] == 25
    assert stats["validated_percentage"] == 50


def test_can_edit_shift(workflow, make_shift):
    assert workflow.can_edit_shift(make_shift("A"))
    assert workflow.can_edit_shift(make_shift("A", validation_status=None))
    assert not workflow.can_edit_shift(make_shift("A", validation_status=S.READY_REVIEW))
