"""
Tests for the conflict validator run before any balancing change.
"""
from dataclasses import replace

import pytest

from engines.conflict_validator import ConflictValidator
from models.balancing import BalancingSuggestion, SuggestionType
from models.constraints import ConflictType


@pytest.fixture
def validator():
    return ConflictValidator(verbose=False)


def _redistribute(source="A", target="B"):
    return BalancingSuggestion(id="s1", type=SuggestionType.REDISTRIBUTE,
                               source_employee_id=source, target_employee_id=target)


def _moved(shift, employee_id):
    return replace(shift, employee_id=employee_id)


def test_clean_move_is_valid(validator, make_employee, make_shift, snapshot_factory):
    shifts = [make_shift("A", day=0), make_shift("A", day=1)]
    snapshot = snapshot_factory([make_employee("A"), make_employee("B")], shifts)

    result = validator.validate(_redistribute(), [_moved(s, "B") for s in shifts], snapshot)

    assert result.is_valid
    assert result.warnings == []
    assert result.conflicts == []


def test_unknown_employees_and_shifts(validator, make_employee, make_shift, snapshot_factory):
    stray = make_shift("A", id="ghost")
    snapshot = snapshot_factory([make_employee("A")], [])

    result = validator.validate(_redistribute(target="Z"), [stray], snapshot)

    assert not result.is_valid
    assert "Target employee not found: Z" in result.errors
    assert "Shift not found: ghost" in result.errors


def test_same_day_shifts_block(validator, make_employee, make_shift, snapshot_factory):
    shifts = [make_shift("A", day=0, start="06:00", end="10:00"),
              make_shift("A", day=0, start="14:00", end="18:00")]
    snapshot = snapshot_factory([make_employee("A"), make_employee("B")], shifts)

    result = validator.validate(_redistribute(), [_moved(s, "B") for s in shifts], snapshot)

    assert not result.is_valid
    assert "B Test has overlapping shifts" in result.errors
    overlap = result.conflicts_of(ConflictType.OVERLAP)[0]
    assert overlap.blocking
    assert overlap.shift_ids == [s.id for s in shifts]


def test_contract_excess_is_only_a_warning(validator, make_employee, make_shift,
                                           snapshot_factory):
    """30h against a 20h contract exceeds the 1.2 tolerance."""
    shifts = [make_shift("A", day=d, start="08:00", end="18:00") for d in range(3)]
    snapshot = snapshot_factory([make_employee("A"), make_employee("B", contract_hours=20)],
                                shifts)

    result = validator.validate(_redistribute(), [_moved(s, "B") for s in shifts], snapshot)

    assert result.is_valid
    assert any("exceed contracted hours" in w for w in result.warnings)
    contract = result.conflicts_of(ConflictType.CONTRACT)[0]
    assert not contract.blocking


def test_within_contract_tolerance(validator, make_employee, make_shift, snapshot_factory):
    """24h against a 20h contract stays inside the tolerance."""
    shifts = [make_shift("A", day=d, start="08:00", end="16:00") for d in range(3)]
    snapshot = snapshot_factory([make_employee("A"), make_employee("B", contract_hours=20)],
                                shifts)

    result = validator.validate(_redistribute(), [_moved(s, "B") for s in shifts], snapshot)

    assert result.warnings == []


def test_short_rest_is_advisory(validator, make_employee, make_shift, snapshot_factory):
    shifts = [make_shift("A", day=0, start="14:00", end="23:00"),
              make_shift("A", day=1, start="06:00", end="14:00")]
    snapshot = snapshot_factory([make_employee("A"), make_employee("B")], shifts)

    result = validator.validate(_redistribute(), [_moved(s, "B") for s in shifts], snapshot)

    assert result.is_valid
    rest = result.conflicts_of(ConflictType.AVAILABILITY)
    assert len(rest) == 1
    assert "7.0h rest" in rest[0].message


def test_move_to_other_store_warns(validator, make_employee, make_shift, snapshot_factory):
    shifts = [make_shift("A", store_id="S2")]
    snapshot = snapshot_factory([make_employee("A", store_id="S2"),
                                 make_employee("B", store_id="S1")], shifts)

    result = validator.validate(_redistribute(), [_moved(shifts[0], "B")], snapshot)

    assert result.is_valid
    assert result.conflicts_of(ConflictType.COMPETENCY)
    assert any("different store" in w for w in result.warnings)


def test_long_shift_conflict(validator, make_employee, make_shift, snapshot_factory):
    shifts = [make_shift("A", start="07:00", end="19:00")]
    snapshot = snapshot_factory([make_employee("A"), make_employee("B")], shifts)

    result = validator.validate(_redistribute(), [_moved(shifts[0], "B")], snapshot)

    assert result.is_valid
    assert result.conflicts_of(ConflictType.CONTRACT)
