"""
Shift locking rules - Weighted checks a shift must pass before approval.

Rules (weight):
- Valid employee (20): exists and is active
- Valid store (20): exists and is active
- Valid times (15): duration within min/max shift hours
- Overlaps (25): no intersecting shift for the same employee that day
- Weekly hours (10): below the weekly maximum, warning near the cap
- Rest between shifts (10): enough rest from adjacent-day shifts

The score is the weight-averaged rule score, 0-100.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional

from config import ValidationAdminSettings
from models.constraints import ValidationResult
from models.schedule import ScheduleSnapshot
from models.shift import Shift

from .base_engine import BaseEngine
from .metrics import shift_hours


@dataclass
class RuleOutcome:
    """Result of a single rule."""
    score: float = 100.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


RuleCheck = Callable[[Shift, ScheduleSnapshot, ValidationAdminSettings], RuleOutcome]


@dataclass(frozen=True)
class ShiftRule:
    """
    A weighted validation rule.

    Attributes:
        name: Rule name
        category: critical or warning
        weight: Contribution to the final score
        check: Callable producing the rule outcome
    """
    name: str
    category: str
    weight: int
    check: RuleCheck


# ==================== Rules ====================

def _check_employee(shift: Shift, snapshot: ScheduleSnapshot,
                    settings: ValidationAdminSettings) -> RuleOutcome:
    employee = snapshot.find_employee(shift.employee_id)
    if employee is None:
        return RuleOutcome(0, errors=["Employee not found"])
    if not employee.is_active:
        return RuleOutcome(0, errors=["Employee is not active"])
    return RuleOutcome()


def _check_store(shift: Shift, snapshot: ScheduleSnapshot,
                 settings: ValidationAdminSettings) -> RuleOutcome:
    store = snapshot.find_store(shift.store_id)
    if store is None:
        return RuleOutcome(0, errors=["Store not found"])
    if not store.is_active:
        return RuleOutcome(0, errors=["Store is not active"])
    return RuleOutcome()


def _check_times(shift: Shift, snapshot: ScheduleSnapshot,
                 settings: ValidationAdminSettings) -> RuleOutcome:
    if not shift.start_time or not shift.end_time:
        return RuleOutcome(0, errors=["Start and end times are required"])

    duration = (shift.end_datetime - shift.start_datetime).total_seconds() / 3600
    if duration <= 0:
        return RuleOutcome(0, errors=["End time must be after start time"])
    if duration > settings.max_shift_hours:
        return RuleOutcome(20, errors=[f"Shift cannot exceed {settings.max_shift_hours:g} hours"])
    if duration < settings.min_shift_hours:
        return RuleOutcome(10, errors=[f"Shift must last at least {settings.min_shift_hours:g} hour(s)"])
    return RuleOutcome()


def _check_overlaps(shift: Shift, snapshot: ScheduleSnapshot,
                    settings: ValidationAdminSettings) -> RuleOutcome:
    for other in snapshot.shifts_for_employee(shift.employee_id):
        if other.id == shift.id or other.date != shift.date:
            continue
        if shift.overlaps(other):
            return RuleOutcome(
                0, errors=[f"Overlaps with shift {other.start_time}-{other.end_time}"]
            )
    return RuleOutcome()


def _check_weekly_hours(shift: Shift, snapshot: ScheduleSnapshot,
                        settings: ValidationAdminSettings) -> RuleOutcome:
    # Monday-start week containing the shift
    week_start = shift.date - timedelta(days=shift.date.weekday())
    week_end = week_start + timedelta(days=6)

    total = shift_hours(shift) + sum(
        shift_hours(s)
        for s in snapshot.shifts_for_employee(shift.employee_id)
        if s.id != shift.id and week_start <= s.date <= week_end
    )

    if total > settings.max_weekly_hours:
        return RuleOutcome(
            30, errors=[f"Exceeds {settings.max_weekly_hours:g} weekly hours (current: {total:.1f}h)"]
        )
    if total > settings.max_hours_variation:
        return RuleOutcome(80, warnings=[f"Close to the weekly limit ({total:.1f}h)"])
    return RuleOutcome()


def _check_rest(shift: Shift, snapshot: ScheduleSnapshot,
                settings: ValidationAdminSettings) -> RuleOutcome:
    warnings = []
    adjacent_days = {shift.date - timedelta(days=1), shift.date + timedelta(days=1)}

    for other in snapshot.shifts_for_employee(shift.employee_id):
        if other.id == shift.id or other.date not in adjacent_days:
            continue
        if other.date < shift.date:
            rest = shift.start_datetime - other.end_datetime
        else:
            rest = other.start_datetime - shift.end_datetime
        rest_hours = rest.total_seconds() / 3600
        if rest_hours < settings.min_rest_hours:
            warnings.append(f"Insufficient rest between shifts ({rest_hours:.1f}h)")

    if warnings:
        return RuleOutcome(70, warnings=warnings)
    return RuleOutcome()


SHIFT_RULES: List[ShiftRule] = [
    ShiftRule("Valid employee", "critical", 20, _check_employee),
    ShiftRule("Valid store", "critical", 20, _check_store),
    ShiftRule("Valid times", "critical", 15, _check_times),
    ShiftRule("Overlaps", "critical", 25, _check_overlaps),
    ShiftRule("Weekly hours", "warning", 10, _check_weekly_hours),
    ShiftRule("Rest between shifts", "warning", 10, _check_rest),
]


def validation_severity(score: float) -> str:
    """Bucket a score into critical, warning or success."""
    if score < 50:
        return "critical"
    if score < 80:
        return "warning"
    return "success"


class ShiftRuleValidator(BaseEngine):
    """
    Runs the weighted shift rules.

    Attributes:
        rules: Rules evaluated for every shift
    """

    def __init__(self, rules: Optional[List[ShiftRule]] = None,
                 message_bus=None, verbose: Optional[bool] = None):
        super().__init__("ShiftRuleValidator", message_bus, verbose)
        self.rules = list(rules) if rules is not None else list(SHIFT_RULES)

    def execute(self, **kwargs) -> ValidationResult:
        return self.validate(kwargs["shift"], kwargs["snapshot"], kwargs.get("settings"))

    def validate(self, shift: Shift, snapshot: ScheduleSnapshot,
                 settings: Optional[ValidationAdminSettings] = None) -> ValidationResult:
        """
        Validate one shift against the snapshot it lives in.

        Args:
            shift: Shift to check
            snapshot: Employees, stores and the other shifts
            settings: Policy thresholds

        Returns:
            ValidationResult with a 0-100 score
        """
        settings = settings or ValidationAdminSettings()
        self._operation_count += 1
        result = ValidationResult()
        total_score = 0.0
        total_weight = 0

        for rule in self.rules:
            outcome = rule.check(shift, snapshot, settings)
            for error in outcome.errors:
                result.add_error(error)
            for warning in outcome.warnings:
                result.add_warning(warning)
            total_score += outcome.score * rule.weight
            total_weight += rule.weight

        result.score = round(total_score / total_weight) if total_weight else 0
        return result

    def validate_bulk(self, shifts: Iterable[Shift], snapshot: ScheduleSnapshot,
                      settings: Optional[ValidationAdminSettings] = None) -> Dict:
        """
        Validate several shifts.

        Returns:
            Dictionary with valid_shifts, invalid_shifts ({shift, errors})
            and summary (total, valid, invalid, avg_score)
        """
        valid, invalid, scores = [], [], []
        for shift in shifts:
            result = self.validate(shift, snapshot, settings)
            scores.append(result.score)
            if result.is_valid:
                valid.append(shift)
            else:
                invalid.append({"shift": shift, "errors": list(result.errors)})

        return {
            "valid_shifts": valid,
            "invalid_shifts": invalid,
            "summary": {
                "total": len(scores),
                "valid": len(valid),
                "invalid": len(invalid),
                "avg_score": round(sum(scores) / len(scores)) if scores else 0,
            },
        }
