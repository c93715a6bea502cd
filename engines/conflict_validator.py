"""
Conflict Validator - Checks a proposed remediation before it is applied.

Checks performed on the affected shifts, as they would look after the change:
- Referential integrity (employees and shifts exist in the snapshot)
- Same-day overlap per employee (blocking)
- Contract hours with a 20% tolerance (advisory)
- Rest between shifts, long shifts, working-day count, cross-store moves (advisory)
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from config import ValidationAdminSettings
from models.balancing import BalancingSuggestion, SuggestionType
from models.constraints import Conflict, ConflictType, ValidationResult
from models.employee import Employee
from models.schedule import ScheduleSnapshot
from models.shift import Shift

from .base_engine import BaseEngine
from .metrics import shift_hours


# Contracted hours may be exceeded by this factor before a warning
CONTRACT_TOLERANCE = 1.2


class ConflictValidator(BaseEngine):
    """
    Validates a balancing suggestion against a snapshot.

    Errors block application; warnings and non-blocking conflicts are
    advisory only.
    """

    def __init__(self, message_bus=None, verbose: Optional[bool] = None):
        super().__init__("ConflictValidator", message_bus, verbose)

    def execute(self, **kwargs) -> ValidationResult:
        return self.validate(
            kwargs["suggestion"],
            kwargs["affected_shifts"],
            kwargs["snapshot"],
            kwargs.get("settings"),
        )

    def validate(self,
                 suggestion: BalancingSuggestion,
                 affected_shifts: Iterable[Shift],
                 snapshot: ScheduleSnapshot,
                 settings: Optional[ValidationAdminSettings] = None) -> ValidationResult:
        """
        Validate a suggestion and the shifts it touches.

        Args:
            suggestion: The remediation being applied
            affected_shifts: Shifts with their proposed owners
            snapshot: Current employees, stores and shifts
            settings: Policy thresholds

        Returns:
            ValidationResult; ``is_valid`` is False when any error was found
        """
        settings = settings or ValidationAdminSettings()
        affected_shifts = list(affected_shifts)
        result = ValidationResult()
        self._operation_count += 1

        self._check_existence(suggestion, affected_shifts, snapshot, result)

        by_employee: Dict[str, List[Shift]] = defaultdict(list)
        for shift in affected_shifts:
            by_employee[shift.employee_id].append(shift)

        for employee_id, shifts in by_employee.items():
            employee = snapshot.find_employee(employee_id)
            if employee is None:
                continue

            shifts = sorted(shifts, key=lambda s: s.start_datetime)
            self._check_overlap(employee, shifts, result)
            self._check_contract_hours(employee, shifts, result)
            self._check_rest(employee, shifts, settings, result)
            self._check_long_shifts(employee, shifts, settings, result)
            self._check_working_days(employee, shifts, settings, result)
            if suggestion.type == SuggestionType.REDISTRIBUTE:
                self._check_store(employee, shifts, result)

        if result.is_valid:
            self.log(f"{suggestion.id}: valid ({len(result.warnings)} warnings)", "debug")
        else:
            self.log(f"{suggestion.id}: invalid - {', '.join(result.errors)}", "warning")

        return result

    # ==================== Checks ====================

    def _check_existence(self, suggestion: BalancingSuggestion, shifts: List[Shift],
                         snapshot: ScheduleSnapshot, result: ValidationResult) -> None:
        if suggestion.source_employee_id and not snapshot.find_employee(suggestion.source_employee_id):
            name = suggestion.source_employee_name or suggestion.source_employee_id
            result.add_error(f"Source employee not found: {name}")

        if suggestion.target_employee_id and not snapshot.find_employee(suggestion.target_employee_id):
            name = suggestion.target_employee_name or suggestion.target_employee_id
            result.add_error(f"Target employee not found: {name}")

        for shift in shifts:
            if snapshot.find_shift(shift.id) is None:
                result.add_error(f"Shift not found: {shift.id}")

    def _check_overlap(self, employee: Employee, shifts: List[Shift],
                       result: ValidationResult) -> None:
        """Two affected shifts on the same date for one employee."""
        seen = {}
        clashing = []
        for shift in shifts:
            if shift.date in seen:
                clashing.extend([seen[shift.date], shift.id])
            else:
                seen[shift.date] = shift.id

        if clashing:
            result.add_conflict(Conflict(
                conflict_type=ConflictType.OVERLAP,
                employee_id=employee.id,
                message=f"{employee.full_name} has overlapping shifts",
                shift_ids=list(dict.fromkeys(clashing)),
                blocking=True,
            ))

    def _check_contract_hours(self, employee: Employee, shifts: List[Shift],
                              result: ValidationResult) -> None:
        total = sum(shift_hours(s) for s in shifts)
        cap = employee.weekly_cap
        if total > cap * CONTRACT_TOLERANCE:
            message = (
                f"{employee.full_name} will exceed contracted hours "
                f"({total:.1f}h > {cap:g}h)"
            )
            result.add_warning(message)
            result.add_conflict(Conflict(
                conflict_type=ConflictType.CONTRACT,
                employee_id=employee.id,
                message=message,
                shift_ids=[s.id for s in shifts],
            ))

    def _check_rest(self, employee: Employee, shifts: List[Shift],
                    settings: ValidationAdminSettings, result: ValidationResult) -> None:
        for current, following in zip(shifts, shifts[1:]):
            if current.date == following.date:
                continue
            rest = (following.start_datetime - current.end_datetime).total_seconds() / 3600
            if rest < settings.min_rest_hours:
                result.add_conflict(Conflict(
                    conflict_type=ConflictType.AVAILABILITY,
                    employee_id=employee.id,
                    message=(
                        f"{employee.full_name} only has {rest:.1f}h rest between shifts "
                        f"(minimum {settings.min_rest_hours:g}h)"
                    ),
                    shift_ids=[current.id, following.id],
                ))

    def _check_long_shifts(self, employee: Employee, shifts: List[Shift],
                           settings: ValidationAdminSettings, result: ValidationResult) -> None:
        for shift in shifts:
            hours = shift_hours(shift)
            if hours > settings.max_daily_hours:
                result.add_conflict(Conflict(
                    conflict_type=ConflictType.CONTRACT,
                    employee_id=employee.id,
                    message=(
                        f"Shift of {employee.full_name} exceeds the daily limit "
                        f"({hours:.1f}h > {settings.max_daily_hours:g}h)"
                    ),
                    shift_ids=[shift.id],
                ))

    def _check_working_days(self, employee: Employee, shifts: List[Shift],
                            settings: ValidationAdminSettings, result: ValidationResult) -> None:
        days = len({s.date for s in shifts})
        if days > settings.max_consecutive_days:
            result.add_warning(
                f"{employee.full_name} works {days} days "
                f"(recommended maximum: {settings.max_consecutive_days})"
            )

    def _check_store(self, employee: Employee, shifts: List[Shift],
                     result: ValidationResult) -> None:
        """Moving an employee onto shifts outside their home store."""
        if not employee.store_id:
            return
        foreign = [s for s in shifts if s.store_id != employee.store_id]
        if foreign:
            message = (
                f"{employee.full_name} is moved to a different store, "
                f"check store-specific competencies"
            )
            result.add_warning(message)
            result.add_conflict(Conflict(
                conflict_type=ConflictType.COMPETENCY,
                employee_id=employee.id,
                message=message,
                shift_ids=[s.id for s in foreign],
            ))
