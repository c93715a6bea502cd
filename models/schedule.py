"""
Schedule snapshot model.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from .employee import Employee
from .shift import Shift, ShiftUpdate
from .store import Store


@dataclass
class ScheduleSnapshot:
    """
    Immutable view of employees, stores and shifts for one engine run.

    Engines read from a snapshot and never write to it; applying update
    instructions produces a new snapshot.

    Attributes:
        employees: All known employees
        stores: All known stores
        shifts: All known shifts
    """
    employees: List[Employee] = field(default_factory=list)
    stores: List[Store] = field(default_factory=list)
    shifts: List[Shift] = field(default_factory=list)

    # Indexes for fast lookup
    _employees_by_id: Dict[str, Employee] = field(default_factory=dict, repr=False)
    _stores_by_id: Dict[str, Store] = field(default_factory=dict, repr=False)
    _shifts_by_id: Dict[str, Shift] = field(default_factory=dict, repr=False)
    _by_employee: Dict[str, List[Shift]] = field(
        default_factory=lambda: defaultdict(list), repr=False
    )
    _by_date: Dict[date, List[Shift]] = field(
        default_factory=lambda: defaultdict(list), repr=False
    )

    def __post_init__(self):
        self.employees = list(self.employees)
        self.stores = list(self.stores)
        self.shifts = list(self.shifts)

        self._employees_by_id = {e.id: e for e in self.employees}
        self._stores_by_id = {s.id: s for s in self.stores}
        self._shifts_by_id = {}
        self._by_employee = defaultdict(list)
        self._by_date = defaultdict(list)
        for shift in self.shifts:
            self._shifts_by_id[shift.id] = shift
            self._by_employee[shift.employee_id].append(shift)
            self._by_date[shift.date].append(shift)

    # ==================== Lookups ====================

    def find_employee(self, employee_id: Optional[str]) -> Optional[Employee]:
        if employee_id is None:
            return None
        return self._employees_by_id.get(employee_id)

    def find_store(self, store_id: Optional[str]) -> Optional[Store]:
        if store_id is None:
            return None
        return self._stores_by_id.get(store_id)

    def find_shift(self, shift_id: Optional[str]) -> Optional[Shift]:
        if shift_id is None:
            return None
        return self._shifts_by_id.get(shift_id)

    def shifts_for_employee(self, employee_id: str) -> List[Shift]:
        """Get all shifts assigned to an employee."""
        return list(self._by_employee.get(employee_id, []))

    def shifts_on(self, target_date: date) -> List[Shift]:
        return list(self._by_date.get(target_date, []))

    def unlocked_shifts_for(self, employee_id: str) -> List[Shift]:
        """Get an employee's shifts that automated balancing may touch."""
        return [s for s in self.shifts_for_employee(employee_id) if not s.is_locked]

    @property
    def active_employees(self) -> List[Employee]:
        return [e for e in self.employees if e.is_active]

    @property
    def active_stores(self) -> List[Store]:
        return [s for s in self.stores if s.is_active]

    # ==================== Derivation ====================

    def apply_updates(self, updates: Iterable[ShiftUpdate]) -> "ScheduleSnapshot":
        """
        Build a new snapshot with update instructions applied.

        Updates for unknown shift IDs are ignored.

        Args:
            updates: Update instructions in application order

        Returns:
            A new snapshot; this one is left untouched
        """
        shifts = dict(self._shifts_by_id)
        for update in updates:
            if update.id in shifts:
                shifts[update.id] = shifts[update.id].apply(update)

        return ScheduleSnapshot(
            employees=self.employees,
            stores=self.stores,
            shifts=[shifts[s.id] for s in self.shifts],
        )

    def with_shifts(self, shifts: Iterable[Shift]) -> "ScheduleSnapshot":
        """Build a snapshot sharing employees and stores but with other shifts."""
        return ScheduleSnapshot(employees=self.employees, stores=self.stores, shifts=list(shifts))

    def summary(self) -> dict:
        """Get a summary of the snapshot."""
        return {
            "employees": len(self.employees),
            "active_employees": len(self.active_employees),
            "stores": len(self.stores),
            "shifts": len(self.shifts),
            "locked_shifts": sum(1 for s in self.shifts if s.is_locked),
            "total_hours": sum(s.hours for s in self.shifts),
        }

    def __str__(self) -> str:
        summary = self.summary()
        return (
            f"Snapshot: {summary['employees']} employees | "
            f"{summary['stores']} stores | "
            f"{summary['shifts']} shifts | "
            f"{summary['total_hours']:.1f} hours"
        )
