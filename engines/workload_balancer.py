"""
Workload Balancer - Proposes balancing suggestions for one week.

Compares each active employee's hours with their ideal week (contract
hours, or the target from settings) and proposes:
- redistribute: overloaded employee -> closest underloaded colleague of the same store
- swap_shifts: opposite-sign colleagues of the same store with a compatible shift pair
- adjust_hours: small deviations that a schedule tweak could absorb

Locked shifts are left out of every computation.
"""
from datetime import date
from itertools import count
from typing import Dict, List, Optional, Tuple

from communication.message_bus import MessageBus
from config import ValidationAdminSettings
from models.balancing import (
    BalancingMetrics,
    BalancingPlan,
    BalancingSuggestion,
    EmployeeWorkload,
    ProposedChanges,
    StoreBalance,
    SuggestionImpact,
    SuggestionPriority,
    SuggestionType,
)
from models.employee import Employee
from models.schedule import ScheduleSnapshot
from models.shift import Shift
from models.store import Store

from .base_engine import BaseEngine
from .metrics import equity_score, shift_hours, shifts_in_period, week_bounds


# Deviation from the ideal week, in percent, that calls for redistribution
MAX_DEVIATION_PERCENT = 20.0
SWAP_DEVIATION_PERCENT = 15.0
HIGH_PRIORITY_REDISTRIBUTION_PERCENT = 50.0
HIGH_PRIORITY_SWAP_PERCENT = 30.0
MAX_REDISTRIBUTION_HOURS = 8.0
# Redistributions of this size can be applied without review
AUTO_APPLY_MIN_HOURS = 4.0
AUTO_APPLY_MAX_HOURS = 10.0
MAX_SWAP_DIFFERENCE_HOURS = 2.0
# Deviation window (hours) for an adjust_hours suggestion
ADJUST_MIN_HOURS = 2.0
ADJUST_MAX_HOURS = 6.0
STORE_STAFFING_PERCENT = 25.0
POTENTIAL_EQUITY_GAIN = 15.0


class _EmployeeStats:
    """Working numbers for one employee during plan generation."""

    def __init__(self, employee: Employee, shifts: List[Shift], ideal_hours: float):
        self.employee = employee
        self.shifts = shifts
        self.total_hours = sum(shift_hours(s) for s in shifts)
        self.ideal_hours = ideal_hours
        self.deviation = self.total_hours - ideal_hours
        self.deviation_percent = self.deviation / ideal_hours * 100 if ideal_hours else 0.0


class WorkloadBalancer(BaseEngine):
    """
    Generates a BalancingPlan from a snapshot.

    Suggestions are proposals only; apply them with the BalancingEngine.
    """

    def __init__(self, message_bus: Optional[MessageBus] = None, verbose: Optional[bool] = None):
        super().__init__("WorkloadBalancer", message_bus, verbose)

    def execute(self, **kwargs) -> BalancingPlan:
        """
        Generate the plan for a week.

        Keyword Args:
            snapshot: ScheduleSnapshot to analyse
            week_start: First day of the week
            settings: ValidationAdminSettings
            store_filter: Restrict to one store
        """
        return self.generate(
            kwargs["snapshot"],
            kwargs["week_start"],
            kwargs.get("settings"),
            store_filter=kwargs.get("store_filter"),
        )

    def generate(self,
                 snapshot: ScheduleSnapshot,
                 week_start: date,
                 settings: Optional[ValidationAdminSettings] = None,
                 store_filter: Optional[str] = None) -> BalancingPlan:
        """
        Analyse a week and propose suggestions.

        Args:
            snapshot: Employees, stores and shifts
            week_start: First day of the 7-day window
            settings: Policy thresholds (target_hours_per_week, equity_threshold)
            store_filter: Only consider this store and its employees

        Returns:
            BalancingPlan; empty without active employees or shifts
        """
        settings = settings or ValidationAdminSettings()
        self._operation_count += 1

        period_start, period_end = week_bounds(week_start)
        week_shifts = [
            s for s in shifts_in_period(snapshot.shifts, period_start, period_end)
            if not s.is_locked and (not store_filter or s.store_id == store_filter)
        ]
        employees = [
            e for e in snapshot.employees
            if e.is_active and (not store_filter or e.store_id == store_filter)
        ]
        if not employees or not week_shifts:
            self.log("Nothing to balance for this week", "debug")
            return BalancingPlan()

        stores = [s for s in snapshot.stores if not store_filter or s.id == store_filter]

        stats = [
            _EmployeeStats(
                employee,
                [s for s in week_shifts if s.employee_id == employee.id],
                employee.contract_hours or settings.target_hours_per_week,
            )
            for employee in employees
        ]

        metrics = self._metrics(stats, stores, week_shifts, settings)

        ids = count(1)
        suggestions = (
            self._redistributions(stats, ids)
            + self._swaps(stats, ids)
            + self._adjustments(stats, ids)
        )
        suggestions.sort(key=lambda s: s.priority.rank, reverse=True)

        self.log(
            f"Week of {week_start.isoformat()}: {len(suggestions)} suggestions, "
            f"balance {metrics.overall_balance} ({metrics.current_equity_score:.1f})",
            "info",
        )
        return BalancingPlan(suggestions=suggestions, metrics=metrics)

    # ==================== Metrics ====================

    def _metrics(self, stats: List[_EmployeeStats], stores: List[Store],
                 week_shifts: List[Shift], settings: ValidationAdminSettings) -> BalancingMetrics:
        score = equity_score([s.total_hours for s in stats], floor=0)

        if score < settings.equity_threshold:
            overall = "poor"
        elif score < 75:
            overall = "fair"
        elif score < 90:
            overall = "good"
        else:
            overall = "excellent"

        return BalancingMetrics(
            current_equity_score=round(score, 1),
            potential_equity_score=round(min(score + POTENTIAL_EQUITY_GAIN, 100.0), 1),
            workload_distribution=[
                EmployeeWorkload(
                    employee_id=s.employee.id,
                    employee_name=s.employee.full_name,
                    current_hours=round(s.total_hours, 1),
                    ideal_hours=s.ideal_hours,
                    deviation=round(s.deviation, 1),
                    deviation_percent=round(s.deviation_percent, 1),
                )
                for s in stats
            ],
            store_balance=self._store_balance(stores, week_shifts),
            overall_balance=overall,
        )

    @staticmethod
    def _store_balance(stores: List[Store], week_shifts: List[Shift]) -> List[StoreBalance]:
        totals: Dict[str, float] = {
            store.id: sum(shift_hours(s) for s in week_shifts if s.store_id == store.id)
            for store in stores
        }
        average = sum(totals.values()) / max(len(totals), 1)

        balance = []
        for store in stores:
            deviation = totals[store.id] - average
            deviation_percent = abs(deviation) / average * 100 if average > 0 else 0
            level = "optimal"
            if deviation_percent > STORE_STAFFING_PERCENT:
                level = "understaffed" if deviation < 0 else "overstaffed"
            balance.append(StoreBalance(
                store_id=store.id,
                store_name=store.name,
                current_hours=round(totals[store.id], 1),
                ideal_hours=round(average, 1),
                deviation=round(deviation, 1),
                staffing_level=level,
            ))
        return balance

    # ==================== Suggestions ====================

    def _redistributions(self, stats: List[_EmployeeStats], ids) -> List[BalancingSuggestion]:
        overloaded = [s for s in stats if s.deviation_percent > MAX_DEVIATION_PERCENT]
        underloaded = [s for s in stats if s.deviation_percent < -MAX_DEVIATION_PERCENT]

        suggestions = []
        for source in overloaded:
            matches = [
                u for u in underloaded
                if u.employee.id != source.employee.id
                and u.employee.store_id == source.employee.store_id
            ]
            if not matches:
                continue
            target = min(matches, key=lambda u: abs(u.deviation_percent))

            hours = min(abs(source.deviation) / 2, abs(target.deviation) / 2,
                        MAX_REDISTRIBUTION_HOURS)
            suggestions.append(BalancingSuggestion(
                id=f"redistribute-{next(ids)}",
                type=SuggestionType.REDISTRIBUTE,
                priority=(
                    SuggestionPriority.HIGH
                    if source.deviation_percent > HIGH_PRIORITY_REDISTRIBUTION_PERCENT
                    else SuggestionPriority.MEDIUM
                ),
                title="Hours redistribution",
                description=(
                    f"Move {hours:.1f}h from {source.employee.first_name} "
                    f"to {target.employee.first_name}"
                ),
                source_employee_id=source.employee.id,
                target_employee_id=target.employee.id,
                source_employee_name=source.employee.full_name,
                target_employee_name=target.employee.full_name,
                store_id=source.employee.store_id,
                proposed_changes=ProposedChanges(
                    action=f"Redistribute {hours:.1f} hours",
                    from_value=f"{source.total_hours:.1f}h",
                    to_value=(
                        f"{source.total_hours - hours:.1f}h -> "
                        f"{target.total_hours + hours:.1f}h"
                    ),
                    impact=SuggestionImpact(hours_change=hours,
                                            equity_improvement=8.5, workload_balance=12.3),
                ),
                auto_applicable=AUTO_APPLY_MIN_HOURS <= hours <= AUTO_APPLY_MAX_HOURS,
                estimated_duration=15,
            ))
        return suggestions

    def _swaps(self, stats: List[_EmployeeStats], ids) -> List[BalancingSuggestion]:
        suggestions = []
        for first in stats:
            if abs(first.deviation_percent) <= SWAP_DEVIATION_PERCENT:
                continue
            for second in stats:
                if (second.employee.id == first.employee.id
                        or second.employee.store_id != first.employee.store_id
                        or first.deviation_percent * second.deviation_percent >= 0):
                    continue

                pair = self.best_swap_pair(first.shifts, second.shifts)
                if pair is None:
                    continue
                anchor, other, diff = pair
                spread = max(abs(first.deviation_percent), abs(second.deviation_percent))

                suggestions.append(BalancingSuggestion(
                    id=f"swap-{next(ids)}",
                    type=SuggestionType.SWAP_SHIFTS,
                    priority=(
                        SuggestionPriority.HIGH if spread > HIGH_PRIORITY_SWAP_PERCENT
                        else SuggestionPriority.MEDIUM
                    ),
                    title="Shift swap",
                    description=(
                        f"Swap shifts between {first.employee.first_name} "
                        f"and {second.employee.first_name}"
                    ),
                    source_employee_id=first.employee.id,
                    target_employee_id=second.employee.id,
                    source_employee_name=first.employee.full_name,
                    target_employee_name=second.employee.full_name,
                    shift_id=anchor.id,
                    store_id=first.employee.store_id,
                    proposed_changes=ProposedChanges(
                        action="Swap shifts",
                        from_value=f"{anchor.start_time}-{anchor.end_time}",
                        to_value=f"{other.start_time}-{other.end_time}",
                        impact=SuggestionImpact(hours_change=diff,
                                                equity_improvement=6.8, workload_balance=9.2),
                    ),
                    auto_applicable=True,
                    estimated_duration=10,
                ))
        return suggestions

    @staticmethod
    def best_swap_pair(first_shifts: List[Shift],
                       second_shifts: List[Shift]) -> Optional[Tuple[Shift, Shift, float]]:
        """
        Closest-duration pair of swappable shifts.

        A pair qualifies when the shifts are on different days or at
        different stores and their durations differ by at most 2h.

        Returns:
            (first shift, second shift, hour difference) or None
        """
        best = None
        for first in first_shifts:
            for second in second_shifts:
                if first.date == second.date and first.store_id == second.store_id:
                    continue
                diff = abs(shift_hours(first) - shift_hours(second))
                if diff > MAX_SWAP_DIFFERENCE_HOURS:
                    continue
                if best is None or diff < best[2]:
                    best = (first, second, diff)
        return best

    def _adjustments(self, stats: List[_EmployeeStats], ids) -> List[BalancingSuggestion]:
        suggestions = []
        for stat in stats:
            gap = abs(stat.deviation)
            if not ADJUST_MIN_HOURS < gap < ADJUST_MAX_HOURS:
                continue
            suggestions.append(BalancingSuggestion(
                id=f"adjust-hours-{next(ids)}",
                type=SuggestionType.ADJUST_HOURS,
                priority=SuggestionPriority.LOW,
                title="Hours adjustment",
                description=f"Adjust {stat.employee.first_name}'s hours to balance the load",
                source_employee_id=stat.employee.id,
                source_employee_name=stat.employee.full_name,
                store_id=stat.employee.store_id,
                proposed_changes=ProposedChanges(
                    action="Reduce hours" if stat.deviation > 0 else "Increase hours",
                    from_value=f"{stat.total_hours:.1f}h",
                    to_value=f"{stat.ideal_hours:.1f}h",
                    impact=SuggestionImpact(hours_change=gap,
                                            equity_improvement=3.2, workload_balance=4.1),
                ),
                auto_applicable=gap < 4,
                estimated_duration=8,
            ))
        return suggestions
