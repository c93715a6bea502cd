"""
Workload metrics.

Pure functions over shift lists: weekly hours per employee, consecutive
working days, hours per store and the equity score. All totals are
unrounded; rounding is left to display code.
"""
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from models.shift import Shift


def shift_hours(shift: Shift) -> float:
    """
    Worked hours of a shift.

    Uses ``actual_hours`` when set and positive, otherwise the duration
    computed from start, end and break.
    """
    return shift.hours


def week_bounds(week_start: date) -> Tuple[date, date]:
    """Inclusive (start, end) of the 7-day window starting at ``week_start``."""
    return week_start, week_start + timedelta(days=6)


def shifts_in_period(shifts: Iterable[Shift], period_start: date,
                     period_end: date) -> List[Shift]:
    """Shifts whose date falls in ``[period_start, period_end]``."""
    return [s for s in shifts if period_start <= s.date <= period_end]


def weekly_hours(employee_id: str, shifts: Iterable[Shift],
                 period_start: date, period_end: date) -> float:
    """
    Total hours an employee works inside a period.

    Args:
        employee_id: Employee to total
        shifts: Any shift list; other employees' shifts are ignored
        period_start: First day of the window (inclusive)
        period_end: Last day of the window (inclusive)

    Returns:
        Decimal hours
    """
    return sum(
        shift_hours(s)
        for s in shifts_in_period(shifts, period_start, period_end)
        if s.employee_id == employee_id
    )


def store_hours(store_id: str, shifts: Iterable[Shift],
                period_start: date, period_end: date) -> float:
    """Total hours worked at a store inside a period."""
    return sum(
        shift_hours(s)
        for s in shifts_in_period(shifts, period_start, period_end)
        if s.store_id == store_id
    )


def consecutive_work_days(shifts: Iterable[Shift]) -> int:
    """
    Longest run of calendar days worked back to back.

    Several shifts on the same day count once. No shifts gives 0.
    """
    dates = sorted({s.date for s in shifts})
    if not dates:
        return 0

    longest = current = 1
    for previous, current_date in zip(dates, dates[1:]):
        if (current_date - previous).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1

    return longest


def mean_and_std(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation; (0, 0) for no values."""
    if not values:
        return 0.0, 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, variance ** 0.5


def equity_score(hours: Sequence[float], floor: Optional[float] = None) -> float:
    """
    Equity score of an hours distribution.

    100 minus the coefficient of variation as a percentage. A zero mean is
    perfectly equitable (100).

    Args:
        hours: Weekly hours per employee
        floor: Optional lower clamp (e.g. 0 for display)

    Returns:
        Equity score, unrounded
    """
    mean, std = mean_and_std(hours)
    if mean <= 0:
        return 100.0

    score = 100 - (std / mean) * 100
    if floor is not None:
        score = max(floor, score)
    return score
