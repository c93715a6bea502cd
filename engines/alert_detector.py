"""
Alert Detector - Workload anomaly detection.

Evaluates one week of shifts and raises alerts for:
- Overloaded employees (above the weekly cap or close to it)
- Underloaded employees (some hours, but below the weekly minimum)
- Critical inequity across the active workforce
- Stores staffed well below the cross-store average
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from communication.message import MessageType
from communication.message_bus import MessageBus
from config import ValidationAdminSettings
from models.alerts import AlertSeverity, AlertSummary, AlertType, WorkloadAlert
from models.employee import Employee
from models.shift import Shift
from models.store import Store

from .base_engine import BaseEngine
from .metrics import equity_score, shifts_in_period, store_hours, week_bounds, weekly_hours


# Weekly minimum below which a working employee is underloaded
MIN_WEEKLY_HOURS = 8.0
# Fraction of the weekly cap that triggers an early overload warning
OVERLOAD_WARNING_RATIO = 0.8
EQUITY_CRITICAL_THRESHOLD = 60.0
EQUITY_SEVERE_THRESHOLD = 40.0
# Relative shortfall versus the store average, in percent
STORE_IMBALANCE_PERCENT = 30.0
STORE_IMBALANCE_SEVERE_PERCENT = 50.0


class AlertDetector(BaseEngine):
    """
    Detects workload anomalies for one evaluation week.

    Thresholds come from the settings passed to each call:
    - max = settings.max_hours_variation
    - overload warning = 0.8 * max
    - min = 8h (fixed)
    - equity critical = 60
    """

    def __init__(self, message_bus: Optional[MessageBus] = None, verbose: Optional[bool] = None):
        super().__init__("AlertDetector", message_bus, verbose)

    def execute(self, **kwargs) -> List[WorkloadAlert]:
        """
        Run detection over a snapshot.

        Keyword Args:
            snapshot: ScheduleSnapshot to evaluate
            week_start: First day of the evaluation week
            settings: ValidationAdminSettings (defaults when omitted)
        """
        snapshot = kwargs["snapshot"]
        return self.detect(
            snapshot.employees,
            snapshot.shifts,
            snapshot.stores,
            kwargs["week_start"],
            kwargs.get("settings"),
        )

    def detect(self,
               employees: Iterable[Employee],
               shifts: Iterable[Shift],
               stores: Iterable[Store],
               week_start: date,
               settings: Optional[ValidationAdminSettings] = None,
               now: Optional[datetime] = None) -> List[WorkloadAlert]:
        """
        Evaluate a week and return alerts, most severe first.

        Args:
            employees: All employees; only active ones are evaluated
            shifts: Any shift list; only the week's shifts are used
            stores: All stores
            week_start: First day of the 7-day evaluation window
            settings: Policy thresholds
            now: Timestamp stamped on every alert

        Returns:
            Alerts sorted by severity then timestamp, both descending
        """
        settings = settings or ValidationAdminSettings()
        now = now or datetime.now()
        self._operation_count += 1

        period_start, period_end = week_bounds(week_start)
        week_shifts = shifts_in_period(shifts, period_start, period_end)
        active = [e for e in employees if e.is_active]

        if not active or not week_shifts:
            self.log("Nothing to evaluate for this week", "debug")
            return []

        max_hours = settings.max_hours_variation
        warning_hours = max_hours * OVERLOAD_WARNING_RATIO

        hours_by_employee: Dict[str, float] = {
            e.id: weekly_hours(e.id, week_shifts, period_start, period_end)
            for e in active
        }

        alerts: List[WorkloadAlert] = []
        for employee in active:
            alerts.extend(self._check_employee(
                employee, hours_by_employee[employee.id], max_hours, warning_hours, now
            ))

        if len(active) > 2:
            alert = self._check_equity(list(hours_by_employee.values()), now)
            if alert:
                alerts.append(alert)

        # Closed stores neither raise nor dilute the understaffing average
        active_stores = [s for s in stores if s.is_active]
        if len(active_stores) > 1:
            alerts.extend(self._check_stores(active_stores, week_shifts,
                                             period_start, period_end, now))

        alerts = self.sort_alerts(alerts)
        self._report(alerts, week_start)
        return alerts

    # ==================== Rules ====================

    def _check_employee(self, employee: Employee, hours: float, max_hours: float,
                        warning_hours: float, now: datetime) -> List[WorkloadAlert]:
        """Overload and underload rules for one employee."""
        alerts = []
        name = employee.full_name
        shown = round(hours, 1)

        if hours > max_hours:
            alerts.append(WorkloadAlert(
                id=f"overload-critical-{employee.id}",
                type=AlertType.OVERLOADED,
                severity=AlertSeverity.CRITICAL,
                title="Critical overload",
                message=f"{name} has {shown:g}h this week (limit: {max_hours:g}h)",
                current_value=shown,
                threshold_value=max_hours,
                timestamp=now,
                action_required=True,
                employee_id=employee.id,
                employee_name=name,
            ))
        elif hours > warning_hours:
            alerts.append(WorkloadAlert(
                id=f"overload-warning-{employee.id}",
                type=AlertType.OVERLOADED,
                severity=AlertSeverity.HIGH,
                title="Overload risk",
                message=f"{name} has {shown:g}h ({hours / max_hours * 100:.0f}% of the limit)",
                current_value=shown,
                threshold_value=warning_hours,
                timestamp=now,
                action_required=False,
                employee_id=employee.id,
                employee_name=name,
            ))

        if 0 < hours < MIN_WEEKLY_HOURS:
            severity = AlertSeverity.HIGH if hours < MIN_WEEKLY_HOURS / 2 else AlertSeverity.MEDIUM
            alerts.append(WorkloadAlert(
                id=f"underload-{employee.id}",
                type=AlertType.UNDERLOADED,
                severity=severity,
                title="Underused employee",
                message=f"{name} only has {shown:g}h this week",
                current_value=shown,
                threshold_value=MIN_WEEKLY_HOURS,
                timestamp=now,
                action_required=False,
                employee_id=employee.id,
                employee_name=name,
            ))

        return alerts

    def _check_equity(self, hours: List[float], now: datetime) -> Optional[WorkloadAlert]:
        """Global equity rule over the active workforce."""
        score = equity_score(hours)
        if score >= EQUITY_CRITICAL_THRESHOLD:
            return None

        severity = AlertSeverity.CRITICAL if score < EQUITY_SEVERE_THRESHOLD else AlertSeverity.HIGH
        return WorkloadAlert(
            id="equity-critical",
            type=AlertType.EQUITY_CRITICAL,
            severity=severity,
            title="Critical imbalance in hour distribution",
            message=(
                f"Current equity score: {score:.0f}% "
                f"(critical threshold: {EQUITY_CRITICAL_THRESHOLD:.0f}%)"
            ),
            current_value=round(score, 1),
            threshold_value=EQUITY_CRITICAL_THRESHOLD,
            timestamp=now,
            action_required=True,
        )

    def _check_stores(self, stores: List[Store], week_shifts: List[Shift],
                      period_start: date, period_end: date,
                      now: datetime) -> List[WorkloadAlert]:
        """Flag stores staffed well below the cross-store average."""
        totals = {s.id: store_hours(s.id, week_shifts, period_start, period_end) for s in stores}
        average = sum(totals.values()) / len(totals)
        if average <= 0:
            return []

        alerts = []
        for store in stores:
            hours = totals[store.id]
            if hours >= average:
                continue

            deviation_percent = (average - hours) / average * 100
            if deviation_percent <= STORE_IMBALANCE_PERCENT:
                continue

            severity = (
                AlertSeverity.HIGH
                if deviation_percent > STORE_IMBALANCE_SEVERE_PERCENT
                else AlertSeverity.MEDIUM
            )
            alerts.append(WorkloadAlert(
                id=f"store-understaffed-{store.id}",
                type=AlertType.STORE_IMBALANCE,
                severity=severity,
                title="Understaffed store",
                message=f"{store.name} has {hours:.1f}h vs an average of {average:.1f}h",
                current_value=round(hours, 1),
                threshold_value=round(average, 1),
                timestamp=now,
                action_required=False,
                store_id=store.id,
                store_name=store.name,
            ))

        return alerts

    # ==================== Ordering & Summaries ====================

    @staticmethod
    def sort_alerts(alerts: Iterable[WorkloadAlert]) -> List[WorkloadAlert]:
        """Severity descending, then most recent first."""
        return sorted(
            alerts,
            key=lambda a: (a.severity.rank, a.timestamp),
            reverse=True,
        )

    @staticmethod
    def summarize(alerts: Iterable[WorkloadAlert]) -> AlertSummary:
        return AlertSummary.from_alerts(alerts)

    @staticmethod
    def alerts_by_type(alerts: Iterable[WorkloadAlert], alert_type: AlertType) -> List[WorkloadAlert]:
        return [a for a in alerts if a.type == alert_type]

    @staticmethod
    def alerts_by_severity(alerts: Iterable[WorkloadAlert],
                           severity: AlertSeverity) -> List[WorkloadAlert]:
        return [a for a in alerts if a.severity == severity]

    @staticmethod
    def critical_alerts(alerts: Iterable[WorkloadAlert]) -> List[WorkloadAlert]:
        """Alerts that are critical or require action."""
        return [
            a for a in alerts
            if a.severity == AlertSeverity.CRITICAL or a.action_required
        ]

    def _report(self, alerts: List[WorkloadAlert], week_start: date) -> None:
        summary = AlertSummary.from_alerts(alerts)
        level = "warning" if summary.critical else "info"
        self.log(
            f"Week of {week_start.isoformat()}: {summary.total} alerts "
            f"({summary.critical} critical, {summary.high} high)",
            level,
        )
        self.publish(
            MessageType.ALERTS_RAISED,
            {"week_start": week_start.isoformat(), **summary.to_dict()},
        )
