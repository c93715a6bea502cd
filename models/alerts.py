"""
Workload alert models.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional


class AlertType(Enum):
    """Kinds of workload anomaly."""
    OVERLOADED = "overloaded"
    UNDERLOADED = "underloaded"
    EQUITY_CRITICAL = "equity_critical"
    STORE_IMBALANCE = "store_imbalance"


class AlertSeverity(Enum):
    """Alert severity, ordered low to critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.LOW: 1,
    AlertSeverity.MEDIUM: 2,
    AlertSeverity.HIGH: 3,
    AlertSeverity.CRITICAL: 4,
}


@dataclass(frozen=True)
class WorkloadAlert:
    """
    A workload anomaly detected for one evaluation window.

    Alerts are derived data: they are recomputed on every evaluation and
    their id is deterministic for the subject they describe.

    Attributes:
        id: Deterministic identifier (e.g. "overload-critical-<employee>")
        type: Kind of anomaly
        severity: How urgent the alert is
        title: Short headline
        message: Human-readable description
        current_value: Measured value (hours or score)
        threshold_value: Threshold the value was compared against
        timestamp: Evaluation time
        action_required: Whether a manager must act
        employee_id: Subject employee, if any
        employee_name: Display name of the subject employee
        store_id: Subject store, if any
        store_name: Display name of the subject store
    """
    id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    current_value: float
    threshold_value: float
    timestamp: datetime = field(default_factory=datetime.now)
    action_required: bool = False
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    store_id: Optional[str] = None
    store_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "current_value": self.current_value,
            "threshold_value": self.threshold_value,
            "timestamp": self.timestamp.isoformat(),
            "action_required": self.action_required,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "store_id": self.store_id,
            "store_name": self.store_name,
        }

    def __str__(self) -> str:
        emoji = {
            AlertSeverity.CRITICAL: "🔴",
            AlertSeverity.HIGH: "🟠",
            AlertSeverity.MEDIUM: "🟡",
            AlertSeverity.LOW: "🟢",
        }[self.severity]
        return f"{emoji} [{self.type.value.upper()}] {self.title}: {self.message}"


@dataclass
class AlertSummary:
    """
    Tally of an alert list by severity and by type.

    Attributes:
        total: Number of alerts
        by_severity: Count per severity (every severity present)
        by_type: Count per alert type (every type present)
    """
    total: int = 0
    by_severity: Dict[AlertSeverity, int] = field(
        default_factory=lambda: {s: 0 for s in AlertSeverity}
    )
    by_type: Dict[AlertType, int] = field(
        default_factory=lambda: {t: 0 for t in AlertType}
    )

    @classmethod
    def from_alerts(cls, alerts: Iterable[WorkloadAlert]) -> "AlertSummary":
        summary = cls()
        for alert in alerts:
            summary.total += 1
            summary.by_severity[alert.severity] += 1
            summary.by_type[alert.type] += 1
        return summary

    @property
    def critical(self) -> int:
        return self.by_severity[AlertSeverity.CRITICAL]

    @property
    def high(self) -> int:
        return self.by_severity[AlertSeverity.HIGH]

    @property
    def medium(self) -> int:
        return self.by_severity[AlertSeverity.MEDIUM]

    @property
    def low(self) -> int:
        return self.by_severity[AlertSeverity.LOW]

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "by_type": {t.value: count for t, count in self.by_type.items()},
        }
