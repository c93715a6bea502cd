"""
Balancing suggestion and result models.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from .shift import Shift, ShiftUpdate


class SuggestionType(Enum):
    """Remediation kinds the balancing engine understands."""
    REDISTRIBUTE = "redistribute"
    SWAP_SHIFTS = "swap_shifts"
    ADJUST_HOURS = "adjust_hours"


class SuggestionPriority(Enum):
    """Suggestion priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"low": 1, "medium": 2, "high": 3}[self.value]


@dataclass
class SuggestionImpact:
    """
    Expected effect of applying a suggestion.

    Attributes:
        hours_change: Hours to move (target for redistribution)
        equity_improvement: Expected equity score gain
        workload_balance: Expected workload balance gain
    """
    hours_change: float = 0.0
    equity_improvement: float = 0.0
    workload_balance: float = 0.0


@dataclass
class ProposedChanges:
    """Display description of a suggestion plus its impact."""
    action: str = ""
    from_value: Optional[str] = None
    to_value: Optional[str] = None
    impact: SuggestionImpact = field(default_factory=SuggestionImpact)


@dataclass
class BalancingSuggestion:
    """
    A proposed remediation of a workload imbalance.

    ``type`` is kept as a plain value so that callers can hand in
    suggestion kinds this engine does not know; the engine reports those
    as unsupported instead of crashing.

    Attributes:
        id: Suggestion identifier
        type: SuggestionType (or an unrecognized raw value)
        source_employee_id: Employee giving up hours
        target_employee_id: Employee receiving hours
        shift_id: Anchor shift (swap only)
        store_id: Store the suggestion is scoped to
        proposed_changes: Description and expected impact
        priority: How urgent the suggestion is
        auto_applicable: Whether it may be applied without review
    """
    id: str
    type: Any
    source_employee_id: Optional[str] = None
    target_employee_id: Optional[str] = None
    shift_id: Optional[str] = None
    store_id: Optional[str] = None
    proposed_changes: ProposedChanges = field(default_factory=ProposedChanges)
    priority: SuggestionPriority = SuggestionPriority.MEDIUM
    title: str = ""
    description: str = ""
    source_employee_name: Optional[str] = None
    target_employee_name: Optional[str] = None
    store_name: Optional[str] = None
    auto_applicable: bool = False
    estimated_duration: int = 0

    @property
    def hours_change(self) -> float:
        return self.proposed_changes.impact.hours_change

    @property
    def type_value(self) -> str:
        return self.type.value if isinstance(self.type, SuggestionType) else str(self.type)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type_value,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "source_employee_id": self.source_employee_id,
            "target_employee_id": self.target_employee_id,
            "shift_id": self.shift_id,
            "store_id": self.store_id,
            "hours_change": self.hours_change,
            "auto_applicable": self.auto_applicable,
        }

    def __str__(self) -> str:
        return f"[{self.type_value}] {self.title or self.id}: {self.description}"


@dataclass
class BalancingSummary:
    """Counts reported for one applied suggestion."""
    shifts_modified: int = 0
    employees_affected: List[str] = field(default_factory=list)
    hours_redistributed: float = 0.0


@dataclass
class BalancingResult:
    """
    Outcome of applying one suggestion.

    On success ``errors`` carries the validator's advisory warnings.

    Attributes:
        success: Whether the suggestion can be applied
        modified_shifts: Shifts as they look after the change
        updates: Update instructions the caller must persist
        errors: Failure reasons, or advisory warnings on success
        summary: Counts for reporting
    """
    success: bool
    modified_shifts: List[Shift] = field(default_factory=list)
    updates: List[ShiftUpdate] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    summary: BalancingSummary = field(default_factory=BalancingSummary)

    @classmethod
    def failure(cls, *errors: str) -> "BalancingResult":
        return cls(success=False, errors=list(errors))

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "modified_shifts": [s.to_dict() for s in self.modified_shifts],
            "updates": [u.to_dict() for u in self.updates],
            "errors": list(self.errors),
            "summary": {
                "shifts_modified": self.summary.shifts_modified,
                "employees_affected": list(self.summary.employees_affected),
                "hours_redistributed": self.summary.hours_redistributed,
            },
        }


@dataclass
class FailedSuggestion:
    """A batch item that could not be applied."""
    suggestion: BalancingSuggestion
    error: str


@dataclass
class BatchResult:
    """
    Outcome of applying several suggestions in order.

    Attributes:
        successful: Results of applied suggestions, in input order
        failed: Suggestions that failed, with the reason
        summary: total, successful, failed, total_shifts_modified,
            total_hours_redistributed
    """
    successful: List[BalancingResult] = field(default_factory=list)
    failed: List[FailedSuggestion] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "successful": [r.to_dict() for r in self.successful],
            "failed": [
                {"suggestion": f.suggestion.to_dict(), "error": f.error}
                for f in self.failed
            ],
            "summary": dict(self.summary),
        }


# ==================== Balancing Plan ====================

@dataclass
class EmployeeWorkload:
    """One employee's hours against their ideal week."""
    employee_id: str
    employee_name: str
    current_hours: float
    ideal_hours: float
    deviation: float
    deviation_percent: float


@dataclass
class StoreBalance:
    """
    One store's hours against the cross-store average.

    Attributes:
        staffing_level: understaffed, optimal or overstaffed
    """
    store_id: str
    store_name: str
    current_hours: float
    ideal_hours: float
    deviation: float
    staffing_level: str = "optimal"


@dataclass
class BalancingMetrics:
    """
    Workload balance of one week.

    Attributes:
        current_equity_score: Equity score of the employees' hours (0-100)
        potential_equity_score: Score expected after balancing
        workload_distribution: Per-employee workload
        store_balance: Per-store staffing
        overall_balance: poor, fair, good or excellent
    """
    current_equity_score: float = 100.0
    potential_equity_score: float = 100.0
    workload_distribution: List[EmployeeWorkload] = field(default_factory=list)
    store_balance: List[StoreBalance] = field(default_factory=list)
    overall_balance: str = "excellent"

    def to_dataframe(self) -> pd.DataFrame:
        """Workload distribution as a DataFrame, most deviating first."""
        columns = ["employee_id", "employee_name", "current_hours", "ideal_hours",
                   "deviation", "deviation_percent"]
        df = pd.DataFrame([asdict(w) for w in self.workload_distribution], columns=columns)
        if not df.empty:
            df = df.sort_values("deviation_percent", key=lambda s: s.abs(), ascending=False)
        return df.reset_index(drop=True)

    def to_dict(self) -> dict:
        return {
            "current_equity_score": self.current_equity_score,
            "potential_equity_score": self.potential_equity_score,
            "workload_distribution": [asdict(w) for w in self.workload_distribution],
            "store_balance": [asdict(s) for s in self.store_balance],
            "overall_balance": self.overall_balance,
        }


@dataclass
class BalancingPlan:
    """Suggestions for one week, highest priority first, plus its metrics."""
    suggestions: List[BalancingSuggestion] = field(default_factory=list)
    metrics: Optional[BalancingMetrics] = None

    @property
    def can_balance(self) -> bool:
        return bool(self.suggestions)

    @property
    def needs_urgent_balancing(self) -> bool:
        return any(s.priority == SuggestionPriority.HIGH for s in self.suggestions)

    def suggestions_of(self, suggestion_type: SuggestionType) -> List[BalancingSuggestion]:
        return [s for s in self.suggestions if s.type == suggestion_type]

    def auto_applicable(self) -> List[BalancingSuggestion]:
        return [s for s in self.suggestions if s.auto_applicable]

    def estimated_total_duration(self) -> int:
        """Minutes needed to apply every suggestion."""
        return sum(s.estimated_duration for s in self.suggestions)

    def to_dict(self) -> dict:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "metrics": self.metrics.to_dict() if self.metrics else None,
        }
