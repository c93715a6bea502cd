"""
Data models for the workload governance engine.
"""
from .employee import Employee
from .store import Store
from .shift import (
    Shift,
    ShiftStatus,
    ShiftUpdate,
    ShiftValidationStatus,
    calculate_shift_hours,
)
from .schedule import ScheduleSnapshot
from .constraints import Conflict, ConflictType, ValidationResult
from .alerts import AlertSeverity, AlertSummary, AlertType, WorkloadAlert
from .balancing import (
    BalancingMetrics,
    BalancingPlan,
    BalancingResult,
    BalancingSuggestion,
    BalancingSummary,
    BatchResult,
    EmployeeWorkload,
    StoreBalance,
    FailedSuggestion,
    ProposedChanges,
    SuggestionImpact,
    SuggestionPriority,
    SuggestionType,
)
from .workflow import (
    ActorRole,
    BulkTransitionResult,
    TransitionFailure,
    WorkflowResult,
    WorkflowTransition,
)

__all__ = [
    "Employee", "Store",
    "Shift", "ShiftStatus", "ShiftUpdate", "ShiftValidationStatus", "calculate_shift_hours",
    "ScheduleSnapshot",
    "Conflict", "ConflictType", "ValidationResult",
    "AlertSeverity", "AlertSummary", "AlertType", "WorkloadAlert",
    "BalancingMetrics", "BalancingPlan", "BalancingResult", "BalancingSuggestion", "BalancingSummary", "BatchResult",
    "EmployeeWorkload", "StoreBalance", "FailedSuggestion", "ProposedChanges", "SuggestionImpact", "SuggestionPriority",
    "SuggestionType",
    "ActorRole", "BulkTransitionResult", "TransitionFailure", "WorkflowResult",
    "WorkflowTransition",
]
