"""
Governance engines.
"""
from .base_engine import BaseEngine
from .alert_detector import AlertDetector
from .conflict_validator import ConflictValidator
from .balancing_engine import BalancingEngine
from .shift_rules import ShiftRuleValidator
from .workflow_engine import ShiftWorkflowEngine, WORKFLOW_TRANSITIONS
from .workload_balancer import WorkloadBalancer
from .coordinator import WorkloadCoordinator, WorkloadReport

__all__ = [
    "BaseEngine",
    "AlertDetector",
    "ConflictValidator",
    "BalancingEngine",
    "ShiftRuleValidator",
    "ShiftWorkflowEngine",
    "WORKFLOW_TRANSITIONS",
    "WorkloadBalancer",
    "WorkloadCoordinator",
    "WorkloadReport",
]
