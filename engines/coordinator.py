"""
Coordinator - Orchestrates the workload governance flow.

Wires the engines on one message bus:
1. evaluate_week: alerts + balancing plan for a week
2. apply_suggestions: safe application through the BalancingEngine
3. transition_shifts: bulk validation-workflow moves

An AuditTrail can be attached to record every workflow and balancing
event published on the bus.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
import time

from benchmark import profile_function
from communication.audit_trail import AuditTrail
from communication.message_bus import MessageBus
from config import ValidationAdminSettings, config as default_config
from models.alerts import AlertSummary, WorkloadAlert
from models.balancing import BalancingPlan, BalancingSuggestion, BatchResult
from models.schedule import ScheduleSnapshot
from models.shift import Shift, ShiftUpdate, ShiftValidationStatus
from models.workflow import BulkTransitionResult

from .alert_detector import AlertDetector
from .balancing_engine import BalancingEngine
from .base_engine import BaseEngine
from .conflict_validator import ConflictValidator
from .shift_rules import ShiftRuleValidator
from .workflow_engine import ShiftWorkflowEngine
from .workload_balancer import WorkloadBalancer


@dataclass
class WorkloadReport:
    """
    Governance report of one week.

    Attributes:
        week_start: First day of the evaluated week
        alerts: Alerts, most severe first
        summary: Alert counts
        plan: Balancing suggestions and metrics
        elapsed_seconds: Evaluation time
    """
    week_start: date
    alerts: List[WorkloadAlert] = field(default_factory=list)
    summary: AlertSummary = field(default_factory=AlertSummary)
    plan: BalancingPlan = field(default_factory=BalancingPlan)
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "week_start": self.week_start.isoformat(),
            "alerts": [a.to_dict() for a in self.alerts],
            "summary": self.summary.to_dict(),
            "plan": self.plan.to_dict(),
            "elapsed_seconds": self.elapsed_seconds,
        }


class WorkloadCoordinator(BaseEngine):
    """
    Front door to the governance engines.

    Attributes:
        detector: AlertDetector
        balancer: WorkloadBalancer
        balancing_engine: BalancingEngine
        workflow: ShiftWorkflowEngine
        audit_trail: Optional AuditTrail listening on the bus
    """

    def __init__(self,
                 message_bus: Optional[MessageBus] = None,
                 settings: Optional[ValidationAdminSettings] = None,
                 on_update_shifts: Optional[Callable[[List[ShiftUpdate]], None]] = None,
                 audit: bool = False,
                 verbose: Optional[bool] = None):
        """
        Initialize the coordinator and its engines.

        Args:
            message_bus: Bus shared by every engine (created when omitted)
            settings: Default policy thresholds
            on_update_shifts: Persistence callback for applied suggestions
            audit: Attach an AuditTrail to the bus
            verbose: Echo log lines to the console
        """
        message_bus = message_bus or MessageBus()
        super().__init__("Coordinator", message_bus, verbose)

        self.settings = settings or default_config.settings
        self.detector = AlertDetector(message_bus, verbose)
        self.balancer = WorkloadBalancer(message_bus, verbose)
        self.balancing_engine = BalancingEngine(
            message_bus,
            validator=ConflictValidator(message_bus, verbose),
            on_update_shifts=on_update_shifts,
            verbose=verbose,
        )
        self.workflow = ShiftWorkflowEngine(
            message_bus,
            rule_validator=ShiftRuleValidator(message_bus=message_bus, verbose=verbose),
            verbose=verbose,
        )
        self.audit_trail = AuditTrail(message_bus) if audit else None

    def execute(self, **kwargs) -> WorkloadReport:
        return self.evaluate_week(kwargs["snapshot"], kwargs["week_start"], kwargs.get("settings"))

    # ==================== Operations ====================

    @profile_function
    def evaluate_week(self,
                      snapshot: ScheduleSnapshot,
                      week_start: date,
                      settings: Optional[ValidationAdminSettings] = None,
                      store_filter: Optional[str] = None) -> WorkloadReport:
        """
        Detect alerts and propose balancing for a week.

        Args:
            snapshot: Employees, stores and shifts
            week_start: First day of the week
            settings: Policy thresholds (coordinator defaults when omitted)
            store_filter: Restrict the balancing plan to one store

        Returns:
            WorkloadReport
        """
        settings = settings or self.settings
        started = time.perf_counter()
        self._operation_count += 1

        self._log_phase(f"EVALUATING WEEK OF {week_start.isoformat()}")
        self.log(str(snapshot))

        alerts = self.detector.detect(
            snapshot.employees, snapshot.shifts, snapshot.stores, week_start, settings
        )
        plan = self.balancer.generate(snapshot, week_start, settings, store_filter=store_filter)

        report = WorkloadReport(
            week_start=week_start,
            alerts=alerts,
            summary=AlertSummary.from_alerts(alerts),
            plan=plan,
            elapsed_seconds=time.perf_counter() - started,
        )
        self.log(
            f"✓ {report.summary.total} alerts, {len(plan.suggestions)} suggestions "
            f"in {report.elapsed_seconds:.3f}s",
            "success",
        )
        return report

    @profile_function
    def apply_suggestions(self,
                          suggestions: Iterable[BalancingSuggestion],
                          snapshot: ScheduleSnapshot,
                          settings: Optional[ValidationAdminSettings] = None,
                          revalidate: bool = True) -> BatchResult:
        """
        Apply suggestions in order.

        Unlike the engine default, the coordinator folds each success into
        the snapshot before the next suggestion.
        """
        suggestions = list(suggestions)
        self._log_phase(f"APPLYING {len(suggestions)} SUGGESTIONS")
        return self.balancing_engine.apply_multiple_suggestions(
            suggestions, snapshot, settings or self.settings, revalidate=revalidate
        )

    @profile_function
    def transition_shifts(self,
                          shifts: Iterable[Shift],
                          target_status: Any,
                          actor_role: Any,
                          actor_name: str,
                          snapshot: ScheduleSnapshot,
                          reason: Optional[str] = None,
                          settings: Optional[ValidationAdminSettings] = None
                          ) -> BulkTransitionResult:
        """Bulk-move shifts through the validation workflow."""
        shifts = list(shifts)
        target = ShiftValidationStatus.parse(target_status)
        label = target.value if target else str(target_status)
        self._log_phase(f"TRANSITION {len(shifts)} SHIFTS TO {label.upper()}")
        return self.workflow.execute_bulk_transition(
            shifts, target_status, actor_role, actor_name, snapshot,
            reason=reason, settings=settings or self.settings,
        )

    # ==================== Reporting ====================

    def engine_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Operation and error counters of every engine."""
        engines = [self, self.detector, self.balancer, self.balancing_engine,
                   self.balancing_engine.validator, self.workflow, self.workflow.rule_validator]
        return {engine.name: engine.get_metrics() for engine in engines}

    def _log_phase(self, phase_name: str) -> None:
        self.log(f"{'─' * 50}")
        self.log(f"📍 {phase_name} ({datetime.now().strftime('%H:%M:%S')})")
        self.log(f"{'─' * 50}")
