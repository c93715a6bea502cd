"""
Validation Workflow - State machine over shift validation status.

    draft ──► ready_review ──► under_review ──► validated ──► published ──► locked_final
      ▲            │                │              ▲  │            │  ▲          │
      └────────────┴────────────────┘              │  └────────────┼──┘          │
                 (rejections)                      └───────────────┘             │
                                                        (unpublish)   published ◄┘ (unlock)

Transitions are gated by actor role (user < manager < admin). Some
require the shift locking rules to pass, and some chain into a follow-up
state automatically when the actor may perform that step too.
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import uuid

from communication.message import MessageType
from communication.message_bus import MessageBus
from config import ValidationAdminSettings
from models.constraints import ValidationResult
from models.schedule import ScheduleSnapshot
from models.shift import Shift, ShiftUpdate, ShiftValidationStatus
from models.workflow import (
    ActorRole,
    BulkTransitionResult,
    TransitionFailure,
    WorkflowResult,
    WorkflowTransition,
)

from .base_engine import BaseEngine
from .shift_rules import ShiftRuleValidator


S = ShiftValidationStatus

WORKFLOW_TRANSITIONS: List[WorkflowTransition] = [
    # From DRAFT
    WorkflowTransition(S.DRAFT, S.READY_REVIEW, ActorRole.USER, True, "Submit for review"),
    WorkflowTransition(S.DRAFT, S.VALIDATED, ActorRole.ADMIN, True, "Validate directly"),
    # From READY_REVIEW
    WorkflowTransition(S.READY_REVIEW, S.UNDER_REVIEW, ActorRole.MANAGER, False, "Take in charge",
                       auto_transitions=(S.VALIDATED,)),
    WorkflowTransition(S.READY_REVIEW, S.DRAFT, ActorRole.MANAGER, False, "Send back to draft"),
    # From UNDER_REVIEW
    WorkflowTransition(S.UNDER_REVIEW, S.VALIDATED, ActorRole.MANAGER, True, "Approve",
                       auto_transitions=(S.PUBLISHED,)),
    WorkflowTransition(S.UNDER_REVIEW, S.DRAFT, ActorRole.MANAGER, False, "Reject"),
    # From VALIDATED
    WorkflowTransition(S.VALIDATED, S.PUBLISHED, ActorRole.MANAGER, False, "Publish"),
    WorkflowTransition(S.VALIDATED, S.LOCKED_FINAL, ActorRole.ADMIN, False, "Lock permanently"),
    # From PUBLISHED
    WorkflowTransition(S.PUBLISHED, S.LOCKED_FINAL, ActorRole.MANAGER, False, "Lock"),
    WorkflowTransition(S.PUBLISHED, S.VALIDATED, ActorRole.ADMIN, False, "Unpublish"),
    # From LOCKED_FINAL
    WorkflowTransition(S.LOCKED_FINAL, S.PUBLISHED, ActorRole.ADMIN, False, "Unlock"),
]

# Only drafts may be edited
EDITABLE_STATUSES = {S.DRAFT}


def current_status(shift: Shift) -> ShiftValidationStatus:
    """Validation status of a shift; shifts without one are drafts."""
    return shift.validation_status or S.DRAFT


class ShiftWorkflowEngine(BaseEngine):
    """
    Moves shifts through the validation lifecycle.

    Attributes:
        transitions: Allowed transitions
        rule_validator: Shift locking rules run by validating transitions
    """

    def __init__(self,
                 message_bus: Optional[MessageBus] = None,
                 rule_validator: Optional[ShiftRuleValidator] = None,
                 transitions: Optional[List[WorkflowTransition]] = None,
                 verbose: Optional[bool] = None):
        super().__init__("ShiftWorkflowEngine", message_bus, verbose)
        self.rule_validator = rule_validator or ShiftRuleValidator(verbose=self.verbose)
        self.transitions = list(transitions) if transitions is not None else list(WORKFLOW_TRANSITIONS)

    def execute(self, **kwargs) -> BulkTransitionResult:
        return self.execute_bulk_transition(
            kwargs["shifts"],
            kwargs["target_status"],
            kwargs["actor_role"],
            kwargs["actor_name"],
            kwargs["snapshot"],
            reason=kwargs.get("reason"),
            settings=kwargs.get("settings"),
        )

    # ==================== Transition Lookup ====================

    def find_transition(self, from_status: ShiftValidationStatus,
                        to_status: ShiftValidationStatus,
                        role: Optional[ActorRole]) -> Optional[WorkflowTransition]:
        """The transition from -> to the role may perform, if any."""
        if role is None:
            return None
        for transition in self.transitions:
            if (transition.from_status == from_status
                    and transition.to_status == to_status
                    and role.satisfies(transition.required_role)):
                return transition
        return None

    def available_transitions(self, status: Optional[ShiftValidationStatus],
                              role: Any) -> List[WorkflowTransition]:
        """Transitions out of ``status`` the role may perform."""
        status = status or S.DRAFT
        role = ActorRole.parse(role)
        if role is None:
            return []
        return [
            t for t in self.transitions
            if t.from_status == status and role.satisfies(t.required_role)
        ]

    # ==================== Single Shift ====================

    def execute_transition(self,
                           shift: Shift,
                           target_status: Any,
                           actor_role: Any,
                           actor_name: str,
                           snapshot: ScheduleSnapshot,
                           reason: Optional[str] = None,
                           settings: Optional[ValidationAdminSettings] = None,
                           now: Optional[datetime] = None) -> WorkflowResult:
        """
        Move one shift to ``target_status``.

        Args:
            shift: Shift to move
            target_status: Requested state (enum or its string value)
            actor_role: Role of the actor ("user", "manager", "admin")
            actor_name: Display name recorded on locked shifts
            snapshot: Employees, stores and shifts the validation rules check against
            reason: Optional reason appended to notes when locking
            settings: Policy thresholds
            now: Timestamp used for locked_at/updated_at

        Returns:
            WorkflowResult with the update instruction on success
        """
        settings = settings or ValidationAdminSettings()
        now = now or datetime.now()
        role = ActorRole.parse(actor_role)
        from_status = current_status(shift)

        target = ShiftValidationStatus.parse(target_status)
        if target is None:
            return WorkflowResult(success=False, error=f"Unknown validation status: {target_status}")
        target_status = target

        transition = self.find_transition(from_status, target_status, role)
        if transition is None:
            role_name = role.value if role else actor_role
            return WorkflowResult(
                success=False,
                error=(
                    f"Transition not allowed from {from_status.value} "
                    f"to {target_status.value} for role {role_name}"
                ),
            )

        validation: Optional[ValidationResult] = None
        if transition.requires_validation:
            validation = self.rule_validator.validate(shift, snapshot, settings)
            if not validation.is_valid:
                return WorkflowResult(
                    success=False,
                    error=f"Validation failed: {', '.join(validation.errors)}",
                    validation_result=validation,
                )
            # Admin-configured floor on top of the rule errors
            threshold = settings.alert_settings.score_threshold
            if validation.score < threshold:
                return WorkflowResult(
                    success=False,
                    error=f"Validation score {validation.score:g} below threshold {threshold:g}",
                    validation_result=validation,
                )

        final_status = target_status
        auto_transitioned = False
        if transition.auto_transitions:
            auto_target = transition.auto_transitions[0]
            if self.find_transition(target_status, auto_target, role):
                final_status = auto_target
                auto_transitioned = True

        update = ShiftUpdate(id=shift.id, data=self._update_data(
            shift, from_status, final_status, actor_name, reason, now
        ))
        return WorkflowResult(
            success=True,
            new_status=final_status,
            validation_result=validation,
            auto_transitioned=auto_transitioned,
            update=update,
            shift=shift.apply(update),
        )

    @staticmethod
    def _update_data(shift: Shift, from_status: ShiftValidationStatus,
                     final_status: ShiftValidationStatus, actor_name: str,
                     reason: Optional[str], now: datetime) -> Dict[str, Any]:
        data: Dict[str, Any] = {"validation_status": final_status, "updated_at": now}

        if final_status == S.LOCKED_FINAL:
            data.update(is_locked=True, locked_at=now, locked_by=actor_name)
            if reason:
                data["notes"] = f"{shift.notes or ''}\n[Lock: {reason}]".strip()
        elif from_status == S.LOCKED_FINAL:
            data.update(is_locked=False, locked_at=None, locked_by=None)

        return data

    # ==================== Bulk ====================

    def execute_bulk_transition(self,
                                shifts: Iterable[Shift],
                                target_status: Any,
                                actor_role: Any,
                                actor_name: str,
                                snapshot: ScheduleSnapshot,
                                reason: Optional[str] = None,
                                settings: Optional[ValidationAdminSettings] = None
                                ) -> BulkTransitionResult:
        """
        Move several shifts, each evaluated independently.

        Failed shifts are reported with their reason and left untouched.
        A crash on one shift is recorded as that shift's failure.

        Args:
            shifts: Shifts to move, processed in order
            target_status: Requested state (enum or its string value)
            actor_role: Role of the actor
            actor_name: Display name of the actor
            snapshot: Employees, stores and shifts the validation rules check against
            reason: Optional reason
            settings: Policy thresholds

        Returns:
            BulkTransitionResult
        """
        shifts = list(shifts)
        settings = settings or ValidationAdminSettings()
        target = ShiftValidationStatus.parse(target_status)
        target_value = target.value if target else str(target_status)
        correlation_id = str(uuid.uuid4())[:8]
        now = datetime.now()
        self._operation_count += 1

        result = BulkTransitionResult()
        scores: List[float] = []
        role = ActorRole.parse(actor_role)
        metadata = {
            "actor": actor_name,
            "role": role.value if role else str(actor_role),
            "reason": reason,
        }

        for shift in shifts:
            try:
                outcome = self.execute_transition(
                    shift, target or target_status, actor_role, actor_name, snapshot,
                    reason=reason, settings=settings, now=now,
                )
            except Exception as e:
                message = self._handle_error(e, f"execute_transition({shift.id})")
                outcome = WorkflowResult(success=False, error=f"Internal error: {message}")

            if outcome.success:
                result.successful.append(outcome.shift)
                result.updates.append(outcome.update)
                if outcome.validation_result is not None:
                    scores.append(outcome.validation_result.score)
                self.publish(MessageType.WORKFLOW_TRANSITION, {
                    "shift_id": shift.id,
                    "employee_id": shift.employee_id,
                    "store_id": shift.store_id,
                    "from_status": current_status(shift).value,
                    "to_status": outcome.new_status.value,
                    "auto_transitioned": outcome.auto_transitioned,
                    "score": outcome.validation_result.score if outcome.validation_result else None,
                }, correlation_id, metadata)
            else:
                result.failed.append(TransitionFailure(shift=shift, error=outcome.error))
                self.publish(MessageType.WORKFLOW_REJECTED, {
                    "shift_id": shift.id,
                    "employee_id": shift.employee_id,
                    "store_id": shift.store_id,
                    "from_status": current_status(shift).value,
                    "to_status": target_value,
                    "error": outcome.error,
                    "validation_failed": outcome.validation_result is not None,
                    "score": outcome.validation_result.score if outcome.validation_result else None,
                }, correlation_id, metadata)

        result.summary = {
            "total": len(shifts),
            "successful": len(result.successful),
            "failed": len(result.failed),
            "avg_validation_score": sum(scores) / len(scores) if scores else 0,
        }

        self.log(
            f"Bulk transition to {target_value} by {actor_name}: "
            f"{result.summary['successful']}/{result.summary['total']} moved",
            "success" if not result.failed else "warning",
        )
        self.publish(MessageType.BULK_TRANSITION_COMPLETE, dict(result.summary),
                     correlation_id, metadata)
        return result

    # ==================== Queries ====================

    @staticmethod
    def can_edit_shift(shift: Shift) -> bool:
        return current_status(shift) in EDITABLE_STATUSES

    @staticmethod
    def shifts_by_status(shifts: Iterable[Shift]) -> Dict[ShiftValidationStatus, List[Shift]]:
        """Group shifts by status; every status is present."""
        grouped: Dict[ShiftValidationStatus, List[Shift]] = {s: [] for s in S}
        for shift in shifts:
            grouped[current_status(shift)].append(shift)
        return grouped

    @staticmethod
    def workflow_statistics(shifts: Iterable[Shift]) -> Dict[str, Any]:
        """
        Count shifts per status.

        Returns:
            Dictionary with by_status, total_shifts, locked_percentage and
            validated_percentage (validated, published or locked)
        """
        by_status = defaultdict(int)
        for status in S:
            by_status[status.value] = 0
        total = 0
        for shift in shifts:
            by_status[current_status(shift).value] += 1
            total += 1

        locked = by_status[S.LOCKED_FINAL.value]
        validated = (by_status[S.VALIDATED.value] + by_status[S.PUBLISHED.value] + locked)
        return {
            "by_status": dict(by_status),
            "total_shifts": total,
            "locked_percentage": locked / total * 100 if total else 0,
            "validated_percentage": validated / total * 100 if total else 0,
        }
