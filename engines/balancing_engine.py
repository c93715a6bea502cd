"""
Balancing Engine - Applies balancing suggestions safely.

Turns a suggestion into concrete shift moves:
- redistribute: move the source's smallest unlocked shifts to the target
- swap_shifts: exchange an anchor shift with the target's closest match
- adjust_hours: not implemented, always fails

Every candidate set goes through the ConflictValidator before any update
instruction is emitted. Locked shifts are never candidates.
"""
from datetime import datetime
from typing import Callable, List, Optional
import uuid

from communication.message import MessageType
from communication.message_bus import MessageBus
from config import ValidationAdminSettings
from models.balancing import (
    BalancingResult,
    BalancingSuggestion,
    BalancingSummary,
    BatchResult,
    FailedSuggestion,
    SuggestionType,
)
from models.schedule import ScheduleSnapshot
from models.shift import Shift, ShiftUpdate

from .base_engine import BaseEngine
from .conflict_validator import ConflictValidator
from .metrics import shift_hours


# Redistribution may overshoot the requested hours by this much
REDISTRIBUTION_TOLERANCE_HOURS = 1.0
# Largest duration difference between two swapped shifts
MAX_SWAP_DIFFERENCE_HOURS = 2.0

ADJUST_HOURS_NOT_IMPLEMENTED = "adjust_hours is not implemented"


class BalancingEngine(BaseEngine):
    """
    Applies balancing suggestions against a snapshot.

    The engine never mutates shifts. Successful results carry update
    instructions; when ``on_update_shifts`` is given it is called with
    them as well, and a failure there fails the suggestion.

    Attributes:
        validator: ConflictValidator used for every candidate set
        on_update_shifts: Optional persistence callback
    """

    def __init__(self,
                 message_bus: Optional[MessageBus] = None,
                 validator: Optional[ConflictValidator] = None,
                 on_update_shifts: Optional[Callable[[List[ShiftUpdate]], None]] = None,
                 verbose: Optional[bool] = None):
        super().__init__("BalancingEngine", message_bus, verbose)
        self.validator = validator or ConflictValidator(verbose=self.verbose)
        self.on_update_shifts = on_update_shifts

    def execute(self, **kwargs) -> BatchResult:
        """
        Apply a batch of suggestions.

        Keyword Args:
            suggestions: Suggestions in application order
            snapshot: ScheduleSnapshot to work on
            settings: ValidationAdminSettings
            revalidate: Fold each success into the snapshot before the next item
        """
        return self.apply_multiple_suggestions(
            kwargs["suggestions"],
            kwargs["snapshot"],
            kwargs.get("settings"),
            revalidate=kwargs.get("revalidate", False),
        )

    # ==================== Single Suggestion ====================

    def apply_suggestion(self,
                         suggestion: BalancingSuggestion,
                         snapshot: ScheduleSnapshot,
                         settings: Optional[ValidationAdminSettings] = None,
                         correlation_id: Optional[str] = None) -> BalancingResult:
        """
        Apply one suggestion.

        Unexpected exceptions are logged and converted into a failure
        result; they never propagate to the caller.

        Args:
            suggestion: The suggestion to apply
            snapshot: Current employees, stores and shifts
            settings: Policy thresholds
            correlation_id: Groups events of one batch

        Returns:
            BalancingResult
        """
        settings = settings or ValidationAdminSettings()
        self._operation_count += 1

        try:
            if suggestion.type == SuggestionType.REDISTRIBUTE:
                result = self._apply_redistribution(suggestion, snapshot, settings)
            elif suggestion.type == SuggestionType.SWAP_SHIFTS:
                result = self._apply_swap(suggestion, snapshot, settings)
            elif suggestion.type == SuggestionType.ADJUST_HOURS:
                result = BalancingResult.failure(ADJUST_HOURS_NOT_IMPLEMENTED)
            else:
                result = BalancingResult.failure(
                    f"Unsupported suggestion type: {suggestion.type_value}"
                )

            if result.success and self.on_update_shifts is not None:
                self.on_update_shifts(list(result.updates))

        except Exception as e:
            message = self._handle_error(e, f"apply_suggestion({suggestion.id})")
            result = BalancingResult.failure(f"Internal error: {message}")

        self._report(suggestion, result, correlation_id)
        return result

    def _apply_redistribution(self, suggestion: BalancingSuggestion,
                              snapshot: ScheduleSnapshot,
                              settings: ValidationAdminSettings) -> BalancingResult:
        """Move the source's smallest unlocked shifts to the target."""
        if not suggestion.source_employee_id or not suggestion.target_employee_id:
            return BalancingResult.failure("Missing employee IDs for redistribution")

        source = snapshot.find_employee(suggestion.source_employee_id)
        target = snapshot.find_employee(suggestion.target_employee_id)
        if source is None or target is None:
            return BalancingResult.failure("Employees not found")

        candidates = snapshot.unlocked_shifts_for(source.id)
        if not candidates:
            return BalancingResult.failure("No shifts available for redistribution")

        target_hours = suggestion.hours_change
        accumulated = 0.0
        selected: List[Shift] = []

        # Smallest first: many small moves over one disruptive one
        for shift in sorted(candidates, key=shift_hours):
            hours = shift_hours(shift)
            if accumulated + hours <= target_hours + REDISTRIBUTION_TOLERANCE_HOURS:
                selected.append(shift)
                accumulated += hours
                if accumulated >= target_hours:
                    break

        if not selected:
            return BalancingResult.failure("No compatible shift found for redistribution")

        now = datetime.now()
        updates = [
            ShiftUpdate(id=s.id, data={"employee_id": target.id, "updated_at": now})
            for s in selected
        ]
        return self._validated_result(
            suggestion, snapshot, settings, selected, updates,
            employees=[source.id, target.id],
            hours=accumulated,
        )

    def _apply_swap(self, suggestion: BalancingSuggestion,
                    snapshot: ScheduleSnapshot,
                    settings: ValidationAdminSettings) -> BalancingResult:
        """Exchange the anchor shift with the target's closest compatible shift."""
        if not (suggestion.source_employee_id and suggestion.target_employee_id
                and suggestion.shift_id):
            return BalancingResult.failure("Insufficient data for shift swap")

        anchor = snapshot.find_shift(suggestion.shift_id)
        if anchor is None:
            return BalancingResult.failure("Anchor shift not found")
        if anchor.employee_id != suggestion.source_employee_id:
            return BalancingResult.failure("Anchor shift does not belong to the source employee")
        if anchor.is_locked:
            return BalancingResult.failure("Anchor shift is locked")

        anchor_hours = shift_hours(anchor)
        best: Optional[Shift] = None
        best_diff = None

        for shift in snapshot.unlocked_shifts_for(suggestion.target_employee_id):
            if shift.id == anchor.id:
                continue
            # Same day at the same store would be a no-op swap
            if shift.date == anchor.date and shift.store_id == anchor.store_id:
                continue
            diff = abs(shift_hours(shift) - anchor_hours)
            if diff > MAX_SWAP_DIFFERENCE_HOURS:
                continue
            if best_diff is None or diff < best_diff:
                best, best_diff = shift, diff

        if best is None:
            return BalancingResult.failure("No compatible shift found for swap")

        now = datetime.now()
        updates = [
            ShiftUpdate(id=anchor.id, data={
                "employee_id": suggestion.target_employee_id, "updated_at": now,
            }),
            ShiftUpdate(id=best.id, data={
                "employee_id": suggestion.source_employee_id, "updated_at": now,
            }),
        ]
        return self._validated_result(
            suggestion, snapshot, settings, [anchor, best], updates,
            employees=[suggestion.source_employee_id, suggestion.target_employee_id],
            hours=best_diff,
        )

    def _validated_result(self, suggestion: BalancingSuggestion,
                          snapshot: ScheduleSnapshot,
                          settings: ValidationAdminSettings,
                          shifts: List[Shift],
                          updates: List[ShiftUpdate],
                          employees: List[str],
                          hours: float) -> BalancingResult:
        """Validate the proposed shifts and build the result."""
        proposed = [shift.apply(update) for shift, update in zip(shifts, updates)]

        validation = self.validator.validate(suggestion, proposed, snapshot, settings)
        if not validation.is_valid:
            return BalancingResult(success=False, errors=list(validation.errors))

        return BalancingResult(
            success=True,
            modified_shifts=proposed,
            updates=updates,
            errors=list(validation.warnings),
            summary=BalancingSummary(
                shifts_modified=len(proposed),
                employees_affected=employees,
                hours_redistributed=hours,
            ),
        )

    # ==================== Batch ====================

    def apply_multiple_suggestions(self,
                                   suggestions: List[BalancingSuggestion],
                                   snapshot: ScheduleSnapshot,
                                   settings: Optional[ValidationAdminSettings] = None,
                                   revalidate: bool = False) -> BatchResult:
        """
        Apply suggestions strictly in order.

        A failing or crashing suggestion is recorded and the batch goes on.

        Args:
            suggestions: Suggestions in application order
            snapshot: Snapshot the batch starts from
            settings: Policy thresholds
            revalidate: When True, each success's updates are folded into
                the snapshot used by the following suggestions

        Returns:
            BatchResult with successes in input order
        """
        batch = BatchResult()
        correlation_id = str(uuid.uuid4())[:8]
        current = snapshot

        self.log(f"Applying {len(suggestions)} suggestions", "info")

        for suggestion in suggestions:
            try:
                result = self.apply_suggestion(suggestion, current, settings, correlation_id)
            except Exception as e:
                message = self._handle_error(e, "apply_multiple_suggestions()")
                batch.failed.append(FailedSuggestion(suggestion=suggestion, error=message))
                continue

            if result.success:
                batch.successful.append(result)
                if revalidate:
                    current = current.apply_updates(result.updates)
            else:
                batch.failed.append(FailedSuggestion(
                    suggestion=suggestion,
                    error=", ".join(result.errors) or "Unknown error",
                ))

        batch.summary = {
            "total": len(suggestions),
            "successful": len(batch.successful),
            "failed": len(batch.failed),
            "total_shifts_modified": sum(r.summary.shifts_modified for r in batch.successful),
            "total_hours_redistributed": sum(
                r.summary.hours_redistributed for r in batch.successful
            ),
        }

        self.log(
            f"Batch done: {batch.summary['successful']}/{batch.summary['total']} applied",
            "success" if not batch.failed else "warning",
        )
        self.publish(MessageType.BATCH_COMPLETE, dict(batch.summary), correlation_id)
        return batch

    # ==================== Reporting ====================

    def _report(self, suggestion: BalancingSuggestion, result: BalancingResult,
                correlation_id: Optional[str]) -> None:
        content = {
            "suggestion_id": suggestion.id,
            "type": suggestion.type_value,
            "source_employee_id": suggestion.source_employee_id,
            "target_employee_id": suggestion.target_employee_id,
        }
        if result.success:
            self.log(
                f"{suggestion.id}: moved {result.summary.shifts_modified} shifts "
                f"({result.summary.hours_redistributed:.1f}h)",
                "success",
            )
            content["shift_ids"] = [u.id for u in result.updates]
            content["hours_redistributed"] = result.summary.hours_redistributed
            self.publish(MessageType.SUGGESTION_APPLIED, content, correlation_id)
        else:
            self.log(f"{suggestion.id}: failed - {', '.join(result.errors)}", "warning")
            content["errors"] = list(result.errors)
            self.publish(MessageType.SUGGESTION_FAILED, content, correlation_id)
