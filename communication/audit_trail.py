"""
Audit trail of workflow and balancing operations.

The trail subscribes to the message bus and turns engine events into
audit entries, so the engines themselves never need to know it exists.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

import pandas as pd

from .message import Message, MessageType
from .message_bus import MessageBus


class AuditOperation(Enum):
    """Kinds of audited operation."""
    LOCK = "lock"
    UNLOCK = "unlock"
    TRANSITION = "transition"
    VALIDATION_FAILED = "validation_failed"
    REJECTED = "rejected"
    REBALANCE = "rebalance"
    REBALANCE_FAILED = "rebalance_failed"


_SUCCESSFUL_OPERATIONS = {
    AuditOperation.LOCK,
    AuditOperation.UNLOCK,
    AuditOperation.TRANSITION,
    AuditOperation.REBALANCE,
}


@dataclass
class AuditEntry:
    """
    One audited operation.

    Attributes:
        operation: What happened
        user: Actor display name ("system" for automated operations)
        shift_ids: Shifts touched
        employee_ids: Employees touched
        store_id: Store of the shift, if known
        from_status: Workflow state before (transitions only)
        to_status: Workflow state after (transitions only)
        reason: Optional free-text reason
        score: Validation score, when rules ran
        errors: Failure reasons
        correlation_id: Groups the entries of one bulk operation
    """
    operation: AuditOperation
    user: str
    shift_ids: List[str] = field(default_factory=list)
    employee_ids: List[str] = field(default_factory=list)
    store_id: Optional[str] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    reason: Optional[str] = None
    score: Optional[float] = None
    errors: List[str] = field(default_factory=list)
    correlation_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    @property
    def success(self) -> bool:
        return self.operation in _SUCCESSFUL_OPERATIONS

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operation": self.operation.value,
            "user": self.user,
            "shift_ids": list(self.shift_ids),
            "employee_ids": list(self.employee_ids),
            "store_id": self.store_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "reason": self.reason,
            "score": self.score,
            "errors": list(self.errors),
            "success": self.success,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        shifts = ", ".join(self.shift_ids) or "-"
        return (
            f"[{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.operation.value} by {self.user} on {shifts}"
        )


class AuditTrail:
    """
    Bounded, in-memory audit log fed by engine events.

    Attributes:
        name: Subscriber name on the bus
        max_entries: Oldest entries are dropped beyond this many
        entries: Recorded entries, oldest first
    """

    def __init__(self, message_bus: Optional[MessageBus] = None,
                 max_entries: int = 1000, name: str = "AuditTrail"):
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.name = name
        self.max_entries = max_entries
        self.entries: List[AuditEntry] = []
        self.message_bus = message_bus
        if message_bus is not None:
            message_bus.register(self.name, self.handle_message)

    def detach(self) -> None:
        """Stop receiving events."""
        if self.message_bus is not None:
            self.message_bus.unregister(self.name)
            self.message_bus = None

    # ==================== Recording ====================

    def record(self, entry: AuditEntry) -> AuditEntry:
        self.entries.append(entry)
        if len(self.entries) > self.max_entries:
            self.entries = self.entries[-self.max_entries:]
        return entry

    def handle_message(self, message: Message) -> None:
        """Translate an engine event into audit entries; other events are ignored."""
        handlers = {
            MessageType.WORKFLOW_TRANSITION: self._on_transition,
            MessageType.WORKFLOW_REJECTED: self._on_rejected,
            MessageType.SUGGESTION_APPLIED: self._on_suggestion_applied,
            MessageType.SUGGESTION_FAILED: self._on_suggestion_failed,
        }
        handler = handlers.get(message.msg_type)
        if handler:
            handler(message)

    def _on_transition(self, message: Message) -> None:
        content = message.content
        to_status = content.get("to_status")
        from_status = content.get("from_status")
        if to_status == "locked_final":
            operation = AuditOperation.LOCK
        elif from_status == "locked_final":
            operation = AuditOperation.UNLOCK
        else:
            operation = AuditOperation.TRANSITION

        self.record(AuditEntry(
            operation=operation,
            user=message.actor,
            shift_ids=[content["shift_id"]],
            employee_ids=[content["employee_id"]],
            store_id=content.get("store_id"),
            from_status=from_status,
            to_status=to_status,
            reason=message.metadata.get("reason"),
            score=content.get("score"),
            correlation_id=message.correlation_id,
            timestamp=message.timestamp,
        ))

    def _on_rejected(self, message: Message) -> None:
        content = message.content
        operation = (
            AuditOperation.VALIDATION_FAILED
            if content.get("validation_failed")
            else AuditOperation.REJECTED
        )
        self.record(AuditEntry(
            operation=operation,
            user=message.actor,
            shift_ids=[content["shift_id"]],
            employee_ids=[content["employee_id"]],
            store_id=content.get("store_id"),
            from_status=content.get("from_status"),
            to_status=content.get("to_status"),
            reason=message.metadata.get("reason"),
            score=content.get("score"),
            errors=[content.get("error", "")],
            correlation_id=message.correlation_id,
            timestamp=message.timestamp,
        ))

    def _on_suggestion_applied(self, message: Message) -> None:
        content = message.content
        self.record(AuditEntry(
            operation=AuditOperation.REBALANCE,
            user=message.actor,
            shift_ids=list(content.get("shift_ids", [])),
            employee_ids=[e for e in (content.get("source_employee_id"),
                                      content.get("target_employee_id")) if e],
            reason=content.get("type"),
            correlation_id=message.correlation_id,
            timestamp=message.timestamp,
        ))

    def _on_suggestion_failed(self, message: Message) -> None:
        content = message.content
        self.record(AuditEntry(
            operation=AuditOperation.REBALANCE_FAILED,
            user=message.actor,
            employee_ids=[e for e in (content.get("source_employee_id"),
                                      content.get("target_employee_id")) if e],
            reason=content.get("type"),
            errors=list(content.get("errors", [])),
            correlation_id=message.correlation_id,
            timestamp=message.timestamp,
        ))

    # ==================== Queries ====================

    def history_for_shift(self, shift_id: str) -> List[AuditEntry]:
        """Entries touching a shift, newest first."""
        matches = [e for e in self.entries if shift_id in e.shift_ids]
        return sorted(matches, key=lambda e: e.timestamp, reverse=True)

    def history_for_employee(self, employee_id: str) -> List[AuditEntry]:
        """Entries touching an employee, newest first."""
        matches = [e for e in self.entries if employee_id in e.employee_ids]
        return sorted(matches, key=lambda e: e.timestamp, reverse=True)

    def export(self, start: Optional[datetime] = None,
               end: Optional[datetime] = None) -> List[AuditEntry]:
        """Entries within an optional time window, oldest first."""
        entries = self.entries
        if start:
            entries = [e for e in entries if e.timestamp >= start]
        if end:
            entries = [e for e in entries if e.timestamp <= end]
        return sorted(entries, key=lambda e: e.timestamp)

    def statistics(self) -> Dict[str, Any]:
        """
        Aggregate the trail.

        Returns:
            Dictionary with total_operations, operations_by_type,
            operations_by_user, success_rate (percent) and
            avg_validation_score, both rounded to 2 decimals
        """
        by_type = defaultdict(int)
        by_user = defaultdict(int)
        scores = []

        for entry in self.entries:
            by_type[entry.operation.value] += 1
            by_user[entry.user] += 1
            if entry.score is not None:
                scores.append(entry.score)

        total = len(self.entries)
        successes = sum(1 for e in self.entries if e.success)

        return {
            "total_operations": total,
            "operations_by_type": dict(by_type),
            "operations_by_user": dict(by_user),
            "success_rate": round(successes / total * 100, 2) if total else 0.0,
            "avg_validation_score": round(sum(scores) / len(scores), 2) if scores else 0.0,
            "recent_activity": [e.to_dict() for e in
                                sorted(self.entries, key=lambda e: e.timestamp, reverse=True)[:10]],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """Audit entries as a DataFrame, one row per entry."""
        columns = [
            "id", "operation", "user", "shift_ids", "employee_ids", "store_id",
            "from_status", "to_status", "reason", "score", "errors", "success",
            "correlation_id", "timestamp",
        ]
        df = pd.DataFrame([e.to_dict() for e in self.entries], columns=columns)
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        return df

    def clear(self) -> None:
        self.entries = []

    def __len__(self) -> int:
        return len(self.entries)
