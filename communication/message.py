"""
Governance events published by the engines.

Every event is a broadcast: engines never address each other, subscribers
(the audit trail, a UI bridge, tests) pick the event types they care about.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
import uuid


class MessageType(Enum):
    """Types of events the engines publish."""

    # Alert detection
    ALERTS_RAISED = "alerts_raised"             # Alert evaluation finished

    # Balancing
    SUGGESTION_APPLIED = "suggestion_applied"   # Suggestion passed validation
    SUGGESTION_FAILED = "suggestion_failed"     # Suggestion rejected or crashed
    BATCH_COMPLETE = "batch_complete"           # Batch of suggestions processed

    # Validation workflow
    WORKFLOW_TRANSITION = "workflow_transition"
    WORKFLOW_REJECTED = "workflow_rejected"
    BULK_TRANSITION_COMPLETE = "bulk_transition_complete"

    # Status messages
    STATUS = "status"
    ERROR = "error"

    @property
    def category(self) -> str:
        """alerts, balancing, workflow or system."""
        if self is MessageType.ALERTS_RAISED:
            return "alerts"
        if self in (MessageType.SUGGESTION_APPLIED, MessageType.SUGGESTION_FAILED,
                    MessageType.BATCH_COMPLETE):
            return "balancing"
        if self in (MessageType.WORKFLOW_TRANSITION, MessageType.WORKFLOW_REJECTED,
                    MessageType.BULK_TRANSITION_COMPLETE):
            return "workflow"
        return "system"

    @property
    def is_failure(self) -> bool:
        return self in (MessageType.SUGGESTION_FAILED, MessageType.WORKFLOW_REJECTED,
                        MessageType.ERROR)


@dataclass
class Message:
    """
    One engine event.

    Attributes:
        msg_type: Type of the event
        sender: Name of the publishing engine
        content: Event payload (plain dicts, safe to serialize)
        correlation_id: Shared by the events of one batch or bulk operation
        timestamp: When the event was created
        metadata: Who did it and why (actor, role, reason)
    """
    msg_type: MessageType
    sender: str
    content: Any
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict = field(default_factory=dict)

    @property
    def actor(self) -> str:
        """Display name of the person behind the event; "system" when automated."""
        return self.metadata.get("actor") or "system"

    def preview(self, limit: int = 100) -> str:
        text = str(self.content)
        return text if len(text) <= limit else text[:limit] + "..."

    def __str__(self) -> str:
        return (
            f"[{self.timestamp.strftime('%H:%M:%S')}] {self.sender} "
            f"{self.msg_type.category}/{self.msg_type.value} "
            f"({self.actor}): {self.preview()}"
        )

    def to_dict(self) -> dict:
        """Serializable form for logs and exports."""
        return {
            "msg_type": self.msg_type.value,
            "category": self.msg_type.category,
            "sender": self.sender,
            "actor": self.actor,
            "content": self.content,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }
